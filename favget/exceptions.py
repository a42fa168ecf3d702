# SPDX-License-Identifier: AGPL-3.0-or-later
"""Exception types raised by favget modules."""


class FavgetException(Exception):
    """Base favget exception."""


class InvalidURL(FavgetException):
    """The URL can't be parsed or has no host.  Never retried."""

    def __init__(self, url: str, message: str = "invalid URL"):
        super().__init__(f"{message}: {url!r}")
        self.url: str = url
        self.message: str = message


class UnsupportedScheme(InvalidURL):
    """The URL has a scheme other than ``http`` or ``https``."""

    def __init__(self, url: str, scheme: str):
        super().__init__(url, f"unsupported scheme {scheme!r}")
        self.scheme: str = scheme


class InvalidBase(InvalidURL):
    """A relative URL can't be resolved: the base URL lacks scheme or host."""

    def __init__(self, url: str):
        super().__init__(url, "base URL without scheme or host")


class TransportFailure(FavgetException):
    """DNS, TLS, timeout, redirect limit or a HTTP status outside of
    [200, 400).  A strategy failing with this exception is skipped, the next
    strategy is tried."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url: str = url
        self.reason: str = reason


class NotAnImage(TransportFailure):
    """The body of a response is not in a known image format."""


class Exhausted(FavgetException):
    """All strategies of the resolution chain failed."""

    def __init__(self, url: str):
        super().__init__(f"no favicon found for {url}")
        self.url: str = url


class CacheIOFailure(FavgetException):
    """Directory, lock or file error in the favicon cache."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{message}: {path}")
        self.path: str = path
        self.message: str = message


class ConfigurationError(FavgetException):
    """Missing or invalid settings, fatal at startup."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(message if filename is None else f"{message} ({filename})")
        self.message: str = message
        self.filename: str | None = filename
