# SPDX-License-Identifier: AGPL-3.0-or-later
"""Normalization of URLs to a *host root* and resolution of relative URLs.

A host root is the canonical ``scheme://host[:port]`` prefix of a URL, it is
the unit used for cache keys and for matching the rules of the file map.

"""

from __future__ import annotations

__all__ = ["OriginRequest", "normalize", "parse_origin", "resolve_relative", "SCHEMES"]

import posixpath
import re
import urllib.parse

import msgspec

from favget import logger
from favget.exceptions import InvalidURL, UnsupportedScheme, InvalidBase

logger = logger.getChild('urls')

SCHEMES = ("http", "https")
RE_HTTP_PREFIX = re.compile(r"^https?://", re.I)


class OriginRequest(msgspec.Struct, frozen=True, kw_only=True):
    """A lookup of a favicon, immutable after normalization."""

    raw_url: str
    """The URL or domain as given by the caller."""

    url: str
    """The ``raw_url``, prefixed by ``http://`` if it has no scheme or host."""

    host_root: str
    """Normalized ``scheme://host[:port]`` of :py:obj:`url`."""


def _split(url: str) -> urllib.parse.SplitResult | None:
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts


def _host_root(url: str, parts: urllib.parse.SplitResult) -> str:
    scheme = parts.scheme.lower()
    if scheme not in SCHEMES:
        raise UnsupportedScheme(url, scheme)

    host = parts.hostname.lower()  # type: ignore[union-attr]
    if ":" in host:
        # IPv6 literal
        host = f"[{host}]"
    else:
        try:
            host.encode("idna")
        except UnicodeError as exc:
            # empty label (a..b.com) or a label longer than 63 chars
            raise InvalidURL(url, "invalid host name") from exc
    try:
        port = parts.port
    except ValueError as exc:
        raise InvalidURL(url, "invalid port") from exc

    if port is None:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def parse_origin(url: str) -> OriginRequest:
    """Returns the :py:obj:`OriginRequest` of ``url``.  A ``url`` without scheme
    or host (``example.com``, ``example.com:8080/path``) is retried with the
    ``http://`` prefix.  Raises :py:obj:`InvalidURL` (or its subclass
    :py:obj:`UnsupportedScheme`) if there is no usable host root.
    """
    raw_url = url
    url = url.strip()
    if not url:
        raise InvalidURL(raw_url, "empty URL")

    parts = _split(url)
    if parts is None and not RE_HTTP_PREFIX.match(url):
        url = "http://" + url
        parts = _split(url)
    if parts is None:
        logger.debug("can't parse URL %r", raw_url)
        raise InvalidURL(raw_url)

    return OriginRequest(raw_url=raw_url, url=url, host_root=_host_root(url, parts))


def normalize(url: str) -> str:
    """Returns the host root ``scheme://host[:port]`` of ``url``.

    .. code:: python

       >>> normalize("Example.COM")
       'http://example.com'
       >>> normalize("https://user@example.com:8443/index.html?q=1")
       'https://example.com:8443'

    The function is idempotent, ``normalize(normalize(url)) == normalize(url)``.
    """
    return parse_origin(url).host_root


def _has_dot_segments(path: str) -> bool:
    return any(segment in (".", "..") for segment in path.split("/"))


def resolve_relative(relative: str, base: str) -> str:
    """Resolve the (relative) ``href`` of a link against the ``base`` URL of
    the page.  Raises :py:obj:`InvalidBase` if ``base`` has no scheme or
    host.
    """

    if "://" in relative:
        return relative

    parts = _split(base)
    if parts is None:
        logger.debug("can't resolve %r, invalid base URL %r", relative, base)
        raise InvalidBase(base)

    base_root = f"{parts.scheme}://{parts.netloc.rpartition('@')[2]}"

    # scheme relative: //cdn.example.org/favicon.ico
    if relative.startswith("//"):
        return f"{parts.scheme}:{relative}"

    if relative.startswith("/"):
        return base_root + relative

    base_dir = posixpath.dirname(parts.path).rstrip("/")
    if not _has_dot_segments(relative):
        return f"{base_root}{base_dir}/{relative}"

    stack: list[str] = []
    for segment in f"{base_dir}/{relative}".split("/"):
        if segment == "..":
            if stack:
                stack.pop()
        elif segment not in (".", ""):
            stack.append(segment)

    return base_root + "/" + "/".join(stack)
