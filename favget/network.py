# SPDX-License-Identifier: AGPL-3.0-or-later
"""HTTP for favget.

The :py:obj:`Fetcher` wraps a :py:obj:`httpx.Client` and sends bounded GET
requests: the runtime of a request is bounded by a total timeout, the number of
redirects is limited and the download size is limited by a byte range request
header (an uncooperative origin may still send more, the caller has to tolerate
this).

.. attention::

   By default the TLS certificates of the origins are **not** verified
   (:py:obj:`FetchConfig.verify_tls`).  The targets of the requests are
   arbitrary third-party sites, lots of them with self-signed or expired
   certificates; favicons from such sites are still wanted.  A favicon is
   never more than an image that is checked by :py:obj:`favget.images`.

"""

from __future__ import annotations

__all__ = ["Fetcher", "FetchConfig", "FetchResult", "NOT_AN_IMAGE"]

import typing as t
from timeit import default_timer
from types import TracebackType

import httpx
import msgspec

from favget import logger
from favget import images
from favget.exceptions import TransportFailure, NotAnImage

logger = logger.getChild('network')

NOT_AN_IMAGE = "not an image"
"""Reason of a :py:obj:`FetchResult` whose body failed the image verification."""

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)"
    " Chrome/112.0.0.0 Safari/537.36"
)


class FetchConfig(msgspec.Struct, kw_only=True):  # pylint: disable=too-few-public-methods
    """Configuration of the HTTP requests."""

    total_timeout: float = 5
    """Maximum runtime (sec.) of a request, including the download of the
    body."""

    connect_timeout: float = 2
    """Timeout (sec.) to establish a connection."""

    max_redirects: int = 5
    """Maximum number of redirects a request follows."""

    max_download_size: int = 512000
    """Requested with the ``Range: bytes=0-<max_download_size>`` header."""

    user_agent: str = DEFAULT_USER_AGENT
    """Value of the ``User-Agent`` header, some sites refuse to serve other
    clients than web browsers."""

    verify_tls: bool = False
    """Verify the TLS certificates of the origins (see the security note in
    :py:obj:`favget.network`)."""

    def __post_init__(self):
        for name in ("total_timeout", "connect_timeout", "max_redirects", "max_download_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"fetch.{name} has to be a positive number")


class FetchResult(msgspec.Struct, frozen=True, kw_only=True):
    """Result of :py:obj:`Fetcher.fetch`, a ``FAIL`` has always an empty
    body."""

    status: t.Literal["OK", "FAIL"]
    url: str
    """The requested URL."""

    effective_url: str
    """The URL after all redirects have been followed."""

    body: bytes = b""
    http_code: int = 0
    mime: str | None = None
    """MIME type of the body if the image verification was requested and
    succeeded."""

    reason: str = ""

    redirects: int = 0
    """Number of redirects that have been followed."""

    @property
    def ok(self) -> bool:
        return self.status == "OK"

    @property
    def redirected(self) -> bool:
        return self.redirects > 0

    def raise_for_failure(self) -> FetchResult:
        """Raises :py:obj:`NotAnImage` or :py:obj:`TransportFailure` if the
        status is ``FAIL``, otherwise the result itself is returned."""
        if self.ok:
            return self
        if self.reason == NOT_AN_IMAGE:
            raise NotAnImage(self.url, self.reason)
        raise TransportFailure(self.url, self.reason)


class Fetcher:
    """HTTP client of the favicon resolvers.  The instance holds one
    :py:obj:`httpx.Client` (connection pool), close it when done::

        with Fetcher(FetchConfig()) as fetcher:
            result = fetcher.fetch("https://example.org/favicon.ico", verify_image=True)

    The ``transport`` argument is passed to the client, it is intended to
    inject a :py:obj:`httpx.MockTransport` in tests.
    """

    def __init__(self, cfg: FetchConfig, transport: httpx.BaseTransport | None = None):
        self.cfg = cfg
        self.client = httpx.Client(
            verify=cfg.verify_tls,
            follow_redirects=True,
            max_redirects=cfg.max_redirects,
            timeout=httpx.Timeout(cfg.total_timeout, connect=cfg.connect_timeout),
            headers=self.request_headers(),
            transport=transport,
        )

    def request_headers(self) -> dict[str, str]:
        return {
            "Range": f"bytes=0-{self.cfg.max_download_size}",
            "Connection": "close",
            "User-Agent": self.cfg.user_agent,
        }

    def fetch(self, url: str, verify_image: bool = False) -> FetchResult:
        """Sends a GET request to ``url``.  A transport error or a HTTP status
        code outside of [200, 400) is a ``FAIL``.  If ``verify_image`` is set,
        a body which is not in an image format is a ``FAIL``.
        """
        start_time = default_timer()
        try:
            http_code, effective_url, redirects, body = self._get(url, deadline=start_time + self.cfg.total_timeout)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            # ValueError: UnicodeError of the IDNA encoding in the transport
            reason = f"{exc.__class__.__name__}: {exc}"
            logger.debug("GET %s failed: %s", url, reason)
            return FetchResult(status="FAIL", url=url, effective_url=url, reason=reason)

        elapsed = default_timer() - start_time
        if not 200 <= http_code < 400:
            logger.debug("GET %s -> HTTP %s (%.3f sec)", url, http_code, elapsed)
            return FetchResult(
                status="FAIL",
                url=url,
                effective_url=effective_url,
                http_code=http_code,
                reason=f"HTTP {http_code}",
                redirects=redirects,
            )

        mime = None
        if verify_image:
            mime = images.sniff_mime(body)
            if mime is None:
                logger.debug("GET %s -> %s (%s bytes)", url, NOT_AN_IMAGE, len(body))
                return FetchResult(
                    status="FAIL",
                    url=url,
                    effective_url=effective_url,
                    http_code=http_code,
                    reason=NOT_AN_IMAGE,
                    redirects=redirects,
                )

        logger.debug("GET %s -> HTTP %s, %s bytes (%.3f sec)", url, http_code, len(body), elapsed)
        return FetchResult(
            status="OK",
            url=url,
            effective_url=effective_url,
            body=body,
            http_code=http_code,
            mime=mime,
            redirects=redirects,
        )

    def _get(self, url: str, deadline: float) -> tuple[int, str, int, bytes]:
        with self.client.stream("GET", url) as response:
            http_code = response.status_code
            effective_url = str(response.url)
            redirects = len(response.history)
            if not 200 <= http_code < 400:
                return http_code, effective_url, redirects, b""

            chunks = []
            size = 0
            for chunk in response.iter_bytes():
                if default_timer() > deadline:
                    raise httpx.ReadTimeout(
                        f"total timeout of {self.cfg.total_timeout} sec exceeded", request=response.request
                    )
                chunks.append(chunk)
                size += len(chunk)

        if size > self.cfg.max_download_size + 1:
            logger.debug("%s ignored the range request, %s bytes received", effective_url, size)
        return http_code, effective_url, redirects, b"".join(chunks)

    def close(self):
        self.client.close()

    def __enter__(self) -> Fetcher:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()
