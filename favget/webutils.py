# SPDX-License-Identifier: AGPL-3.0-or-later
# pylint: disable=missing-module-docstring

from __future__ import annotations

import time

from werkzeug.http import http_date

from favget.images import sniff_mime, DEFAULT_MIME_TYPE

MAX_AGE = 86400
"""``Cache-Control: max-age`` of the favicon responses."""


def response_headers(data: bytes, now: float | None = None) -> dict[str, str]:
    """HTTP headers of a response with the favicon ``data``, the
    ``Content-Type`` is sniffed from the data (default ``image/x-icon``)."""
    if now is None:
        now = time.time()
    return {
        "X-Robots-Tag": "noindex, nofollow",
        "Content-Type": sniff_mime(data) or DEFAULT_MIME_TYPE,
        "Cache-Control": f"public, max-age={MAX_AGE}",
        "Expires": http_date(now + MAX_AGE),
        "Content-Length": str(len(data)),
    }
