# SPDX-License-Identifier: AGPL-3.0-or-later
"""Find the favicon ``<link>`` declaration in a HTML document.

This is a first-match heuristic and not a DOM parser: the first ``<link>`` tag
with one of the :py:obj:`FAVICON_RELS` wins, even if it is in a comment.
"""

from __future__ import annotations

__all__ = ["extract_favicon_href", "FAVICON_RELS", "MAX_HTML_LENGTH"]

import html
import re

MAX_HTML_LENGTH = 256 * 1024
"""The document is truncated to this number of characters before the pattern
is matched, this bounds the worst case of the regular expression."""

FAVICON_RELS = (
    "icon",
    "shortcut icon",
    "alternate icon",
    "apple-touch-icon",
    "apple-touch-icon-precomposed",
)

RE_LINK_TAG = re.compile(
    r"<link\b[^>]*?\brel\s*=\s*(['\"])(?:" + "|".join(re.escape(rel) for rel in FAVICON_RELS) + r")\1[^>]*>",
    re.IGNORECASE,
)
RE_HREF = re.compile(r"\bhref\s*=\s*(['\"])(.*?)\1", re.IGNORECASE)
RE_STRIP = re.compile(r"[\n\r\t]")


def extract_favicon_href(document: str | bytes, max_length: int = MAX_HTML_LENGTH) -> str | None:
    """Returns the ``href`` of the first favicon ``<link>`` in ``document`` or
    ``None``.  The ``href`` is not resolved, it is the (unescaped) value of the
    attribute.

    .. code:: python

       >>> extract_favicon_href('<link rel="shortcut icon" href="/f.ico">')
       '/f.ico'

    """
    if isinstance(document, bytes):
        document = document[:max_length].decode("utf-8", errors="ignore")
    document = RE_STRIP.sub(" ", document[:max_length])

    link = RE_LINK_TAG.search(document)
    if link is None:
        return None

    href = RE_HREF.search(link.group(0))
    if href is None:
        return None

    value = html.unescape(href.group(2)).strip()
    return value or None
