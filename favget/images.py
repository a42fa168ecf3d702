# SPDX-License-Identifier: AGPL-3.0-or-later
"""Identify the image format of a favicon from its leading bytes.  Nothing is
decoded or rasterized, only the magic numbers in the header of the data are
inspected (by :py:obj:`puremagic`).

"""

from __future__ import annotations

__all__ = ["sniff_mime", "is_image", "DEFAULT_MIME_TYPE"]

import puremagic

from favget import logger

logger = logger.getChild('images')

DEFAULT_MIME_TYPE = "image/x-icon"
"""MIME type of a favicon whose format is unknown."""

SNIFF_BYTES = 2048
"""Number of leading bytes that are inspected."""

EXTENSION_MIME_TYPES: dict[str, str] = {
    ".ico": "image/x-icon",
    ".cur": "image/x-icon",
    ".png": "image/png",
    ".apng": "image/png",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".svg": "image/svg+xml",
}
"""Some of the signatures known to puremagic come without a MIME type, in this
case the MIME type is looked up by the file extension of the signature."""


def sniff_mime(data: bytes) -> str | None:
    """Returns the MIME type of the image ``data`` or ``None`` if the header of
    ``data`` is not the header of a known image format."""

    if not data:
        return None

    try:
        matches = puremagic.magic_string(data[:SNIFF_BYTES])
    except (puremagic.PureError, ValueError):
        return None

    for match in matches:
        mime = match.mime_type or EXTENSION_MIME_TYPES.get(match.extension.lower(), "")
        if mime.startswith("image/"):
            return mime

    logger.debug("no image signature in %s bytes (best match: %s)", len(data), matches[0].name if matches else None)
    return None


def is_image(data: bytes) -> bool:
    return sniff_mime(data) is not None
