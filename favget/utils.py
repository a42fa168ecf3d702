# SPDX-License-Identifier: AGPL-3.0-or-later
"""Utility functions for the favget modules."""

from __future__ import annotations

import hashlib
import hmac


def new_hmac(secret_key: str, value: bytes) -> str:
    return hmac.new(secret_key.encode(), value, hashlib.sha256).hexdigest()


def humanize_bytes(size: int | float, precision: int = 2) -> str:
    """Determine the *human readable* value of bytes on 1024 base (1KB=1024B)."""
    s = ['B ', 'KB', 'MB', 'GB', 'TB']

    x = len(s)
    p = 0
    while size > 1024 and p < x - 1:
        p += 1
        size = size / 1024.0
    return "%.*f %s" % (precision, size, s[p])


def humanize_number(size: int | float, precision: int = 0) -> str:
    """Determine the *human readable* value of a decimal number."""
    s = ['', 'K', 'M', 'B', 'T']

    x = len(s)
    p = 0
    while size > 1000 and p < x - 1:
        p += 1
        size = size / 1000.0
    return "%.*f%s" % (precision, size, s[p])
