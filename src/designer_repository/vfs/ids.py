"""Opaque identifier helpers: URL-safe base64 of an absolute URI."""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import urlparse

_URLSAFE_B64 = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


def encode_unique_id(uri: str) -> str:
    return base64.urlsafe_b64encode(uri.encode("utf-8")).decode("ascii").rstrip("=")


def decode_unique_id(unique_id: str) -> str:
    """Return the URI behind ``unique_id``, or ``unique_id`` itself if it is raw."""
    if not unique_id or not _URLSAFE_B64.match(unique_id):
        return unique_id
    stripped = unique_id.rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, ValueError):
        return unique_id
    if not decoded.isprintable() or not urlparse(decoded).scheme or "://" not in decoded:
        return unique_id
    return decoded
