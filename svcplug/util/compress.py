"""Gzip helpers for payloads."""

from __future__ import annotations

import gzip
import zlib

_LEVEL = 6


def zip_bytes(data: bytes) -> bytes:
    """Compress ``data`` into a single gzip member."""
    return gzip.compress(bytes(data), compresslevel=_LEVEL, mtime=0)


def unzip_bytes(data: bytes) -> bytes:
    """Decompress gzip ``data``; raise ValueError if it is not valid gzip."""
    if not data:
        raise ValueError("unexpected end of gzip data")
    try:
        return gzip.decompress(bytes(data))
    except (OSError, EOFError, zlib.error) as exc:
        raise ValueError(f"invalid gzip data: {exc}") from exc