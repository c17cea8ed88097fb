"""Conversions between bytes and text, and metadata copying."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def bytes_to_str(data: bytes) -> str:
    """Turn bytes into text without losing bytes that are not valid UTF-8."""
    return bytes(data).decode(_ENCODING, _ERRORS)


def str_to_bytes(text: str) -> bytes:
    """Turn text back into bytes; the inverse of ``bytes_to_str``."""
    return text.encode(_ENCODING, _ERRORS)


def copy_meta(src: Mapping[str, str] | None, dst: MutableMapping[str, str] | None) -> None:
    """Copy every pair of ``src`` into ``dst``; nothing happens if ``dst`` is None."""
    if dst is None or not src:
        return
    dst.update(src)