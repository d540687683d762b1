from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timezone

from hexpatch.core.endian import (
    Endian,
    decode_float32,
    decode_float64,
    decode_int,
    normalize_endian,
)
from hexpatch.core.errors import InvalidValue

WINDOW_SIZE = 8
PLACEHOLDER = "."
PRINTABLE_MIN = 0x20
PRINTABLE_MAX = 0x7E


@dataclass(frozen=True)
class Interpretation:
    """Decoded view of up to 8 bytes anchored at `offset`.

    Numeric fields are None when the window is shorter than the field.
    """

    offset: int
    endian: Endian
    raw: bytes
    uint8: int | None = None
    int8: int | None = None
    uint16: int | None = None
    int16: int | None = None
    uint32: int | None = None
    int32: int | None = None
    uint64: int | None = None
    int64: int | None = None
    float32: float | None = None
    float64: float | None = None
    ascii: str = ""
    utf8: str = ""
    utf16le: str = ""
    unix_le: int | None = None
    unix_time: str | None = None  # ISO-8601 UTC rendering of unix_le

    @property
    def hex(self) -> str:
        return " ".join(f"{b:02X}" for b in self.raw)


def checked_endian(value: str) -> Endian:
    """Normalize `value` (little/big/le/be); anything else is `InvalidValue`."""
    try:
        return normalize_endian(value)
    except (AttributeError, ValueError):
        raise InvalidValue(f"Invalid endian {value!r}. Expected 'little' or 'big'.") from None


def _int_field(window: bytes, width: int, endian: Endian, signed: bool) -> int | None:
    if len(window) < width:
        return None
    try:
        return decode_int(window[:width], endian, signed)
    except (ValueError, OverflowError):
        return None


def _float_field(window: bytes, width: int, endian: Endian) -> float | None:
    if len(window) < width:
        return None
    try:
        if width == 4:
            return decode_float32(window[:4], endian)
        return decode_float64(window[:8], endian)
    except struct.error:
        return None


def ascii_view(window: bytes) -> str:
    return "".join(chr(c) if PRINTABLE_MIN <= c <= PRINTABLE_MAX else PLACEHOLDER for c in window)


def _text_view(window: bytes, encoding: str) -> str:
    text = window.decode(encoding, errors="replace")
    return "".join(ch if ch != "\ufffd" and ch.isprintable() else PLACEHOLDER for ch in text)


def unix_timestamp(seconds: int | None) -> str | None:
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def interpret(window: bytes, offset: int, endian: str) -> Interpretation:
    """Decode `window` (the bytes starting at `offset`) under `endian`.

    Only the first 8 bytes are considered. Text views always render every
    byte in the window. The timestamp uses the little-endian u32 regardless
    of `endian`. `endian` may use the short forms 'le'/'be'.
    """
    endian = checked_endian(endian)
    window = bytes(window[:WINDOW_SIZE])
    unix_le = _int_field(window, 4, "little", False)
    return Interpretation(
        offset=offset,
        endian=endian,
        raw=window,
        uint8=_int_field(window, 1, endian, False),
        int8=_int_field(window, 1, endian, True),
        uint16=_int_field(window, 2, endian, False),
        int16=_int_field(window, 2, endian, True),
        uint32=_int_field(window, 4, endian, False),
        int32=_int_field(window, 4, endian, True),
        uint64=_int_field(window, 8, endian, False),
        int64=_int_field(window, 8, endian, True),
        float32=_float_field(window, 4, endian),
        float64=_float_field(window, 8, endian),
        ascii=ascii_view(window),
        utf8=_text_view(window, "utf-8"),
        utf16le=_text_view(window, "utf-16-le"),
        unix_le=unix_le,
        unix_time=unix_timestamp(unix_le),
    )
