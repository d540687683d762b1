"""Byte order handling for numeric decoding."""

from __future__ import annotations

import struct
from typing import Literal

Endian = Literal["little", "big"]

_ALIASES = {"little": "little", "le": "little", "big": "big", "be": "big"}


def normalize_endian(value: str | None, default: Endian = "little") -> Endian:
    """Normalize an endian name.

    Accepts 'little'/'big' and the short forms 'le'/'be' (any case).
    None yields `default`.

    Raises:
        ValueError: If value is not a recognised byte order
    """
    if value is None:
        return default
    resolved = _ALIASES.get(value.strip().lower())
    if resolved is None:
        raise ValueError(f"Invalid endian '{value}'. Expected 'little' or 'big'.")
    return resolved  # type: ignore[return-value]


def decode_int(data: bytes, endian: Endian, signed: bool) -> int:
    """Decode integer from bytes with specified endianness."""
    return int.from_bytes(data, byteorder=endian, signed=signed)


def decode_float32(data: bytes, endian: Endian) -> float:
    """Decode 32-bit float from bytes with specified endianness.

    Args:
        data: 4 bytes to decode
        endian: Byte order ('little' or 'big')

    Returns:
        Decoded float value
    """
    format_char = "<f" if endian == "little" else ">f"
    return struct.unpack(format_char, data)[0]


def decode_float64(data: bytes, endian: Endian) -> float:
    """Decode 64-bit float (double) from bytes with specified endianness.

    Args:
        data: 8 bytes to decode
        endian: Byte order ('little' or 'big')

    Returns:
        Decoded double value
    """
    format_char = "<d" if endian == "little" else ">d"
    return struct.unpack(format_char, data)[0]
