from __future__ import annotations

import re

from hexpatch.core.errors import InvalidPattern
from hexpatch.core.io import PagedReader

_HEX_PAIRS = re.compile(r"^(?:[0-9a-fA-F]{2})*$")


def parse_hex_query(query: str) -> bytes:
    """Decode a hex query such as ``"de ad BE EF"`` into bytes.

    All whitespace is removed first; what remains must be whole pairs of hex
    digits, otherwise `InvalidPattern` is raised.
    """
    cleaned = "".join(query.split())
    if not _HEX_PAIRS.match(cleaned):
        raise InvalidPattern(f"Invalid hex pattern: {query!r}")
    return bytes.fromhex(cleaned)


def query_bytes(query: str, *, is_hex: bool, encoding: str = "utf-8") -> bytes:
    if is_hex:
        return parse_hex_query(query)
    try:
        return query.encode(encoding)
    except UnicodeEncodeError as e:
        raise InvalidPattern(f"Cannot encode {query!r} as {encoding}: {e}") from None


def find_all(reader: PagedReader, needle: bytes, *, chunk_size: int = 64 * 1024) -> list[int]:
    """Every offset where `needle` occurs in the on-disk file, ascending.

    Overlapping matches are all reported. Chunks are read with a
    len(needle)-1 tail so matches crossing a chunk boundary are found once.
    """
    if not needle or len(needle) > reader.size:
        return []
    overlap = len(needle) - 1
    hits: list[int] = []
    pos = 0
    while pos < reader.size:
        end = min(reader.size, pos + chunk_size)
        data = reader.read(pos, end - pos + overlap)
        idx = data.find(needle)
        while idx != -1 and pos + idx < end:
            hits.append(pos + idx)
            idx = data.find(needle, idx + 1)
        pos = end
    return hits


def find_bytes(
    reader: PagedReader, needle: bytes, start: int, *, chunk_size: int = 64 * 1024
) -> int | None:
    """Find `needle` bytes at or after `start`. Returns offset or None."""
    if start < 0:
        start = 0
    if not needle or start >= reader.size:
        return None

    overlap = len(needle) - 1
    pos = start
    while pos < reader.size:
        end = min(reader.size, pos + chunk_size)
        data = reader.read(pos, end - pos + overlap)
        idx = data.find(needle)
        if idx != -1 and pos + idx < end:
            return pos + idx
        pos = end
    return None
