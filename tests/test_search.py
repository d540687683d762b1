from __future__ import annotations

from pathlib import Path

import pytest

from hexpatch.core.errors import InvalidPattern
from hexpatch.core.io import PagedReader
from hexpatch.core.search import find_all, find_bytes, parse_hex_query, query_bytes


def test_find_all_basic(tmp_path: Path) -> None:
    p = tmp_path / "abcd.bin"
    p.write_bytes(b"ABCD")
    with PagedReader(str(p)) as r:
        assert find_all(r, b"BC") == [1]
        assert find_all(r, parse_hex_query("41 43")) == []
        assert find_all(r, b"ABCD") == [0]


def test_find_all_overlapping(tmp_path: Path) -> None:
    p = tmp_path / "aaaa.bin"
    p.write_bytes(b"AAAAB")
    with PagedReader(str(p)) as r:
        assert find_all(r, b"AA") == [0, 1, 2]


def test_find_all_empty_or_too_long(tmp_path: Path) -> None:
    p = tmp_path / "short.bin"
    p.write_bytes(b"xy")
    with PagedReader(str(p)) as r:
        assert find_all(r, b"") == []
        assert find_all(r, b"xyz") == []


@pytest.mark.parametrize("use_mmap", [True, False])
def test_find_all_across_chunk_boundary(tmp_path: Path, use_mmap: bool) -> None:
    chunk = 64 * 1024
    buf = bytearray(b"A" * (chunk * 2 + 10))
    needle = b"XYZW"
    starts = [chunk - 2, chunk * 2 - 1]
    for s in starts:
        buf[s : s + len(needle)] = needle
    p = tmp_path / "boundary.bin"
    p.write_bytes(buf)
    with PagedReader(str(p), use_mmap=use_mmap) as r:
        assert find_all(r, needle, chunk_size=chunk) == starts
        # small chunks exercise the overlap tail many times
        assert find_all(r, needle, chunk_size=3) == starts


def test_find_bytes_forward(tmp_path: Path) -> None:
    data = b"hello world\x00\x01\x02DEADBEEFtrail DEADBEEF"
    p = tmp_path / "data.bin"
    p.write_bytes(data)
    with PagedReader(str(p)) as r:
        first = find_bytes(r, b"DEADBEEF", 0)
        assert first == data.index(b"DEADBEEF")
        assert find_bytes(r, b"DEADBEEF", first + 1) == data.rindex(b"DEADBEEF")
        assert find_bytes(r, b"NOPE", 0) is None


def test_parse_hex_query() -> None:
    assert parse_hex_query("de ad\tBE\nEF") == b"\xde\xad\xbe\xef"
    assert parse_hex_query("") == b""
    with pytest.raises(InvalidPattern):
        parse_hex_query("4G")
    with pytest.raises(InvalidPattern):
        parse_hex_query("414")


def test_query_bytes_text_is_utf8() -> None:
    assert query_bytes("é", is_hex=False) == b"\xc3\xa9"
    assert query_bytes("41", is_hex=True) == b"A"
