from __future__ import annotations

from pathlib import Path

import pytest

from hexpatch.core.errors import OutOfRange
from hexpatch.core.io import PagedReader
from hexpatch.core.overlay import EditOverlay
from hexpatch.core.window import RangeReader


def _reader(tmp_path: Path, data: bytes) -> PagedReader:
    p = tmp_path / "w.bin"
    p.write_bytes(data)
    return PagedReader(str(p))


def test_read_merges_overlay_without_touching_disk(tmp_path: Path) -> None:
    with _reader(tmp_path, b"ABCDEFGH") as src:
        ov = EditOverlay(src.size)
        rr = RangeReader(src, ov)
        ov.set(1, ord("z"))
        assert rr.read(0, 4) == b"AzCD"
        assert src.read(0, 4) == b"ABCD"
        assert rr.byte_at(1) == ord("z")
        assert rr.byte_at(2) == ord("C")


def test_read_clamps_at_eof(tmp_path: Path) -> None:
    with _reader(tmp_path, b"ABCDEFGH") as src:
        rr = RangeReader(src, EditOverlay(src.size))
        assert rr.read(src.size - 1, 10) == b"H"
        assert rr.read(src.size, 10) == b""
        assert rr.read(100, 10) == b""
        assert rr.read(0, 0) == b""


def test_read_rejects_negative(tmp_path: Path) -> None:
    with _reader(tmp_path, b"AB") as src:
        rr = RangeReader(src, EditOverlay(src.size))
        with pytest.raises(OutOfRange):
            rr.read(-1, 1)
        with pytest.raises(OutOfRange):
            rr.read(0, -1)
        with pytest.raises(OutOfRange):
            rr.byte_at(2)


def test_returned_window_does_not_change_after_edit(tmp_path: Path) -> None:
    with _reader(tmp_path, b"ABCD") as src:
        ov = EditOverlay(src.size)
        rr = RangeReader(src, ov)
        window = rr.read(0, 4)
        ov.set(0, 0)
        assert window == b"ABCD"
