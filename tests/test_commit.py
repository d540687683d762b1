from __future__ import annotations

import os
from pathlib import Path

import pytest

from hexpatch.core import commit as commit_mod
from hexpatch.core.commit import TEMP_SUFFIX, commit_overlay
from hexpatch.core.errors import IOFailure, StaleSource
from hexpatch.core.io import PagedReader
from hexpatch.core.overlay import EditOverlay


def _leftovers(directory: Path) -> list[Path]:
    return [p for p in directory.iterdir() if p.name.endswith(TEMP_SUFFIX)]


@pytest.mark.parametrize("use_mmap", [True, False])
def test_commit_writes_merged_content(tmp_path: Path, use_mmap: bool) -> None:
    p = tmp_path / "f.bin"
    p.write_bytes(bytes(range(200)))
    with PagedReader(str(p), use_mmap=use_mmap) as src:
        ov = EditOverlay(src.size)
        ov.set(0, 0x5A)
        ov.set(199, 0x00)
        report = commit_overlay(src, ov, chunk_size=64)
        assert report.edits == 2
        assert report.bytes_written == 200
        # reader now sees the new file
        assert src.read(0, 1) == b"\x5a"
    expected = bytearray(range(200))
    expected[0] = 0x5A
    expected[199] = 0
    assert p.read_bytes() == bytes(expected)
    assert _leftovers(tmp_path) == []


def test_commit_without_edits_is_noop(tmp_path: Path) -> None:
    p = tmp_path / "f.bin"
    p.write_bytes(b"abc")
    before = os.stat(p).st_mtime_ns
    with PagedReader(str(p)) as src:
        report = commit_overlay(src, EditOverlay(src.size))
    assert report.edits == 0
    assert os.stat(p).st_mtime_ns == before


def test_replace_failure_leaves_file_untouched(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "f.bin"
    p.write_bytes(b"ABCD")

    def boom(src, dst):
        raise PermissionError("denied")

    monkeypatch.setattr(commit_mod.os, "replace", boom)
    with PagedReader(str(p)) as src:
        ov = EditOverlay(src.size)
        ov.set(1, 0)
        with pytest.raises(IOFailure):
            commit_overlay(src, ov)
        # still readable and still the original content
        assert src.read(0, 4) == b"ABCD"
        assert ov.snapshot() == {1: 0}
    assert p.read_bytes() == b"ABCD"
    assert _leftovers(tmp_path) == []


def test_write_failure_leaves_file_untouched(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "f.bin"
    p.write_bytes(b"ABCD")

    def broken(source, overlay, dest, *, chunk_size):
        raise OSError("disk full")

    monkeypatch.setattr(commit_mod, "write_merged", broken)
    with PagedReader(str(p)) as src:
        ov = EditOverlay(src.size)
        ov.set(0, 0)
        with pytest.raises(IOFailure, match="disk full"):
            commit_overlay(src, ov)
    assert p.read_bytes() == b"ABCD"
    assert _leftovers(tmp_path) == []


def test_reopen_failure_after_replace_is_stale_source(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    p = tmp_path / "f.bin"
    p.write_bytes(b"ABCD")
    src = PagedReader(str(p))

    def no_reopen():
        raise PermissionError("denied")

    monkeypatch.setattr(src, "reopen", no_reopen)
    ov = EditOverlay(src.size)
    ov.set(3, 0x21)
    with pytest.raises(StaleSource) as exc:
        commit_overlay(src, ov)
    assert exc.value.edits == 1
    assert "Saved" in str(exc.value)
    # the file on disk already holds the edit
    assert p.read_bytes() == b"ABC!"
    assert _leftovers(tmp_path) == []
    src.close()
