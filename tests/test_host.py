"""Tests for the request/response host."""

from pathlib import Path

import pytest

from hexpatch.config import EditorConfig
from hexpatch.core import commit as commit_mod
from hexpatch.core.host import (
    ApplyEdit,
    Commit,
    CommitResponse,
    EditResponse,
    ErrorResponse,
    Export,
    GetLength,
    HistoryResponse,
    InterpretationResponse,
    LengthResponse,
    RangeResponse,
    ReadRange,
    Redo,
    Search,
    SearchResponse,
    SelectOffset,
    SessionHost,
    SetEndianness,
    ToggleBit,
    Undo,
    to_message,
)
from hexpatch.core.session import Session


@pytest.fixture
def host(tmp_path: Path):
    p = tmp_path / "h.bin"
    p.write_bytes(b"ABCD")
    session = Session.open(str(p))
    yield SessionHost(session)
    session.close()


class TestReads:
    def test_length_and_range(self, host):
        assert host.handle(GetLength()) == LengthResponse(4)
        assert host.handle(ReadRange(3, 10)) == RangeResponse(3, b"D")

    def test_negative_range_is_error(self, host):
        resp = host.handle(ReadRange(-1, 1))
        assert isinstance(resp, ErrorResponse)
        assert resp.kind == "OutOfRange"


class TestEditing:
    def test_edit_undo_redo_flow(self, host):
        assert host.handle(ApplyEdit(0, 0x61)) == EditResponse(0, 0x61)
        assert host.handle(Undo()) == HistoryResponse(True, 0, 0x41)
        assert host.handle(Redo()) == HistoryResponse(True, 0, 0x61)

    def test_nothing_to_undo_or_redo(self, host):
        undo = host.handle(Undo())
        redo = host.handle(Redo())
        assert undo.applied is False and undo.message == "Nothing to undo"
        assert redo.applied is False and redo.message == "Nothing to redo"

    def test_invalid_value_rejected(self, host):
        resp = host.handle(ApplyEdit(0, 300))
        assert resp.kind == "InvalidValue"
        assert host.handle(ReadRange(0, 1)) == RangeResponse(0, b"A")

    def test_toggle_bit(self, host):
        assert host.handle(ToggleBit(0, 5)) == EditResponse(0, 0x61)

    def test_commit(self, host):
        host.handle(ApplyEdit(0, 0x5A))
        resp = host.handle(Commit())
        assert resp.success is True and resp.edits == 1
        assert Path(host.session.path).read_bytes() == b"ZBCD"
        assert host.handle(Undo()).applied is False


class TestQueries:
    def test_search(self, host):
        assert host.handle(Search("BC")) == SearchResponse((1,))
        bad = host.handle(Search("xyz", is_hex=True))
        assert bad.offsets == () and "Invalid hex pattern" in bad.error

    def test_export(self, host):
        assert host.handle(Export("rust")).text == "const DATA: [u8; 4] = [ 0x41, 0x42, 0x43, 0x44 ];"

    def test_select_and_endianness(self, host):
        resp = host.handle(SelectOffset(0))
        assert isinstance(resp, InterpretationResponse)
        assert resp.interpretation.uint32 == 0x44434241
        resp = host.handle(SetEndianness("big"))
        assert resp.interpretation.uint32 == 0x41424344
        assert host.handle(SetEndianness("sideways")).kind == "InvalidValue"

    def test_unknown_request_type(self, host):
        with pytest.raises(TypeError):
            host.handle(object())


def test_to_message(host):
    msg = to_message(host.handle(ReadRange(0, 2)))
    assert msg == {"type": "range", "offset": 0, "data": "QUI="}
    msg = to_message(host.handle(SelectOffset(0)))
    assert msg["type"] == "interpretation"
    assert msg["interpretation"]["raw"] == [0x41, 0x42, 0x43, 0x44]
    assert to_message(host.handle(Search("B")))["offsets"] == [1]


class _FailingHandle:
    def seek(self, pos):
        raise OSError(5, "Input/output error")

    def read(self, n):
        raise OSError(5, "Input/output error")

    def close(self):
        pass


class TestIOFailures:
    def test_read_error_becomes_error_response(self, tmp_path: Path):
        p = tmp_path / "eio.bin"
        p.write_bytes(b"ABCD")
        with Session.open(str(p), EditorConfig(use_mmap=False)) as session:
            session._source._fh = _FailingHandle()
            host = SessionHost(session)
            for request in (ReadRange(0, 2), SelectOffset(0), Export("hex"), Search("AB")):
                resp = host.handle(request)
                assert isinstance(resp, ErrorResponse), request
                assert resp.kind == "IOFailure"
                assert "Input/output error" in resp.message

    def test_failed_commit_reports_unsuccessful(self, host, monkeypatch):
        def boom(src, dst):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(commit_mod.os, "replace", boom)
        host.handle(ApplyEdit(0, 0x5A))
        resp = host.handle(Commit())
        assert isinstance(resp, CommitResponse)
        assert resp.success is False
        assert "read-only filesystem" in resp.message
        assert Path(host.session.path).read_bytes() == b"ABCD"
        assert host.handle(Undo()) == HistoryResponse(True, 0, 0x41)
