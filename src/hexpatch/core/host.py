"""Synchronous request/response boundary for UI and host collaborators.

Front ends never touch a `Session` directly: they build one of the request
types below, pass it to `SessionHost.handle`, and get back an immutable
response. Engine errors come back as `ErrorResponse` instead of raising, so a
transport can forward them as user-facing messages. Transport itself
(webview messages, sockets, ...) is the caller's business; `to_message`
flattens a response into a plain dict for that purpose.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import asdict, dataclass, fields
from typing import Any

from hexpatch.core.errors import HexpatchError, InvalidPattern, IOFailure, StaleSource
from hexpatch.core.interpret import Interpretation
from hexpatch.core.session import Session


# ============================================================================
# REQUESTS
# ============================================================================

@dataclass(frozen=True)
class GetLength:
    pass


@dataclass(frozen=True)
class ReadRange:
    offset: int
    length: int


@dataclass(frozen=True)
class ApplyEdit:
    offset: int
    value: int


@dataclass(frozen=True)
class ToggleBit:
    offset: int
    bit: int


@dataclass(frozen=True)
class Commit:
    pass


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


@dataclass(frozen=True)
class Search:
    query: str
    is_hex: bool = False


@dataclass(frozen=True)
class Export:
    format: str | None = None


@dataclass(frozen=True)
class SelectOffset:
    offset: int


@dataclass(frozen=True)
class SetEndianness:
    endian: str


# ============================================================================
# RESPONSES
# ============================================================================

@dataclass(frozen=True)
class LengthResponse:
    size: int


@dataclass(frozen=True)
class RangeResponse:
    offset: int
    data: bytes


@dataclass(frozen=True)
class EditResponse:
    """Acknowledges an edit with the new effective value."""

    offset: int
    value: int


@dataclass(frozen=True)
class CommitResponse:
    """Outcome of a save.

    `success` is False when nothing was written and the pending edits are kept.
    A save that reached the disk but could not re-open the file is a success
    whose message describes the re-open error.
    """

    success: bool
    message: str
    edits: int = 0


@dataclass(frozen=True)
class HistoryResponse:
    """Result of undo/redo.

    Attributes:
        applied: False when there was nothing to undo/redo
        offset: Offset that changed (None when not applied)
        value: New effective value (None when not applied)
        message: Informational text such as "Nothing to undo"
    """

    applied: bool
    offset: int | None = None
    value: int | None = None
    message: str = ""


@dataclass(frozen=True)
class SearchResponse:
    offsets: tuple[int, ...]
    error: str | None = None


@dataclass(frozen=True)
class ExportResponse:
    text: str


@dataclass(frozen=True)
class InterpretationResponse:
    interpretation: Interpretation


@dataclass(frozen=True)
class ErrorResponse:
    kind: str  # exception class name, e.g. "OutOfRange"
    message: str


Request = (
    GetLength | ReadRange | ApplyEdit | ToggleBit | Commit | Undo | Redo
    | Search | Export | SelectOffset | SetEndianness
)
Response = (
    LengthResponse | RangeResponse | EditResponse | CommitResponse | HistoryResponse
    | SearchResponse | ExportResponse | InterpretationResponse | ErrorResponse
)


# ============================================================================
# DISPATCH
# ============================================================================

class SessionHost:
    """Routes typed requests to a `Session`, one at a time."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._handlers: dict[type, Callable[[Any], Response]] = {
            GetLength: self._get_length,
            ReadRange: self._read_range,
            ApplyEdit: self._apply_edit,
            ToggleBit: self._toggle_bit,
            Commit: self._commit,
            Undo: self._undo,
            Redo: self._redo,
            Search: self._search,
            Export: self._export,
            SelectOffset: self._select_offset,
            SetEndianness: self._set_endianness,
        }

    def handle(self, request: Request) -> Response:
        handler = self._handlers.get(type(request))
        if handler is None:
            raise TypeError(f"Unsupported request: {type(request).__name__}")
        try:
            return handler(request)
        except HexpatchError as e:
            return ErrorResponse(kind=type(e).__name__, message=str(e))

    def _get_length(self, request: GetLength) -> Response:
        return LengthResponse(self.session.length)

    def _read_range(self, request: ReadRange) -> Response:
        return RangeResponse(request.offset, self.session.read_range(request.offset, request.length))

    def _apply_edit(self, request: ApplyEdit) -> Response:
        change = self.session.apply_edit(request.offset, request.value)
        return EditResponse(change.offset, change.value)

    def _toggle_bit(self, request: ToggleBit) -> Response:
        change = self.session.toggle_bit(request.offset, request.bit)
        return EditResponse(change.offset, change.value)

    def _commit(self, request: Commit) -> Response:
        try:
            report = self.session.commit()
        except StaleSource as e:
            return CommitResponse(True, str(e), e.edits)
        except IOFailure as e:
            return CommitResponse(False, str(e))
        return CommitResponse(True, f"Saved {report.path}", report.edits)

    def _undo(self, request: Undo) -> Response:
        change = self.session.undo()
        if change is None:
            return HistoryResponse(False, message="Nothing to undo")
        return HistoryResponse(True, change.offset, change.value)

    def _redo(self, request: Redo) -> Response:
        change = self.session.redo()
        if change is None:
            return HistoryResponse(False, message="Nothing to redo")
        return HistoryResponse(True, change.offset, change.value)

    def _search(self, request: Search) -> Response:
        try:
            hits = self.session.search(request.query, request.is_hex, strict=True)
        except InvalidPattern as e:
            return SearchResponse((), error=str(e))
        return SearchResponse(tuple(hits))

    def _export(self, request: Export) -> Response:
        return ExportResponse(self.session.export(request.format))

    def _select_offset(self, request: SelectOffset) -> Response:
        return InterpretationResponse(self.session.select_offset(request.offset))

    def _set_endianness(self, request: SetEndianness) -> Response:
        return InterpretationResponse(self.session.set_endianness(request.endian))


_MESSAGE_TYPES = {
    LengthResponse: "fileSize",
    RangeResponse: "range",
    EditResponse: "edited",
    CommitResponse: "saved",
    HistoryResponse: "history",
    SearchResponse: "searchResults",
    ExportResponse: "export",
    InterpretationResponse: "interpretation",
    ErrorResponse: "error",
}


def to_message(response: Response) -> dict[str, Any]:
    """Flatten a response into a JSON-friendly dict with a ``type`` key.

    Byte payloads are base64 encoded; interpretations are expanded to their fields.
    """
    message: dict[str, Any] = {"type": _MESSAGE_TYPES[type(response)]}
    for f in fields(response):
        value = getattr(response, f.name)
        if isinstance(value, bytes):
            value = base64.b64encode(value).decode("ascii")
        elif isinstance(value, Interpretation):
            value = asdict(value)
            value["raw"] = list(value["raw"])
        elif isinstance(value, tuple):
            value = list(value)
        message[f.name] = value
    return message
