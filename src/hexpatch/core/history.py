from __future__ import annotations

from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class EditRecord:
    offset: int
    value: int  # value written by the edit
    previous: int  # effective value just before the edit


class History:
    """Linear undo/redo timeline of `EditRecord`s.

    Recording a new edit discards the redo stack; branching is not supported.
    With `max_depth` set, the oldest undo records are dropped first.
    """

    def __init__(self, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth <= 0:
            raise ValueError("max_depth must be positive")
        self._undo: deque[EditRecord] = deque(maxlen=max_depth)
        self._redo: list[EditRecord] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def record(self, record: EditRecord) -> None:
        self._undo.append(record)
        self._redo.clear()

    def pop_undo(self) -> EditRecord | None:
        """Move the newest record to the redo stack and return it (None if empty)."""
        if not self._undo:
            return None
        record = self._undo.pop()
        self._redo.append(record)
        return record

    def pop_redo(self) -> EditRecord | None:
        if not self._redo:
            return None
        record = self._redo.pop()
        self._undo.append(record)
        return record

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
