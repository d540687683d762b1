"""One open file: pending edits, history and the operations over them."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from hexpatch.config import DEFAULT_CONFIG, EditorConfig
from hexpatch.core.commit import CommitReport, commit_overlay
from hexpatch.core.endian import Endian
from hexpatch.core.errors import InvalidPattern, InvalidValue, IOFailure, OutOfRange, StaleSource
from hexpatch.core.export import export_array
from hexpatch.core.history import EditRecord, History
from hexpatch.core.interpret import WINDOW_SIZE, Interpretation, checked_endian, interpret
from hexpatch.core.io import PagedReader
from hexpatch.core.overlay import EditOverlay, check_byte
from hexpatch.core.search import find_all, find_bytes, query_bytes
from hexpatch.core.window import RangeReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ByteChange:
    """New effective value at `offset` after an edit, undo or redo."""

    offset: int
    value: int


Listener = Callable[[ByteChange], None]


class Session:
    """Editing state for a single file.

    All public operations take the session lock, so edits, history moves and
    the commit never interleave with each other or with reads.

    Usage:
        with Session.open("firmware.bin") as s:
            s.apply_edit(0, 0x5A)
            s.commit()
    """

    def __init__(self, source: PagedReader, config: EditorConfig = DEFAULT_CONFIG) -> None:
        self._source = source
        self._config = config
        self._length = source.size
        self._overlay = EditOverlay(self._length)
        self._history = History(config.max_history)
        self._reader = RangeReader(source, self._overlay)
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self.selected_offset = 0
        self.endian: Endian = config.endian

    @classmethod
    def open(cls, path: str, config: EditorConfig | None = None) -> Session:
        config = config or DEFAULT_CONFIG
        source = PagedReader(
            str(path),
            page_size=config.page_size,
            cache_pages=config.cache_pages,
            use_mmap=config.use_mmap,
        )
        logger.debug("Opened %s (%d bytes)", path, source.size)
        return cls(source, config)

    def close(self) -> None:
        with self._lock:
            if self._overlay:
                logger.info(
                    "Closing %s with %d uncommitted edit(s); they are discarded",
                    self.path,
                    len(self._overlay),
                )
            self._source.close()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Introspection

    @property
    def path(self) -> str:
        return self._source.path

    @property
    def config(self) -> EditorConfig:
        return self._config

    @property
    def length(self) -> int:
        return self._length

    @property
    def is_dirty(self) -> bool:
        return bool(self._overlay)

    @property
    def pending_count(self) -> int:
        return len(self._overlay)

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def pending_edits(self) -> dict[int, int]:
        with self._lock:
            return self._overlay.snapshot()

    # Observers

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _notify(self, change: ByteChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    # Reading

    def read_byte(self, offset: int) -> int:
        with self._lock:
            return self._reader.byte_at(offset)

    def read_range(self, offset: int, length: int) -> bytes:
        with self._lock:
            return self._reader.read(offset, length)

    # Editing

    def _check_offset(self, offset: int) -> None:
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise OutOfRange(f"offset must be an integer, got {type(offset).__name__}")
        if not 0 <= offset < self._length:
            raise OutOfRange(f"offset {offset} outside [0, {self._length})")

    def apply_edit(self, offset: int, value: int) -> ByteChange:
        """Set the byte at `offset` to `value` as a pending, undoable edit."""
        self._check_offset(offset)
        check_byte(value)
        with self._lock:
            previous = self._reader.byte_at(offset)
            self._overlay.set(offset, value)
            self._history.record(EditRecord(offset, value, previous))
            change = ByteChange(offset, value)
        self._notify(change)
        return change

    def toggle_bit(self, offset: int, bit: int) -> ByteChange:
        """Flip bit `bit` (0 = least significant) of the byte at `offset`."""
        if isinstance(bit, bool) or not isinstance(bit, int) or not 0 <= bit <= 7:
            raise InvalidValue(f"bit index must be in 0..7 (got {bit})")
        self._check_offset(offset)
        with self._lock:
            value = self._reader.byte_at(offset) ^ (1 << bit)
            return self.apply_edit(offset, value)

    def undo(self) -> ByteChange | None:
        """Revert the newest edit. Returns None when there is nothing to undo."""
        with self._lock:
            record = self._history.pop_undo()
            if record is None:
                return None
            self._overlay.set(record.offset, record.previous)
            change = ByteChange(record.offset, record.previous)
        self._notify(change)
        return change

    def redo(self) -> ByteChange | None:
        """Re-apply the newest undone edit. Returns None when there is nothing to redo."""
        with self._lock:
            record = self._history.pop_redo()
            if record is None:
                return None
            self._overlay.set(record.offset, record.value)
            change = ByteChange(record.offset, record.value)
        self._notify(change)
        return change

    def commit(self) -> CommitReport:
        """Write pending edits to disk atomically, then drop overlay and history.

        On `IOFailure` the file, the overlay and the history are left as they were.
        `StaleSource` means the file was written but could not be re-opened; the
        edits are on disk, so overlay and history are dropped before it propagates.
        """
        with self._lock:
            try:
                report = commit_overlay(
                    self._source, self._overlay, chunk_size=self._config.chunk_size
                )
            except StaleSource:
                logger.error("Saved %s but could not re-open it", self.path)
                self._overlay.clear()
                self._history.clear()
                raise
            except IOFailure:
                logger.warning("Save of %s failed; %d edit(s) kept", self.path, len(self._overlay))
                raise
            self._overlay.clear()
            self._history.clear()
            return report

    # Search and export

    def search(self, query: str, is_hex: bool = False, *, strict: bool = False) -> list[int]:
        """Offsets of every match in the committed (on-disk) bytes.

        Pending edits are not searched. A malformed hex query yields an empty
        result, or raises `InvalidPattern` when `strict` is set.
        """
        try:
            needle = query_bytes(query, is_hex=is_hex)
        except InvalidPattern as e:
            if strict:
                raise
            logger.warning("%s", e)
            return []
        with self._lock:
            return find_all(self._source, needle, chunk_size=self._config.chunk_size)

    def find_next(self, query: str, is_hex: bool = False, start: int = 0) -> int | None:
        needle = query_bytes(query, is_hex=is_hex)
        with self._lock:
            return find_bytes(self._source, needle, start, chunk_size=self._config.chunk_size)

    def export(self, fmt: str | None = None) -> str:
        with self._lock:
            return export_array(
                self._source,
                self._overlay,
                fmt or self._config.export_format,
                chunk_size=self._config.chunk_size,
            )

    # Interpretation

    def interpret_at(self, offset: int, endian: str | None = None) -> Interpretation:
        """Decode the up-to-8-byte window at `offset` (pending edits included)."""
        self._check_offset(offset)
        resolved = checked_endian(endian) if endian is not None else self.endian
        with self._lock:
            window = self._reader.read(offset, WINDOW_SIZE)
            return interpret(window, offset, resolved)

    def select_offset(self, offset: int) -> Interpretation:
        self._check_offset(offset)
        with self._lock:
            self.selected_offset = offset
            return self.interpret_at(offset)

    def set_endianness(self, endian: str) -> Interpretation:
        """Switch byte order and re-decode the last selected offset from a fresh read."""
        resolved = checked_endian(endian)
        with self._lock:
            self.endian = resolved
            return self.interpret_at(self.selected_offset)
