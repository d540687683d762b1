from __future__ import annotations

from hexpatch.core.errors import OutOfRange
from hexpatch.core.io import PagedReader
from hexpatch.core.overlay import EditOverlay


class RangeReader:
    """Materializes byte windows with pending edits applied.

    Every window handed out (display, interpretation, previews) goes through
    here so uncommitted edits are always visible. Results are fresh `bytes`
    objects; nothing returned aliases the overlay or the mapping.
    """

    def __init__(self, source: PagedReader, overlay: EditOverlay) -> None:
        self._source = source
        self._overlay = overlay

    @property
    def size(self) -> int:
        return self._overlay.limit

    def read(self, offset: int, length: int) -> bytes:
        """Read `length` bytes at `offset`, silently clamped at end of file."""
        if offset < 0:
            raise OutOfRange(f"offset must be >= 0 (got {offset})")
        if length < 0:
            raise OutOfRange(f"length must be >= 0 (got {length})")
        length = min(length, max(0, self.size - offset))
        if length == 0:
            return b""
        return self._overlay.apply(offset, self._source.read(offset, length))

    def byte_at(self, offset: int) -> int:
        if not 0 <= offset < self.size:
            raise OutOfRange(f"offset {offset} outside [0, {self.size})")
        pending = self._overlay.get(offset)
        if pending is not None:
            return pending
        value = self._source.byte_at(offset)
        if value is None:
            # File shrank underneath the session.
            raise OutOfRange(f"offset {offset} is past the end of {self._source.path}")
        return value
