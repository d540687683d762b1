from __future__ import annotations

from collections.abc import Iterator

from hexpatch.core.errors import InvalidValue, OutOfRange


def check_byte(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValue(f"byte value must be an integer, got {type(value).__name__}")
    if not 0 <= value <= 255:
        raise InvalidValue(f"byte value must be in 0..255 (got {value})")
    return value


class EditOverlay:
    """Sparse map of offset -> pending byte value, not yet written to disk.

    A missing key means the byte equals whatever is on disk at that offset.
    Every key is kept below `limit` (the session's file length).
    """

    def __init__(self, limit: int) -> None:
        self._limit = int(limit)
        self._values: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, offset: object) -> bool:
        return offset in self._values

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._values))

    @property
    def limit(self) -> int:
        return self._limit

    def get(self, offset: int) -> int | None:
        return self._values.get(offset)

    def set(self, offset: int, value: int) -> None:
        if not 0 <= offset < self._limit:
            raise OutOfRange(f"offset {offset} outside [0, {self._limit})")
        self._values[offset] = check_byte(value)

    def clear(self) -> None:
        self._values.clear()

    def snapshot(self) -> dict[int, int]:
        """Copy of the pending edits; later mutations do not show through."""
        return dict(self._values)

    def apply(self, offset: int, data: bytes) -> bytes:
        """Return `data` (read from disk at `offset`) with pending values substituted."""
        if not self._values or not data:
            return bytes(data)
        out = bytearray(data)
        end = offset + len(out)
        if len(out) <= len(self._values):
            for pos in range(offset, end):
                value = self._values.get(pos)
                if value is not None:
                    out[pos - offset] = value
        else:
            for pos, value in self._values.items():
                if offset <= pos < end:
                    out[pos - offset] = value
        return bytes(out)
