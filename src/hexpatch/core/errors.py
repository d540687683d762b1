"""Error types raised by the editing engine."""

from __future__ import annotations


class HexpatchError(Exception):
    """Base class for all engine errors surfaced to callers."""


class OutOfRange(HexpatchError, ValueError):
    """Raised when an offset or length falls outside the file."""


class InvalidValue(HexpatchError, ValueError):
    """Raised when a byte value is outside 0..255 (or a bit index outside 0..7)."""


class InvalidPattern(HexpatchError, ValueError):
    """Raised when a hex search query cannot be decoded."""


class IOFailure(HexpatchError):
    """Raised when reading, writing or replacing the backing file fails."""


class StaleSource(IOFailure):
    """The file was saved, but re-opening it for reading afterwards failed.

    Pending edits are on disk at this point; only the session's reader is broken.
    """

    def __init__(self, message: str, edits: int = 0):
        super().__init__(message)
        self.edits = edits


class ConfigError(HexpatchError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors
