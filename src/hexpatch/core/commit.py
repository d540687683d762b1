"""Atomic write-back of pending edits."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

from hexpatch.core.errors import IOFailure, StaleSource
from hexpatch.core.io import PagedReader
from hexpatch.core.overlay import EditOverlay

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".hexpatch.tmp"


@dataclass(frozen=True)
class CommitReport:
    path: str
    edits: int
    bytes_written: int


def _reopen(source: PagedReader) -> None:
    try:
        source.reopen()
    except OSError as e:
        raise IOFailure(f"Cannot re-open {source.path}: {e}") from e


def write_merged(source: PagedReader, overlay: EditOverlay, dest, *, chunk_size: int) -> int:
    """Stream the disk bytes with pending edits applied into `dest`. Returns bytes written."""
    written = 0
    for offset, chunk in source.iter_chunks(chunk_size):
        dest.write(overlay.apply(offset, chunk))
        written += len(chunk)
    return written


def commit_overlay(
    source: PagedReader, overlay: EditOverlay, *, chunk_size: int = 64 * 1024
) -> CommitReport:
    """Fold `overlay` into the file behind `source`, all or nothing.

    The merged content goes to a temporary file in the same directory, which
    then replaces the original with `os.replace`. On any failure the temporary
    file is removed, the original is untouched and `IOFailure` is raised.
    The overlay itself is never modified here; the caller clears it on success.
    `source` is re-opened afterwards so it reads the new content; if only that
    step fails, the file is already replaced and `StaleSource` is raised.
    """
    path = Path(source.path)
    if not len(overlay):
        return CommitReport(str(path), 0, 0)

    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=TEMP_SUFFIX
        )
    except OSError as e:
        raise IOFailure(f"Cannot create temporary file next to {path}: {e}") from e

    tmp_path = Path(tmp_name)
    replaced = False
    try:
        with os.fdopen(fd, "wb") as out:
            written = write_merged(source, overlay, out, chunk_size=chunk_size)
            out.flush()
            os.fsync(out.fileno())
        if written != overlay.limit:
            raise IOFailure(
                f"{path} changed size on disk ({written} bytes, expected {overlay.limit})"
            )
        shutil.copymode(path, tmp_path)
        # Windows refuses to replace a file that is still open or mapped.
        source.close()
        os.replace(tmp_path, path)
        replaced = True
    except OSError as e:
        raise IOFailure(f"Failed to save {path}: {e}") from e
    finally:
        if not replaced:
            with suppress(OSError):
                tmp_path.unlink()
            if source.closed:
                _reopen(source)

    try:
        _reopen(source)
    except IOFailure as e:
        raise StaleSource(f"Saved {path}, but re-opening it failed: {e}", len(overlay)) from e

    logger.info("Committed %d edit(s) to %s (%d bytes)", len(overlay), path, written)
    return CommitReport(str(path), len(overlay), written)
