from __future__ import annotations

import os
from collections import OrderedDict
from collections.abc import Iterator
from contextlib import suppress
from dataclasses import dataclass

try:
    import mmap as _mmap_mod  # type: ignore
except Exception:  # pragma: no cover - platform-specific
    _mmap_mod = None  # type: ignore

from hexpatch.core.errors import IOFailure, OutOfRange


@dataclass(frozen=True)
class _Page:
    index: int
    data: bytes


class PagedReader:
    """Read-only, bounds-checked random access to the file on disk.

    Prefers `mmap` for slices; falls back to buffered reads with a small LRU page cache.
    The full file is never loaded into memory at once. This is the ground truth that
    pending edits are layered over.

    A missing path raises `FileNotFoundError`; any other OS error while opening
    or reading surfaces as `IOFailure`.
    """

    def __init__(
        self,
        path: str,
        *,
        page_size: int = 64 * 1024,
        cache_pages: int = 16,
        use_mmap: bool = True,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if cache_pages <= 0:
            raise ValueError("cache_pages must be positive")

        self._path = path
        self._page_size = int(page_size)
        self._cache_limit = int(cache_pages)
        self._use_mmap = use_mmap
        self._cache: OrderedDict[int, _Page] = OrderedDict()
        self._fh = None
        self._mmap = None
        self._open()

    def _open(self) -> None:
        try:
            st = os.stat(self._path)
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {self._path}") from None
        except OSError as e:
            raise IOFailure(f"Cannot stat {self._path}: {e}") from e

        self._size = int(st.st_size)
        try:
            self._fh = open(self._path, "rb", buffering=0)  # noqa: SIM115
        except OSError as e:
            raise IOFailure(f"Cannot open {self._path}: {e}") from e
        self._cache.clear()

        self._mmap = None
        if self._use_mmap and _mmap_mod is not None and self._size > 0:
            try:
                self._mmap = _mmap_mod.mmap(
                    self._fh.fileno(),
                    length=0,
                    access=_mmap_mod.ACCESS_READ,
                )
            except Exception:
                # Buffered page cache still works without a mapping.
                self._mmap = None

    def close(self) -> None:
        if getattr(self, "_mmap", None) is not None:
            with suppress(Exception):
                self._mmap.close()  # type: ignore[union-attr]
            self._mmap = None
        if getattr(self, "_fh", None) is not None:
            with suppress(Exception):
                self._fh.close()  # type: ignore[union-attr]
            self._fh = None

    def reopen(self) -> None:
        """Close and re-open the path, dropping cached pages.

        Needed after the file has been atomically replaced: the old handle and
        mapping still point at the previous inode.
        """
        self.close()
        self._open()

    def __enter__(self) -> PagedReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def size(self) -> int:
        """File size in bytes."""
        return self._size

    @property
    def path(self) -> str:
        """File path."""
        return self._path

    @property
    def closed(self) -> bool:
        return self._fh is None

    # Internal: fetch a page (LRU-cached) in buffered mode
    def _get_page(self, index: int) -> _Page:
        if index in self._cache:
            page = self._cache.pop(index)
            self._cache[index] = page  # move to end (most-recent)
            return page

        start = index * self._page_size
        if start >= self._size:
            data = b""
        else:
            to_read = min(self._page_size, self._size - start)
            try:
                self._fh.seek(start)  # type: ignore[union-attr]
                data = self._fh.read(to_read)  # type: ignore[union-attr]
            except OSError as e:
                raise IOFailure(f"Read of {self._path} at {start} failed: {e}") from e
        page = _Page(index=index, data=data)

        self._cache[index] = page
        if len(self._cache) > self._cache_limit:
            self._cache.popitem(last=False)  # evict LRU
        return page

    def read(self, offset: int, length: int) -> bytes:
        """Read up to `length` bytes starting at `offset`.

        - Negative `offset` or `length` raises `OutOfRange`.
        - If `offset` >= size, returns b"".
        - Reading past EOF returns the truncated data.
        """
        if offset < 0:
            raise OutOfRange(f"offset must be >= 0 (got {offset})")
        if length < 0:
            raise OutOfRange(f"length must be >= 0 (got {length})")
        if length == 0 or offset >= self._size:
            return b""

        end = min(self._size, offset + length)
        if self._mmap is not None:
            return bytes(self._mmap[offset:end])  # type: ignore[index]

        result = bytearray()
        pos = offset
        while pos < end:
            page_index = pos // self._page_size
            page = self._get_page(page_index)
            within = pos - (page_index * self._page_size)
            take = min(len(page.data) - within, end - pos)
            if take <= 0:
                break
            result += page.data[within : within + take]
            pos += take
        return bytes(result)

    def byte_at(self, offset: int) -> int | None:
        """Return the byte value at `offset`, or None if at EOF.

        Negative offsets raise `OutOfRange`.
        """
        if offset < 0:
            raise OutOfRange(f"offset must be >= 0 (got {offset})")
        if offset >= self._size:
            return None

        if self._mmap is not None:
            return self._mmap[offset]  # type: ignore[index]

        page_index = offset // self._page_size
        within = offset - page_index * self._page_size
        page = self._get_page(page_index)
        if within >= len(page.data):
            return None
        return page.data[within]

    def iter_chunks(self, chunk_size: int = 64 * 1024) -> Iterator[tuple[int, bytes]]:
        """Yield `(offset, data)` pairs covering the whole file in order."""
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        offset = 0
        while offset < self._size:
            data = self.read(offset, chunk_size)
            if not data:
                break
            yield offset, data
            offset += len(data)
