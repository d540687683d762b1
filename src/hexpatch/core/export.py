from __future__ import annotations

from collections.abc import Callable

from hexpatch.core.io import PagedReader
from hexpatch.core.overlay import EditOverlay

DEFAULT_FORMAT = "hex"


def _literals(data: bytes) -> str:
    return ", ".join(f"0x{b:02x}" for b in data)


def _render_hex(data: bytes) -> str:
    return " ".join(f"{b:02x}" for b in data)


def _render_c(data: bytes) -> str:
    return f"unsigned char data[] = {{ {_literals(data)} }};"


def _render_rust(data: bytes) -> str:
    return f"const DATA: [u8; {len(data)}] = [ {_literals(data)} ];"


def _render_python(data: bytes) -> str:
    return f"DATA = bytes([{_literals(data)}])"


FORMATS: dict[str, Callable[[bytes], str]] = {
    "hex": _render_hex,
    "c": _render_c,
    "rust": _render_rust,
    "python": _render_python,
}


def available_formats() -> list[str]:
    return list(FORMATS)


def merged_content(source: PagedReader, overlay: EditOverlay, *, chunk_size: int = 64 * 1024) -> bytes:
    """Whole file with pending edits applied. Materializes everything in memory."""
    out = bytearray()
    for offset, chunk in source.iter_chunks(chunk_size):
        out += overlay.apply(offset, chunk)
    return bytes(out)


def render(data: bytes, fmt: str | None) -> str:
    """Render `data` as an array literal; unknown formats fall back to plain hex."""
    renderer = FORMATS.get((fmt or DEFAULT_FORMAT).lower(), FORMATS[DEFAULT_FORMAT])
    return renderer(data)


def export_array(
    source: PagedReader, overlay: EditOverlay, fmt: str | None, *, chunk_size: int = 64 * 1024
) -> str:
    return render(merged_content(source, overlay, chunk_size=chunk_size), fmt)
