from __future__ import annotations

import argparse
import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from hexpatch.config import find_config, load_config
from hexpatch.core.categories import NONPRINTABLE, NULL, REPEAT_MULTI, REPEAT_SINGLE, classify
from hexpatch.core.errors import ConfigError, HexpatchError
from hexpatch.core.export import available_formats
from hexpatch.core.interpret import Interpretation, ascii_view
from hexpatch.core.session import Session

ROW_BYTES = 16

CATEGORY_STYLES = {
    NONPRINTABLE: "dim",
    NULL: "grey50",
    REPEAT_SINGLE: "yellow",
    REPEAT_MULTI: "magenta",
}


def _int(text: str) -> int:
    """Parse decimal or 0x-prefixed integers."""
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None


def _assignment(text: str) -> tuple[int, int]:
    offset, sep, value = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected OFFSET=VALUE, got {text!r}")
    return _int(offset), _int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hexpatch", description="Inspect and patch binary files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="YAML config file (default: $HEXPATCH_CONFIG)")
    parser.add_argument("path", help="Path to binary file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("info", help="Show file size")

    p = sub.add_parser("dump", help="Hex dump a range")
    p.add_argument("offset", type=_int)
    p.add_argument("length", type=_int, nargs="?", default=256)

    p = sub.add_parser("search", help="List offsets of a text or hex pattern")
    p.add_argument("query")
    p.add_argument("--hex", action="store_true", help="Treat QUERY as hex byte pairs")

    p = sub.add_parser("inspect", help="Decode the bytes at an offset")
    p.add_argument("offset", type=_int)
    p.add_argument("--endian", choices=["little", "big", "le", "be"])

    p = sub.add_parser("export", help="Render the file as an array literal")
    p.add_argument("--format", choices=available_formats())
    p.add_argument("-o", "--output", help="Write to file instead of stdout")

    p = sub.add_parser("patch", help="Set bytes and save")
    p.add_argument("edits", type=_assignment, nargs="+", metavar="OFFSET=VALUE")
    return parser


def render_dump(session: Session, offset: int, length: int) -> Table:
    data = session.read_range(offset, length)
    cats = classify(data)
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("offset", style="cyan", no_wrap=True)
    table.add_column(" ".join(f"{i:02X}" for i in range(ROW_BYTES)), no_wrap=True)
    table.add_column("ascii", no_wrap=True)
    for row in range(0, len(data), ROW_BYTES):
        chunk = data[row : row + ROW_BYTES]
        hex_text = Text()
        for i, b in enumerate(chunk):
            if i:
                hex_text.append(" ")
            hex_text.append(f"{b:02X}", style=CATEGORY_STYLES.get(cats[row + i], ""))
        table.add_row(f"{offset + row:08X}", hex_text, ascii_view(chunk))
    return table


def render_interpretation(interp: Interpretation) -> Table:
    table = Table(title=f"0x{interp.offset:08X} ({interp.endian})", show_header=False, box=None)
    table.add_column("field", style="bold")
    table.add_column("value")
    rows = [
        ("bytes", interp.hex),
        ("u8 / i8", f"{interp.uint8} / {interp.int8}"),
        ("u16 / i16", f"{interp.uint16} / {interp.int16}"),
        ("u32 / i32", f"{interp.uint32} / {interp.int32}"),
        ("u64 / i64", f"{interp.uint64} / {interp.int64}"),
        ("f32", str(interp.float32)),
        ("f64", str(interp.float64)),
        ("ascii", interp.ascii),
        ("utf-8", interp.utf8),
        ("utf-16le", interp.utf16le),
    ]
    if interp.unix_time is not None:
        rows.append(("unix (le)", f"{interp.unix_le} -> {interp.unix_time}"))
    for name, value in rows:
        table.add_row(name, Text(value))
    return table


def run(args: argparse.Namespace, session: Session, console: Console) -> int:
    if args.command == "info":
        console.print(f"{session.path}: {session.length} bytes")
    elif args.command == "dump":
        console.print(render_dump(session, args.offset, args.length))
    elif args.command == "search":
        hits = session.search(args.query, args.hex, strict=True)
        for hit in hits:
            console.print(f"0x{hit:08X}")
        console.print(f"{len(hits)} match(es)", style="bold")
    elif args.command == "inspect":
        if args.endian:
            session.endian = "big" if args.endian in ("big", "be") else "little"
        console.print(render_interpretation(session.select_offset(args.offset)))
    elif args.command == "export":
        text = session.export(args.format)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(text + "\n")
        else:
            console.print(text, markup=False, highlight=False, soft_wrap=True)
    elif args.command == "patch":
        for offset, value in args.edits:
            session.apply_edit(offset, value)
        report = session.commit()
        console.print(f"Saved {report.edits} edit(s) to {report.path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()
    err = Console(stderr=True)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err, show_path=False)],
        )

    if not os.path.exists(args.path):
        print(f"hexpatch: file not found: {args.path}", file=sys.stderr)
        return 2

    try:
        config = load_config(args.config) if args.config else find_config()
    except ConfigError as e:
        print(f"hexpatch: {e}", file=sys.stderr)
        return 2

    try:
        with Session.open(args.path, config) as session:
            return run(args, session, console)
    except HexpatchError as e:
        print(f"hexpatch: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
