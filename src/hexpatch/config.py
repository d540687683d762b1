"""Editor configuration.

Settings are plain dataclass fields with defaults; a YAML file can override
any of them:

    endian: big
    export_format: c
    max_history: 500
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from hexpatch.core.endian import Endian, normalize_endian
from hexpatch.core.errors import ConfigError
from hexpatch.core.export import FORMATS

CONFIG_ENV = "HEXPATCH_CONFIG"


@dataclass(frozen=True)
class EditorConfig:
    """Settings for a session.

    Attributes:
        endian: Initial byte order for interpretation
        export_format: Format used when export is requested without one
        page_size: Page size of the buffered reader
        cache_pages: Number of pages kept in the reader's LRU cache
        use_mmap: Map the file instead of reading pages when possible
        chunk_size: Chunk size for search, export and commit scans
        max_history: Undo depth limit (None = unlimited)
    """

    endian: Endian = "little"
    export_format: str = "hex"
    page_size: int = 64 * 1024
    cache_pages: int = 16
    use_mmap: bool = True
    chunk_size: int = 64 * 1024
    max_history: int | None = None


DEFAULT_CONFIG = EditorConfig()

_POSITIVE_INTS = ("page_size", "cache_pages", "chunk_size")


def _validate(data: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    known = {f.name for f in fields(EditorConfig)}
    errors: list[str] = []
    values: dict[str, Any] = {}

    for key in sorted(set(data) - known):
        errors.append(f"Unknown setting '{key}'")

    if "endian" in data:
        try:
            values["endian"] = normalize_endian(str(data["endian"]))
        except ValueError as e:
            errors.append(str(e))

    if "export_format" in data:
        fmt = str(data["export_format"]).lower()
        if fmt not in FORMATS:
            errors.append(
                f"Unknown export_format '{data['export_format']}'. Expected one of: {', '.join(FORMATS)}"
            )
        else:
            values["export_format"] = fmt

    for key in _POSITIVE_INTS:
        if key in data:
            v = data[key]
            if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
                errors.append(f"{key} must be a positive integer")
            else:
                values[key] = v

    if "use_mmap" in data:
        if not isinstance(data["use_mmap"], bool):
            errors.append("use_mmap must be true or false")
        else:
            values["use_mmap"] = data["use_mmap"]

    if "max_history" in data:
        v = data["max_history"]
        if v is not None and (isinstance(v, bool) or not isinstance(v, int) or v <= 0):
            errors.append("max_history must be a positive integer or null")
        else:
            values["max_history"] = v

    return values, errors


def load_config_text(text: str, base: EditorConfig = DEFAULT_CONFIG) -> EditorConfig:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError([f"YAML parse error: {e}"]) from None

    if not isinstance(data, dict):
        raise ConfigError(["Top-level YAML must be a mapping of setting names to values."])

    values, errors = _validate(data)
    if errors:
        raise ConfigError(errors)
    return replace(base, **values)


def load_config(path: str | Path) -> EditorConfig:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError([f"Cannot read config {path}: {e}"]) from None
    return load_config_text(text)


def find_config() -> EditorConfig:
    """Config named by $HEXPATCH_CONFIG, or the defaults when unset."""
    path = os.environ.get(CONFIG_ENV)
    if not path:
        return DEFAULT_CONFIG
    return load_config(path)
