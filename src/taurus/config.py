from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "taurus.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def audit_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("audit", {})
    return section if isinstance(section, dict) else {}


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _as_text(value: TomlValue) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def audit_depstore(section: TomlTable | None, *, root: Path | None = None) -> Path | None:
    if not isinstance(section, dict):
        return None
    text = _as_text(section.get("depstore"))
    if text is None:
        return None
    path = Path(text)
    if root is not None and not path.is_absolute():
        return root / path
    return path


def audit_format(section: TomlTable | None) -> str | None:
    if not isinstance(section, dict):
        return None
    text = _as_text(section.get("format"))
    return text.lower() if text is not None else None


def audit_dot(section: TomlTable | None) -> bool:
    if not isinstance(section, dict):
        return False
    return _as_bool(section.get("dot"))


def audit_visit_scope(section: TomlTable | None) -> str | None:
    if not isinstance(section, dict):
        return None
    text = _as_text(section.get("visit_scope"))
    return text.lower() if text is not None else None


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged
