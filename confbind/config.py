"""Settings-file loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import tomllib

from pydantic import ValidationError

from .settings import ConnectionSettings

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "confbind" / "config.toml"
DEFAULT_SECTION = "redis"

_STRING_KEYS = ("host", "username", "password")
_INT_KEYS = ("port", "database")
_BOOL_KEYS = ("is_unix_socket", "use_ssl", "allow_admin")


def load_settings(path: Path | None = None, section: str = DEFAULT_SECTION) -> ConnectionSettings:
    """Load one connection section from disk; fall back to defaults if missing."""

    config_path = path or CONFIG_FILE
    try:
        data = _read_section(config_path, section)
    except FileNotFoundError:
        return ConnectionSettings()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable settings file", extra={"path": str(config_path)})
        return ConnectionSettings()

    try:
        return ConnectionSettings(**data)
    except ValidationError:
        LOG.warning("Ignoring invalid settings section", extra={"path": str(config_path), "section": section})
        return ConnectionSettings()


def _read_section(path: Path, section: str) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    table: object = raw
    for part in section.split("."):
        if not isinstance(table, dict):
            return {}
        table = table.get(part)
    if not isinstance(table, dict):
        return {}
    data: dict[str, object] = {}
    for key in _STRING_KEYS:
        value = table.get(key)
        if isinstance(value, str):
            data[key] = value
    for key in _INT_KEYS:
        value = table.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    for key in _BOOL_KEYS:
        value = table.get(key)
        if isinstance(value, bool):
            data[key] = value
    return data


__all__ = ["CONFIG_FILE", "DEFAULT_SECTION", "load_settings"]
