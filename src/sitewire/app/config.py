"""Nested configuration with indexed keys."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping
import configparser
import re

from ..core.error import ConfigError


_INDEXED_KEY = re.compile(r"^(\w+)\[(\w*)\]$")


def _coerce(value: str) -> Any:
    low = value.strip().lower()
    if low in ("true", "yes", "on"):
        return True
    if low in ("false", "no", "off"):
        return False
    if re.fullmatch(r"-?\d+", low):
        return int(low)
    return value.strip().strip('"').strip("'")


def indexed(value: Any) -> dict[Any, Any]:
    """
    Normalize an indexed config value to an index -> value mapping.

    A scalar is index 0, a list uses positions, a mapping is kept.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return dict(enumerate(value))
    return {0: value}


class Config(dict[str, Any]):
    """
    Configuration as nested dicts.

    Sections are plain mappings; indexed keys such as url[0] are stored
    as {"url": {0: ...}}.
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        for key, value in (data or {}).items():
            self[key] = Config(value) if isinstance(value, Mapping) and not _is_index_map(value) else value

    def section(self, name: str) -> "Config":
        value = self.get(name)
        if isinstance(value, Config):
            return value
        if isinstance(value, Mapping):
            return Config(value)
        return Config()

    def dget(self, section: str, key: str, default: Any = None) -> Any:
        return self.section(section).get(key, default)

    def indexed(self, key: str) -> dict[Any, Any]:
        return indexed(self.get(key))

    # -------------------------
    # loaders
    # -------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | "Config" | None) -> "Config":
        if isinstance(data, Config):
            return data
        return cls(data)

    @classmethod
    def from_ini(cls, path: str | Path) -> "Config":
        """
        Read an INI file.

        Example:
            [site]
            url[0] = "https://www.example.com"
            url[1] = "https://example.com"
            redirect[1] = "https://www.example.com"
        """
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # type: ignore[assignment]
        try:
            with open(path, "r", encoding="utf-8") as f:
                parser.read_file(f)
        except (OSError, configparser.Error) as e:
            raise ConfigError(f"Could not read configuration '{path}': {e}") from e

        data: dict[str, Any] = {}
        for section in parser.sections():
            out: dict[str, Any] = {}
            for key, raw in parser.items(section):
                value = _coerce(raw)
                m = _INDEXED_KEY.match(key)
                if not m:
                    out[key] = value
                    continue
                name, idx = m.group(1), m.group(2)
                bucket = out.setdefault(name, {})
                if not isinstance(bucket, dict):
                    raise ConfigError(f"'{name}' is used both as a scalar and as an indexed key")
                if idx == "":
                    idx = len(bucket)
                bucket[int(idx) if idx.isdigit() else idx] = value
            data[section] = out
        return cls(data)


def _is_index_map(value: Mapping[Any, Any]) -> bool:
    return bool(value) and all(isinstance(k, int) for k in value)
