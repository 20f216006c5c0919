"""
File configuration provider - loads settings from a YAML config file.

Config file search order (first match wins):
1. Explicit path passed to the provider
2. byrpublish.yaml / .byrpublish.yaml in the current directory
3. ~/.config/byrpublish/config.yaml

Example file:

    github:
      client_id: Iv1.abc
      client_secret: ...
      webhook_secret: ...
    archive:
      upstream_owner: byrdocs
      upstream_repo: byrdocs-archive
    store:
      database_url: sqlite:///byrpublish.db
    username: octocat
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

import yaml

from byrpublish.core.ports.config_provider import (
    AppConfig,
    ArchiveConfig,
    ConfigProviderPort,
    GitHubConfig,
    ServerConfig,
    StoreConfig,
    UploadConfig,
)


CONFIG_FILE_NAMES = ("byrpublish.yaml", "byrpublish.yml", ".byrpublish.yaml", ".byrpublish.yml")
USER_CONFIG_PATH = Path("~/.config/byrpublish/config.yaml")

SECTIONS: dict[str, type] = {
    "github": GitHubConfig,
    "archive": ArchiveConfig,
    "store": StoreConfig,
    "server": ServerConfig,
    "upload": UploadConfig,
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Turn nested mappings into dotted keys: {"a": {"b": 1}} -> {"a.b": 1}."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def _coerce(value: Any, default: Any) -> Any:
    if value is None:
        return None
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, tuple):
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return tuple(value)
    return str(value)


def build_app_config(values: dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from dotted keys.

    Unknown keys are ignored; values are coerced to the type of each
    field's default.
    """
    sections: dict[str, Any] = {}
    for section_name, section_type in SECTIONS.items():
        defaults = section_type()
        kwargs: dict[str, Any] = {}
        for f in dataclasses.fields(section_type):
            key = f"{section_name}.{f.name}"
            if key in values and values[key] is not None:
                kwargs[f.name] = _coerce(values[key], getattr(defaults, f.name))
        sections[section_name] = section_type(**kwargs)

    username = values.get("username")
    return AppConfig(username=str(username) if username else None, **sections)


class FileConfigProvider(ConfigProviderPort):
    """Configuration provider that reads a YAML file."""

    def __init__(self, config_path: Path | str | None = None):
        self._explicit_path = Path(config_path).expanduser() if config_path else None
        self._config_path: Path | None = None
        self._values: dict[str, Any] = {}
        self._errors: list[str] = []
        self._loaded = False
        self.logger = logging.getLogger("FileConfigProvider")

    @property
    def name(self) -> str:
        if self._config_path:
            return f"File ({self._config_path})"
        return "File"

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    def _find_config_file(self) -> Path | None:
        if self._explicit_path:
            return self._explicit_path

        cwd = Path.cwd()
        for name in CONFIG_FILE_NAMES:
            candidate = cwd / name
            if candidate.is_file():
                return candidate

        user_path = USER_CONFIG_PATH.expanduser()
        if user_path.is_file():
            return user_path
        return None

    def read_values(self) -> dict[str, Any]:
        """Read the config file into dotted keys. Errors are kept for validate()."""
        if self._loaded:
            return self._values
        self._loaded = True

        path = self._find_config_file()
        if path is None:
            return self._values
        self._config_path = path

        if not path.is_file():
            self._errors.append(f"Config file not found: {path}")
            return self._values

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            self._errors.append(f"Invalid YAML syntax in {path}: {e}")
            return self._values
        except OSError as e:
            self._errors.append(f"Cannot read config file {path}: {e}")
            return self._values

        if not isinstance(data, dict):
            self._errors.append(f"Config file {path} must contain a mapping")
            return self._values

        self._values = flatten(data)
        self.logger.debug(f"Loaded {len(self._values)} settings from {path}")
        return self._values

    def load(self) -> AppConfig:
        return build_app_config(self.read_values())

    def get(self, key: str, default: Any = None) -> Any:
        return self.read_values().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.read_values()[key] = value

    def validate(self) -> list[str]:
        config = self.load()
        return [*self._errors, *config.validate()]
