"""
Environment configuration provider.

Precedence (highest first):
1. CLI overrides
2. Process environment variables
3. .env file (python-dotenv)
4. Config file (see FileConfigProvider)
5. Dataclass defaults
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from byrpublish.core.ports.config_provider import AppConfig, ConfigProviderPort

from .file_provider import FileConfigProvider, build_app_config


ENV_KEYS: dict[str, str] = {
    "GITHUB_CLIENT_ID": "github.client_id",
    "GITHUB_CLIENT_SECRET": "github.client_secret",
    "GITHUB_WEBHOOK_SECRET": "github.webhook_secret",
    "GITHUB_APP_TOKEN": "github.app_token",
    "GITHUB_API_URL": "github.api_url",
    "GITHUB_REDIRECT_URI": "github.redirect_uri",
    "DATABASE_URL": "store.database_url",
    "BYRPUBLISH_USERNAME": "username",
    "BYRPUBLISH_UPSTREAM_OWNER": "archive.upstream_owner",
    "BYRPUBLISH_UPSTREAM_REPO": "archive.upstream_repo",
    "BYRPUBLISH_DEFAULT_BRANCH": "archive.default_branch",
    "BYRPUBLISH_METADATA_URL": "archive.metadata_url",
    "BYRPUBLISH_CACHE_TTL": "archive.cache_ttl",
    "BYRPUBLISH_HOST": "server.host",
    "BYRPUBLISH_PORT": "server.port",
    "BYRPUBLISH_UPLOAD_URL": "upload.credentials_url",
    "BYRPUBLISH_UPLOAD_TOKEN": "upload.token",
}

# Short names accepted as CLI override keys
CLI_ALIASES: dict[str, str] = {
    "database_url": "store.database_url",
    "metadata_url": "archive.metadata_url",
    "webhook_secret": "github.webhook_secret",
    "host": "server.host",
    "port": "server.port",
    "upload_token": "upload.token",
}


class EnvironmentConfigProvider(ConfigProviderPort):
    """Loads configuration from every source, honouring precedence."""

    def __init__(
        self,
        config_file: Path | str | None = None,
        env_file: Path | str | None = None,
        cli_overrides: dict[str, Any] | None = None,
    ):
        self._file_provider = FileConfigProvider(config_file)
        self._env_file = Path(env_file) if env_file else None
        self._cli_overrides = dict(cli_overrides or {})
        self._values: dict[str, Any] | None = None
        self.logger = logging.getLogger("EnvironmentConfigProvider")

    @property
    def name(self) -> str:
        self._file_provider.read_values()
        if self._file_provider.config_path:
            return f"Environment + {self._file_provider.config_path.name}"
        return "Environment"

    def _dotenv_values(self) -> dict[str, str]:
        path = self._env_file or Path.cwd() / ".env"
        if not path.is_file():
            return {}
        return {k: v for k, v in dotenv_values(path).items() if v is not None}

    @staticmethod
    def _from_env(source: dict[str, str]) -> dict[str, Any]:
        return {dotted: source[name] for name, dotted in ENV_KEYS.items() if source.get(name)}

    def _merged(self) -> dict[str, Any]:
        if self._values is None:
            values: dict[str, Any] = dict(self._file_provider.read_values())
            values.update(self._from_env(self._dotenv_values()))
            values.update(self._from_env(dict(os.environ)))
            for key, value in self._cli_overrides.items():
                if value is not None:
                    values[CLI_ALIASES.get(key, key)] = value
            self._values = values
        return self._values

    def load(self) -> AppConfig:
        return build_app_config(self._merged())

    def get(self, key: str, default: Any = None) -> Any:
        return self._merged().get(CLI_ALIASES.get(key, key), default)

    def set(self, key: str, value: Any) -> None:
        self._merged()[CLI_ALIASES.get(key, key)] = value

    def validate(self) -> list[str]:
        errors = list(self._file_provider.validate())
        try:
            config = self.load()
        except (TypeError, ValueError) as e:
            return [*errors, f"Invalid configuration value: {e}"]
        for error in config.validate():
            if error not in errors:
                errors.append(error)
        return errors
