"""
Configuration Provider Port - Abstract interface for configuration.

Implementations:
- EnvironmentConfigProvider: env vars, .env, config file and CLI overrides
- FileConfigProvider: YAML config file only
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class GitHubConfig:
    """GitHub OAuth app, webhook and API settings."""

    client_id: str = ""
    client_secret: str = ""
    webhook_secret: str = ""
    api_url: str = "https://api.github.com"
    oauth_token_url: str = "https://github.com/login/oauth/access_token"
    redirect_uri: str | None = None
    # Token used for unauthenticated-by-user lookups such as fork detection
    app_token: str | None = None
    timeout: float = 30.0

    def has_oauth(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class ArchiveConfig:
    """Where the canonical archive lives and how to read its snapshot."""

    upstream_owner: str = "byrdocs"
    upstream_repo: str = "byrdocs-archive"
    default_branch: str = "master"
    metadata_url: str = "https://files.byrdocs.org/metadata2.json"
    cache_ttl: float = 300.0
    app_url: str = "https://publish.byrdocs.org"

    @property
    def upstream_full_name(self) -> str:
        return f"{self.upstream_owner}/{self.upstream_repo}"


@dataclass
class StoreConfig:
    """Relational store settings."""

    database_url: str = "sqlite:///byrpublish.db"
    echo: bool = False


@dataclass
class ServerConfig:
    """Webhook receiver settings."""

    host: str = "127.0.0.1"
    port: int = 8787
    webhook_path: str = "/api/github/webhook"


@dataclass
class UploadConfig:
    """Object storage upload settings."""

    credentials_url: str = "https://byrdocs.org/api/s3/upload"
    token: str = ""
    part_size: int = 5 * 1024 * 1024
    allowed_extensions: tuple[str, ...] = ("pdf", "zip")


@dataclass
class AppConfig:
    """Complete application configuration."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)

    # GitHub login of the contributor the CLI acts for
    username: str | None = None

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.store.database_url:
            errors.append("Missing database URL (DATABASE_URL)")
        if not self.archive.upstream_owner or not self.archive.upstream_repo:
            errors.append("Missing upstream repository (BYRPUBLISH_UPSTREAM_OWNER/REPO)")
        if not self.archive.metadata_url.startswith(("http://", "https://")):
            errors.append("Metadata URL must be http(s) (BYRPUBLISH_METADATA_URL)")
        if self.archive.cache_ttl < 0:
            errors.append("Cache TTL must not be negative (BYRPUBLISH_CACHE_TTL)")
        if not 0 < self.server.port < 65536:
            errors.append("Webhook port must be between 1 and 65535 (BYRPUBLISH_PORT)")

        return errors


class ConfigProviderPort(ABC):
    """
    Abstract interface for configuration providers.

    Configuration can come from various sources:
    - Environment variables
    - .env files
    - YAML config files
    - Command line arguments
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    def load(self) -> AppConfig:
        """
        Load configuration from source.

        Returns:
            Complete application configuration
        """
        ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a specific configuration value.

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found
        """
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        ...

    @abstractmethod
    def validate(self) -> list[str]:
        """
        Validate loaded configuration.

        Returns:
            List of validation errors
        """
        ...
