"""
Tests for configuration providers.
"""

from textwrap import dedent

import pytest

from byrpublish.adapters.config import (
    EnvironmentConfigProvider,
    FileConfigProvider,
    build_app_config,
)
from byrpublish.adapters.config.environment import ENV_KEYS
from byrpublish.adapters.config.file_provider import flatten
from byrpublish.core.ports.config_provider import AppConfig


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in an empty directory with no byrpublish variables or home config."""
    for name in ENV_KEYS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(
        dedent(
            """\
            github:
              client_id: Iv1.file
              client_secret: file-secret
            archive:
              cache_ttl: 60
            store:
              database_url: sqlite:///file.db
              echo: "yes"
            username: filer
            """
        ),
        encoding="utf-8",
    )
    return path


# =============================================================================
# Helpers
# =============================================================================


class TestBuildAppConfig:
    """Tests for dotted-key config assembly."""

    def test_flatten(self):
        """Nested mappings become dotted keys."""
        assert flatten({"a": {"b": 1, "c": {"d": 2}}, "e": 3}) == {"a.b": 1, "a.c.d": 2, "e": 3}

    def test_defaults(self):
        """No values gives the default configuration."""
        config = build_app_config({})
        assert config == AppConfig()
        assert config.archive.upstream_full_name == "byrdocs/byrdocs-archive"

    def test_coercion(self):
        """Values are coerced to each default's type."""
        config = build_app_config(
            {
                "server.port": "9000",
                "archive.cache_ttl": "12.5",
                "store.echo": "true",
                "upload.allowed_extensions": "pdf, zip ,",
                "unknown.key": "ignored",
            }
        )
        assert config.server.port == 9000
        assert config.archive.cache_ttl == 12.5
        assert config.store.echo is True
        assert config.upload.allowed_extensions == ("pdf", "zip")

    def test_bad_number(self):
        """Unparseable numbers raise ValueError."""
        with pytest.raises(ValueError):
            build_app_config({"server.port": "eighty"})


# =============================================================================
# FileConfigProvider
# =============================================================================


class TestFileConfigProvider:
    """Tests for FileConfigProvider."""

    def test_explicit_file(self, clean_env, config_file):
        """An explicit path is loaded."""
        provider = FileConfigProvider(config_file)
        config = provider.load()

        assert provider.config_path == config_file
        assert config.github.has_oauth()
        assert config.archive.cache_ttl == 60.0
        assert config.store.echo is True
        assert config.username == "filer"
        assert provider.get("store.database_url") == "sqlite:///file.db"

    def test_discovers_file_in_cwd(self, clean_env):
        """byrpublish.yaml in the working directory is found."""
        (clean_env / "byrpublish.yaml").write_text("username: local\n", encoding="utf-8")
        assert FileConfigProvider().load().username == "local"

    def test_no_file(self, clean_env):
        """Without a file the defaults apply and validation passes."""
        provider = FileConfigProvider()
        assert provider.load() == AppConfig()
        assert provider.validate() == []
        assert provider.name == "File"

    def test_missing_explicit_file(self, clean_env):
        """A missing explicit file is a validation error."""
        provider = FileConfigProvider(clean_env / "nope.yaml")
        assert any("not found" in e for e in provider.validate())

    def test_invalid_yaml(self, clean_env):
        """Syntax errors are reported, not raised."""
        path = clean_env / "bad.yaml"
        path.write_text("github: [unclosed\n", encoding="utf-8")
        errors = FileConfigProvider(path).validate()
        assert any("Invalid YAML syntax" in e for e in errors)

    def test_non_mapping(self, clean_env):
        """Top-level lists are rejected."""
        path = clean_env / "list.yaml"
        path.write_text("- a\n", encoding="utf-8")
        assert any("must contain a mapping" in e for e in FileConfigProvider(path).validate())

    def test_invalid_values(self, clean_env):
        """Semantic errors come from AppConfig.validate."""
        path = clean_env / "port.yaml"
        path.write_text("server:\n  port: 70000\n", encoding="utf-8")
        errors = FileConfigProvider(path).validate()
        assert any("between 1 and 65535" in e for e in errors)


# =============================================================================
# EnvironmentConfigProvider
# =============================================================================


class TestEnvironmentConfigProvider:
    """Tests for layered configuration."""

    def test_environment_variables(self, clean_env, monkeypatch):
        """Known variables map onto config fields."""
        monkeypatch.setenv("GITHUB_CLIENT_ID", "Iv1.env")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///env.db")
        monkeypatch.setenv("BYRPUBLISH_PORT", "9999")
        monkeypatch.setenv("BYRPUBLISH_USERNAME", "envuser")

        config = EnvironmentConfigProvider().load()

        assert config.github.client_id == "Iv1.env"
        assert config.store.database_url == "sqlite:///env.db"
        assert config.server.port == 9999
        assert config.username == "envuser"

    def test_empty_variables_ignored(self, clean_env, monkeypatch):
        """Blank variables do not clobber defaults."""
        monkeypatch.setenv("DATABASE_URL", "")
        assert EnvironmentConfigProvider().load().store.database_url == "sqlite:///byrpublish.db"

    def test_dotenv_file(self, clean_env):
        """A .env file in the working directory is read."""
        (clean_env / ".env").write_text("GITHUB_WEBHOOK_SECRET=from-dotenv\n", encoding="utf-8")
        assert EnvironmentConfigProvider().load().github.webhook_secret == "from-dotenv"

    def test_precedence(self, clean_env, monkeypatch, config_file):
        """CLI beats environment, environment beats .env, .env beats the file."""
        env_file = clean_env / "custom.env"
        env_file.write_text(
            "DATABASE_URL=sqlite:///dotenv.db\nBYRPUBLISH_USERNAME=dotenv\n"
            "GITHUB_CLIENT_SECRET=dotenv-secret\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("BYRPUBLISH_USERNAME", "env")

        provider = EnvironmentConfigProvider(
            config_file=config_file,
            env_file=env_file,
            cli_overrides={"database_url": "sqlite:///cli.db", "port": None},
        )
        config = provider.load()

        assert config.store.database_url == "sqlite:///cli.db"
        assert config.username == "env"
        assert config.github.client_secret == "dotenv-secret"
        assert config.github.client_id == "Iv1.file"
        assert config.server.port == 8787

    def test_get_and_set_aliases(self, clean_env):
        """Short aliases resolve to dotted keys."""
        provider = EnvironmentConfigProvider()
        provider.set("webhook_secret", "s3cret")
        assert provider.get("github.webhook_secret") == "s3cret"
        assert provider.get("webhook_secret") == "s3cret"

    def test_name_mentions_file(self, clean_env, config_file):
        """The provider name includes the config file."""
        assert EnvironmentConfigProvider(config_file).name == "Environment + custom.yaml"
        assert EnvironmentConfigProvider().name == "Environment"

    def test_validate_bad_value(self, clean_env, monkeypatch):
        """Uncoercible values are validation errors."""
        monkeypatch.setenv("BYRPUBLISH_PORT", "http")
        errors = EnvironmentConfigProvider().validate()
        assert errors and "Invalid configuration value" in errors[-1]

    def test_validate_clean(self, clean_env):
        """Defaults validate."""
        assert EnvironmentConfigProvider().validate() == []
