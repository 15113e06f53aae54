"""
Tests for the configuration system.
"""
import os

import pytest

from lro_runtime.config import (
    JobsConfig,
    LoggingConfig,
    PostgresStoreConfig,
    RedisStoreConfig,
    Settings,
    StoreConfig,
    configure,
    generate_instance_id,
    get_settings,
    load_env,
)
from lro_runtime.config import settings as settings_module


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("LRO_") or key in ("POSTGRES_DSN", "REDIS_URL"):
            monkeypatch.delenv(key, raising=False)


class TestStoreConfig:
    """Test store configuration classes."""

    def test_default_is_memory(self):
        assert StoreConfig().backend == "memory"

    def test_invalid_backend(self):
        with pytest.raises(ValueError, match="Invalid store backend"):
            StoreConfig(backend="sqlite")

    def test_postgres_defaults(self):
        config = PostgresStoreConfig()
        assert config.backend == "postgres"
        assert config.dsn == ""
        assert config.table_name == "lro_jobs"

    def test_postgres_dsn_validation(self):
        with pytest.raises(ValueError, match="valid PostgreSQL"):
            PostgresStoreConfig(dsn="mysql://localhost/db")

    def test_redis_defaults(self):
        config = RedisStoreConfig()
        assert config.active_ttl_seconds == 2 * 24 * 3600
        assert config.terminal_ttl_seconds == 7 * 24 * 3600
        assert config.index_cap == 1000

    def test_redis_validation(self):
        with pytest.raises(ValueError):
            RedisStoreConfig(redis_url="http://localhost")
        with pytest.raises(ValueError):
            RedisStoreConfig(index_cap=0)


class TestJobsConfig:
    """Test job configuration."""

    def test_defaults(self):
        config = JobsConfig()
        assert config.default_retry_after_seconds == 5
        assert config.timeout_check_interval_seconds == 60.0
        assert config.default_timeout_seconds == 3600
        assert config.instance_id  # auto-generated

    def test_generated_instance_id_is_bounded(self):
        assert len(generate_instance_id()) <= 32
        assert generate_instance_id() != generate_instance_id()

    def test_validation(self):
        with pytest.raises(ValueError, match="timeout_check_interval_seconds"):
            JobsConfig(timeout_check_interval_seconds=0)
        with pytest.raises(ValueError, match="default_retry_after_seconds"):
            JobsConfig(default_retry_after_seconds=-1)

    def test_base_url_trailing_slash_removed(self):
        assert JobsConfig(base_url="https://api.example.com/").base_url == "https://api.example.com"


class TestLoggingConfig:
    """Test logging configuration."""

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestSettings:
    """Test master settings loading."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LRO_STORE_BACKEND", "postgres")
        monkeypatch.setenv("LRO_POSTGRES_DSN", "postgresql://localhost/lro")
        monkeypatch.setenv("LRO_INSTANCE_ID", "api-1")
        monkeypatch.setenv("LRO_TIMEOUT_CHECK_INTERVAL_SECONDS", "15")
        monkeypatch.setenv("LRO_DEFAULT_RETRY_AFTER_SECONDS", "3")
        monkeypatch.setenv("LRO_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert isinstance(settings.store, PostgresStoreConfig)
        assert settings.store.dsn == "postgresql://localhost/lro"
        assert settings.jobs.instance_id == "api-1"
        assert settings.jobs.timeout_check_interval_seconds == 15.0
        assert settings.jobs.default_retry_after_seconds == 3
        assert settings.logging.level == "DEBUG"

    def test_from_env_redis(self, monkeypatch):
        monkeypatch.setenv("LRO_STORE_BACKEND", "redis")
        monkeypatch.setenv("LRO_REDIS_URL", "redis://localhost:6379/0")
        monkeypatch.setenv("LRO_REDIS_KEY_PREFIX", "svc")

        settings = Settings.from_env()
        assert isinstance(settings.store, RedisStoreConfig)
        assert settings.store.key_prefix == "svc"

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "lro.yaml"
        path.write_text(
            "store:\n"
            "  backend: redis\n"
            "  redis_url: redis://cache:6379/1\n"
            "  index_cap: 50\n"
            "jobs:\n"
            "  instance_id: api-2\n"
            "  timeout_check_interval_seconds: 30\n"
            "logging:\n"
            "  format: text\n"
        )

        settings = Settings.from_file(path)
        assert isinstance(settings.store, RedisStoreConfig)
        assert settings.store.index_cap == 50
        assert settings.jobs.instance_id == "api-2"
        assert settings.logging.format == "text"

    def test_from_toml_file(self, tmp_path):
        path = tmp_path / "lro.toml"
        path.write_text(
            '[store]\nbackend = "postgres"\ndsn = "postgresql://db/lro"\ntable_name = "jobs"\n'
        )

        settings = Settings.from_file(path)
        assert settings.store.table_name == "jobs"

    def test_schema_rejects_unknown_keys(self, tmp_path):
        path = tmp_path / "lro.yaml"
        path.write_text("jobs:\n  poll_every: 3\n")

        with pytest.raises(ValueError, match="Configuration validation failed"):
            Settings.from_file(path)

    def test_missing_and_unsupported_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_file(tmp_path / "nope.yaml")

        path = tmp_path / "lro.ini"
        path.write_text("[store]\n")
        with pytest.raises(ValueError, match="Unsupported"):
            Settings.from_file(path)

    def test_to_dict(self):
        data = Settings(jobs=JobsConfig(instance_id="api-3")).to_dict()
        assert data["store"]["backend"] == "memory"
        assert data["jobs"]["instance_id"] == "api-3"


class TestGlobalSettings:
    """Test global settings helpers."""

    @pytest.fixture(autouse=True)
    def reset_global(self, monkeypatch):
        monkeypatch.setattr(settings_module, "_global_settings", None)

    def test_configure_replaces_global(self):
        custom = Settings(jobs=JobsConfig(instance_id="global-1"))
        configure(custom)
        assert get_settings() is custom

    def test_configure_overrides_section(self):
        configure(Settings())
        configure(logging=LoggingConfig(level="ERROR"))
        assert get_settings().logging.level == "ERROR"

    def test_load_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("LRO_INSTANCE_ID=from-dotenv\n")
        # Registered with monkeypatch so teardown removes it again
        monkeypatch.setenv("LRO_INSTANCE_ID", "before")

        assert load_env(str(env_file), override=True) is True
        assert os.environ["LRO_INSTANCE_ID"] == "from-dotenv"
