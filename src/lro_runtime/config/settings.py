"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from .jobs import JobsConfig
from .logging import LoggingConfig
from .store import PostgresStoreConfig, RedisStoreConfig, StoreConfig

_STORE_CLASSES: dict[str, type[StoreConfig]] = {
    "memory": StoreConfig,
    "postgres": PostgresStoreConfig,
    "redis": RedisStoreConfig,
}


def _store_config(backend: str, values: dict[str, Any]) -> StoreConfig:
    cls = _STORE_CLASSES.get(backend)
    if cls is None:
        raise ValueError(f"Invalid store backend: {backend}")
    fields = cls.__dataclass_fields__
    return cls(**{k: v for k, v in values.items() if k in fields and k != "backend"})


@dataclass
class Settings:
    """
    Master configuration for the job runtime.

    This aggregates all configuration sections into a single object
    that can be loaded from environment variables, files, or constructed
    programmatically.
    """

    # Status store backend selection and connection settings
    store: StoreConfig = field(default_factory=StoreConfig)

    # Job manager / sweeper behavior
    jobs: JobsConfig = field(default_factory=JobsConfig)

    # Logging configuration
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "LRO_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            LRO_STORE_BACKEND=postgres
            LRO_POSTGRES_DSN=postgresql://...
            LRO_TIMEOUT_CHECK_INTERVAL_SECONDS=30
        """
        settings = cls()

        # Store settings
        backend = os.getenv(f"{prefix}STORE_BACKEND", "memory").lower()
        store_values: dict[str, Any] = {}
        if dsn := os.getenv(f"{prefix}POSTGRES_DSN"):
            store_values["dsn"] = dsn
        if table := os.getenv(f"{prefix}POSTGRES_TABLE"):
            store_values["table_name"] = table
        if redis_url := os.getenv(f"{prefix}REDIS_URL"):
            store_values["redis_url"] = redis_url
        if key_prefix := os.getenv(f"{prefix}REDIS_KEY_PREFIX"):
            store_values["key_prefix"] = key_prefix
        settings.store = _store_config(backend, store_values)

        # Job settings
        if instance_id := os.getenv(f"{prefix}INSTANCE_ID"):
            settings.jobs.instance_id = instance_id
        if retry_after := os.getenv(f"{prefix}DEFAULT_RETRY_AFTER_SECONDS"):
            settings.jobs.default_retry_after_seconds = int(retry_after)
        if interval := os.getenv(f"{prefix}TIMEOUT_CHECK_INTERVAL_SECONDS"):
            settings.jobs.timeout_check_interval_seconds = float(interval)
        if base_url := os.getenv(f"{prefix}BASE_URL"):
            settings.jobs.base_url = base_url.rstrip("/")

        # Logging settings
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            settings.logging.level = level.upper()  # type: ignore
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            settings.logging.format = log_format.lower()  # type: ignore

        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        """Create default configuration."""
        return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        This method validates the input dictionary against the configuration schema
        before creating the Settings object.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e.message}") from e

        settings = cls()

        if "store" in data:
            store_data = data["store"]
            settings.store = _store_config(store_data.get("backend", "memory"), store_data)

        if "jobs" in data:
            settings.jobs = JobsConfig(**data["jobs"])

        if "logging" in data:
            settings.logging = LoggingConfig(**data["logging"])

        return settings

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        import dataclasses

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        return convert(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating with defaults if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific sections

    Returns:
        The configured Settings object
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
