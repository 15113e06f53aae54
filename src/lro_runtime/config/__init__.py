"""
Configuration system for lro-runtime.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Sensible defaults with override capability
"""

from .base import LogFormat, LogLevel, StoreBackendType
from .jobs import JobsConfig, generate_instance_id
from .logging import LoggingConfig
from .settings import Settings, configure, get_settings, load_env
from .store import PostgresStoreConfig, RedisStoreConfig, StoreConfig

__all__ = [
    # Types
    "StoreBackendType",
    "LogLevel",
    "LogFormat",
    # Store configs
    "StoreConfig",
    "PostgresStoreConfig",
    "RedisStoreConfig",
    # Other configs
    "JobsConfig",
    "LoggingConfig",
    "generate_instance_id",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]
