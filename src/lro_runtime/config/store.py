"""
Status store configuration classes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .base import STORE_BACKENDS, StoreBackendType


@dataclass
class StoreConfig:
    """Configuration for the status store (in-process by default)."""

    backend: StoreBackendType = "memory"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.backend not in STORE_BACKENDS:
            raise ValueError(f"Invalid store backend: {self.backend}")


@dataclass
class PostgresStoreConfig(StoreConfig):
    """Relational store configuration.

    An empty ``dsn`` is accepted here and rejected when the store is built,
    so a missing connection string fails startup rather than config parsing.
    """

    backend: StoreBackendType = "postgres"
    dsn: str = field(default_factory=lambda: os.getenv("POSTGRES_DSN", ""))
    table_name: str = "lro_jobs"
    min_pool_size: int = 1
    max_pool_size: int = 10

    def __post_init__(self):
        super().__post_init__()
        if self.dsn and not self.dsn.startswith(("postgresql://", "postgres://")):
            raise ValueError("dsn must be a valid PostgreSQL connection string")
        if self.min_pool_size < 0:
            raise ValueError("min_pool_size cannot be negative")
        if self.max_pool_size < max(1, self.min_pool_size):
            raise ValueError("max_pool_size must be >= min_pool_size and positive")


@dataclass
class RedisStoreConfig(StoreConfig):
    """Distributed cache store configuration."""

    backend: StoreBackendType = "redis"
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", ""))
    key_prefix: str = "lro"
    active_ttl_seconds: int = 2 * 24 * 3600
    terminal_ttl_seconds: int = 7 * 24 * 3600
    index_cap: int = 1000

    def __post_init__(self):
        super().__post_init__()
        if self.redis_url and not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must be a valid Redis connection string")
        if self.active_ttl_seconds <= 0 or self.terminal_ttl_seconds <= 0:
            raise ValueError("TTL values must be positive")
        if self.index_cap <= 0:
            raise ValueError("index_cap must be positive")


__all__ = ["StoreConfig", "PostgresStoreConfig", "RedisStoreConfig"]
