"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

StoreBackendType = Literal["memory", "postgres", "redis"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

STORE_BACKENDS = ("memory", "postgres", "redis")


__all__ = ["StoreBackendType", "LogLevel", "LogFormat", "STORE_BACKENDS"]
