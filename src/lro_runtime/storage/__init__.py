"""
Shared status store backends.

- PostgresStatusStore: durable, strongly consistent relational store (asyncpg)
- RedisStatusStore: fast distributed cache store with TTLs (redis.asyncio)

The in-process store lives in ``lro_runtime.jobs.store``.
"""

from .postgres import PostgresStatusStore
from .redis import RedisStatusStore

__all__ = [
    "PostgresStatusStore",
    "RedisStatusStore",
]
