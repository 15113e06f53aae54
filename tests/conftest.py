"""
Shared test fixtures and fakes for lro-runtime tests.

This module provides:
- In-memory store / manager fixtures
- An in-memory store with scripted update outages
- A recording fake for asyncpg pools
- A fake redis.asyncio client covering the commands the Redis store uses
"""

from __future__ import annotations

import json
import time
from typing import Any

import pytest
from redis import exceptions as redis_errors

from lro_runtime.errors import StoreUnavailableError
from lro_runtime.jobs import InMemoryStatusStore, JobManager, JobRecord, JobState

# =============================================================================
# Record Factories
# =============================================================================


def make_job(
    job_id: str = "job-1",
    name: str = "report.export",
    state: JobState = JobState.ACCEPTED,
    created_at: float | None = None,
    timeout_seconds: int = 3600,
    **kwargs: Any,
) -> JobRecord:
    """Create a JobRecord with sensible defaults."""
    created_at = time.time() if created_at is None else created_at
    return JobRecord(
        job_id=job_id,
        name=name,
        state=state,
        created_at=created_at,
        updated_at=created_at,
        timeout_seconds=timeout_seconds,
        owner_instance_id="test-instance",
        **kwargs,
    )


# =============================================================================
# Outage Store
# =============================================================================


class OutageStore(InMemoryStatusStore):
    """In-memory store whose n-th update calls (1-based) fail as unavailable."""

    def __init__(self) -> None:
        super().__init__()
        self.failing_updates: set[int] = set()
        self.update_calls = 0

    async def update(self, job: JobRecord) -> bool:
        self.update_calls += 1
        if self.update_calls in self.failing_updates:
            raise StoreUnavailableError("blip", backend=self.backend_name)
        return await super().update(job)


# =============================================================================
# asyncpg Fakes
# =============================================================================


class FakeConnection:
    """Records statements and returns canned results."""

    def __init__(self) -> None:
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.fetched: list[tuple[str, tuple[Any, ...]]] = []
        self.row: dict[str, Any] | None = None
        self.rows: list[dict[str, Any]] = []
        self.update_status = "UPDATE 1"
        self.insert_error: Exception | None = None

    async def execute(self, query: str, *args: Any) -> str:
        self.executed.append((query, args))
        stmt = query.strip().upper()
        if stmt.startswith("INSERT"):
            if self.insert_error is not None:
                raise self.insert_error
            return "INSERT 0 1"
        if stmt.startswith("UPDATE"):
            return self.update_status
        return "CREATE"

    async def fetchrow(self, query: str, *args: Any) -> dict[str, Any] | None:
        self.fetched.append((query, args))
        return self.row

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        self.fetched.append((query, args))
        return list(self.rows)

    @property
    def statements(self) -> list[str]:
        return [q.strip() for q, _ in self.executed]


class _Acquire:
    def __init__(self, pool: FakePool) -> None:
        self._pool = pool

    async def __aenter__(self) -> FakeConnection:
        if self._pool.acquire_error is not None:
            raise self._pool.acquire_error
        return self._pool.conn

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakePool:
    """Stand-in for asyncpg.Pool handing out a single FakeConnection."""

    def __init__(self) -> None:
        self.conn = FakeConnection()
        self.acquire_error: Exception | None = None
        self.closed = False

    def acquire(self) -> _Acquire:
        return _Acquire(self)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# redis.asyncio Fake
# =============================================================================


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (decode_responses=True)."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.down = False
        self.closed = False

    def _check(self) -> None:
        if self.down:
            raise redis_errors.ConnectionError("Connection refused")

    async def ping(self) -> bool:
        self._check()
        return True

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        self._check()
        if nx and key in self.values:
            return None
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.values.get(key)

    async def mget(self, keys: list[str]) -> list[str | None]:
        self._check()
        return [self.values.get(k) for k in keys]

    async def lpush(self, key: str, *values: str) -> int:
        self._check()
        items = self.values.setdefault(key, [])
        for v in values:
            items.insert(0, v)
        return len(items)

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        self._check()
        items = self.values.get(key, [])
        self.values[key] = items[start:] if end == -1 else items[start:end + 1]
        return True

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        self._check()
        items = self.values.get(key, [])
        return list(items[start:] if end == -1 else items[start:end + 1])

    async def expire(self, key: str, seconds: int) -> bool:
        self._check()
        self.ttls[key] = seconds
        return True

    async def eval(self, script: str, numkeys: int, *keys_and_args: Any) -> int:
        """Emulates the conditional update script."""
        self._check()
        key, payload, ttl = keys_and_args[0], keys_and_args[1], keys_and_args[2]
        current = self.values.get(key)
        if current is None:
            return 0
        if json.loads(current)["state"] not in ("accepted", "running"):
            return 0
        self.values[key] = payload
        self.ttls[key] = int(ttl)
        return 1

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryStatusStore:
    """Empty in-process status store."""
    return InMemoryStatusStore()


@pytest.fixture
def manager(memory_store: InMemoryStatusStore) -> JobManager:
    """JobManager over the in-process store."""
    return JobManager(memory_store, instance_id="test-instance")


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def job_factory():
    """The make_job factory, for building records directly."""
    return make_job


@pytest.fixture
def outage_store() -> OutageStore:
    return OutageStore()
