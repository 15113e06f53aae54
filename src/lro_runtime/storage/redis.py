"""
Redis status store.

Shared across every instance of the fleet with sub-millisecond reads.

Storage layout
--------------
- ``{prefix}:job:{job_id}``  record JSON, one key per job
- ``{prefix}:job_ids``       list of job ids, newest first

TTLs are refreshed on every write: active records live 2 days, terminal
records 7 days. Expired records vanish silently.

Index Cap Warning
-----------------
The id index keeps only the newest ``index_cap`` (default 1000) ids. Older
records stay readable by id until their TTL runs out, but they no longer
appear in ``list()`` and are never found by ``find_expired()``. Deployments
with more concurrently active jobs than the cap should use the PostgreSQL
store.

Durability depends entirely on the Redis persistence configuration.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import redis.asyncio as redis
from redis import exceptions as redis_errors

from ..errors import DuplicateJobError, StoreUnavailableError
from ..jobs.store import JobFilter, StatusStore
from ..jobs.types import JobRecord
from ..serialization import dumps_record, loads_record

# KEYS[1] = record key; ARGV[1] = new record JSON; ARGV[2] = TTL seconds.
# Returns 1 when written, 0 when the record is missing or already terminal.
_CONDITIONAL_UPDATE = """
local current = redis.call('GET', KEYS[1])
if not current then
    return 0
end
local state = cjson.decode(current)['state']
if state ~= 'accepted' and state ~= 'running' then
    return 0
end
redis.call('SET', KEYS[1], ARGV[1], 'EX', tonumber(ARGV[2]))
return 1
"""

_CONNECTION_ERRORS = (
    redis_errors.ConnectionError,
    redis_errors.TimeoutError,
    OSError,
)


def _decode(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisStatusStore(StatusStore):
    """Redis-backed status store.

    Example:
        ```python
        client = redis.Redis.from_url("redis://localhost:6379/0")
        store = RedisStatusStore(client)
        manager = JobManager(store)
        ```
    """

    backend_name = "redis"

    def __init__(
        self,
        client: Any,  # redis.Redis
        key_prefix: str = "lro",
        active_ttl_seconds: int = 2 * 24 * 3600,
        terminal_ttl_seconds: int = 7 * 24 * 3600,
        index_cap: int = 1000,
        *,
        owns_client: bool = False,
    ):
        if index_cap <= 0:
            raise ValueError("index_cap must be positive")
        self._client = client
        self._prefix = key_prefix
        self._active_ttl = active_ttl_seconds
        self._terminal_ttl = terminal_ttl_seconds
        self._index_cap = index_cap
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisStatusStore:
        """Create a store with its own client for ``url``."""
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, owns_client=True, **kwargs)

    @property
    def index_key(self) -> str:
        return f"{self._prefix}:job_ids"

    def _job_key(self, job_id: str) -> str:
        return f"{self._prefix}:job:{job_id}"

    def _ttl_for(self, job: JobRecord) -> int:
        return self._terminal_ttl if job.state.is_terminal else self._active_ttl

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except _CONNECTION_ERRORS as e:
            raise StoreUnavailableError(
                f"Redis unavailable: {e}", backend=self.backend_name, cause=e
            ) from e

    async def ensure_ready(self) -> None:
        with self._guard():
            await self._client.ping()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def create(self, job: JobRecord) -> JobRecord:
        key = self._job_key(job.job_id)

        with self._guard():
            created = await self._client.set(
                key, dumps_record(job.to_dict()), nx=True, ex=self._ttl_for(job)
            )
            if not created:
                raise DuplicateJobError(job.job_id, backend=self.backend_name)

            await self._client.lpush(self.index_key, job.job_id)
            await self._client.ltrim(self.index_key, 0, self._index_cap - 1)
            await self._client.expire(self.index_key, self._terminal_ttl)

        return job.copy()

    async def get(self, job_id: str) -> JobRecord | None:
        with self._guard():
            data = await self._client.get(self._job_key(job_id))
        if not data:
            return None
        return JobRecord.from_dict(loads_record(data))

    async def update(self, job: JobRecord) -> bool:
        job.updated_at = time.time()

        with self._guard():
            written = await self._client.eval(
                _CONDITIONAL_UPDATE,
                1,
                self._job_key(job.job_id),
                dumps_record(job.to_dict()),
                self._ttl_for(job),
            )
        return bool(written)

    async def _indexed_jobs(self) -> list[JobRecord]:
        """Load every record still referenced by the id index."""
        with self._guard():
            ids = await self._client.lrange(self.index_key, 0, -1)
            if not ids:
                return []
            payloads = await self._client.mget([self._job_key(_decode(i)) for i in ids])

        # Records whose TTL ran out are skipped.
        return [JobRecord.from_dict(loads_record(p)) for p in payloads if p]

    async def find_expired(self, now: float | None = None) -> list[JobRecord]:
        now = time.time() if now is None else now
        return [j for j in await self._indexed_jobs() if j.is_expired(now)]

    async def list(self, filter: JobFilter | None = None) -> list[JobRecord]:
        filter = filter or JobFilter()
        return filter.apply(await self._indexed_jobs())


__all__ = ["RedisStatusStore"]
