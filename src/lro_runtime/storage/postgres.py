"""
PostgreSQL status store.

Shared across every instance of the fleet and strongly consistent per record.
Reads are plain snapshot SELECTs (no row locks). The state column stores the
enum value as text, and ``state`` / ``(state, created_at)`` indexes keep
``find_expired`` and ``list`` cheap.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import asyncpg

from ..errors import DuplicateJobError, StoreUnavailableError
from ..jobs.store import JobFilter, StatusStore
from ..jobs.types import ACTIVE_STATES, JobRecord, JobState

_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
)

_ACTIVE_SQL = ", ".join(f"'{s.value}'" for s in sorted(ACTIVE_STATES, key=lambda s: s.value))

_COLUMNS = (
    "job_id",
    "name",
    "state",
    "percent_complete",
    "created_at",
    "updated_at",
    "completed_at",
    "result",
    "error",
    "error_detail",
    "owner_instance_id",
    "timeout_seconds",
    "cancellation_requested",
    "created_by",
    "correlation_id",
)


def _sanitize_table_name(name: str) -> str:
    """Ensure the table name is safe for SQL interpolation."""
    if not name:
        raise ValueError("table_name cannot be empty")
    if not re.fullmatch(r"[a-zA-Z0-9_]+", name):
        raise ValueError(f"Invalid table name: {name!r}")
    return name


def _to_timestamptz(value: float | None) -> datetime | None:
    """Convert epoch seconds into timezone-aware datetimes for TIMESTAMPTZ columns."""
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _from_timestamptz(value: Any) -> float | None:
    if value is None:
        return None
    if hasattr(value, "timestamp"):
        return value.timestamp()
    return float(value)


class PostgresStatusStore(StatusStore):
    """PostgreSQL implementation of StatusStore.

    Table schema:
    - job_id (TEXT PRIMARY KEY)
    - name, state (TEXT NOT NULL)
    - percent_complete, timeout_seconds (INTEGER)
    - created_at, updated_at, completed_at (TIMESTAMPTZ)
    - result, error, error_detail (TEXT)
    - owner_instance_id, created_by, correlation_id (TEXT)
    - cancellation_requested (BOOLEAN)
    """

    TABLE_NAME = "lro_jobs"
    backend_name = "postgres"

    def __init__(
        self,
        pool: Any,  # asyncpg.Pool
        table_name: str | None = None,
        *,
        owns_pool: bool = False,
    ):
        self._pool = pool
        self._table = _sanitize_table_name(table_name or self.TABLE_NAME)
        self._owns_pool = owns_pool
        self._ensured = False
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(
        cls,
        dsn: str,
        table_name: str | None = None,
        *,
        min_size: int = 1,
        max_size: int = 10,
    ) -> PostgresStatusStore:
        """Create a pool for ``dsn`` and a store that closes it on close()."""
        try:
            pool = await asyncpg.create_pool(dsn=dsn, min_size=min_size, max_size=max_size)
        except _CONNECTION_ERRORS as e:
            raise StoreUnavailableError(
                f"Cannot connect to PostgreSQL: {e}", backend=cls.backend_name, cause=e
            ) from e
        return cls(pool, table_name, owns_pool=True)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except _CONNECTION_ERRORS as e:
            raise StoreUnavailableError(
                f"PostgreSQL unavailable: {e}", backend=self.backend_name, cause=e
            ) from e

    async def ensure_ready(self) -> None:
        await self._ensure_table()

    async def close(self) -> None:
        if self._owns_pool:
            await self._pool.close()

    async def _ensure_table(self) -> None:
        """Create the jobs table and its indexes if they don't exist."""
        async with self._lock:
            if self._ensured:
                return

            ddl = f'''
            CREATE TABLE IF NOT EXISTS "{self._table}" (
                job_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                state TEXT NOT NULL DEFAULT 'accepted',
                percent_complete INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                completed_at TIMESTAMPTZ,
                result TEXT,
                error TEXT,
                error_detail TEXT,
                owner_instance_id TEXT,
                timeout_seconds INTEGER NOT NULL DEFAULT 3600,
                cancellation_requested BOOLEAN NOT NULL DEFAULT FALSE,
                created_by TEXT,
                correlation_id TEXT
            );
            CREATE INDEX IF NOT EXISTS "{self._table}_state_idx" ON "{self._table}" (state);
            CREATE INDEX IF NOT EXISTS "{self._table}_name_idx" ON "{self._table}" (name);
            CREATE INDEX IF NOT EXISTS "{self._table}_state_created_at_idx" ON "{self._table}" (state, created_at);
            CREATE INDEX IF NOT EXISTS "{self._table}_created_at_idx" ON "{self._table}" (created_at DESC)
            '''

            async with self._connection() as conn:
                for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                    await conn.execute(stmt)

            self._ensured = True

    def _job_to_row(self, job: JobRecord) -> dict[str, Any]:
        """Convert JobRecord to database row."""
        return {
            "job_id": job.job_id,
            "name": job.name,
            "state": job.state.value,
            "percent_complete": job.percent_complete,
            "created_at": _to_timestamptz(job.created_at),
            "updated_at": _to_timestamptz(job.updated_at),
            "completed_at": _to_timestamptz(job.completed_at),
            "result": job.result,
            "error": job.error,
            "error_detail": job.error_detail,
            "owner_instance_id": job.owner_instance_id,
            "timeout_seconds": job.timeout_seconds,
            "cancellation_requested": job.cancellation_requested,
            "created_by": job.created_by,
            "correlation_id": job.correlation_id,
        }

    def _row_to_job(self, row: Any) -> JobRecord:
        """Convert database row to JobRecord."""
        return JobRecord(
            job_id=row["job_id"],
            name=row["name"],
            state=JobState(row["state"]),
            percent_complete=row["percent_complete"] or 0,
            created_at=_from_timestamptz(row["created_at"]),
            updated_at=_from_timestamptz(row["updated_at"]),
            completed_at=_from_timestamptz(row["completed_at"]),
            result=row["result"],
            error=row["error"],
            error_detail=row["error_detail"],
            owner_instance_id=row["owner_instance_id"],
            timeout_seconds=row["timeout_seconds"],
            cancellation_requested=bool(row["cancellation_requested"]),
            created_by=row["created_by"],
            correlation_id=row["correlation_id"],
        )

    async def create(self, job: JobRecord) -> JobRecord:
        await self._ensure_table()

        row = self._job_to_row(job)
        placeholders = [f"${i + 1}" for i in range(len(_COLUMNS))]

        q = f'''
        INSERT INTO "{self._table}" ({", ".join(_COLUMNS)})
        VALUES ({", ".join(placeholders)})
        '''

        async with self._connection() as conn:
            try:
                await conn.execute(q, *[row[c] for c in _COLUMNS])
            except asyncpg.UniqueViolationError as e:
                raise DuplicateJobError(job.job_id, backend=self.backend_name, cause=e) from e

        return job.copy()

    async def get(self, job_id: str) -> JobRecord | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE job_id = $1'

        async with self._connection() as conn:
            row = await conn.fetchrow(q, job_id)
            if row is None:
                return None
            return self._row_to_job(row)

    async def update(self, job: JobRecord) -> bool:
        await self._ensure_table()

        job.updated_at = time.time()
        row = self._job_to_row(job)
        update_cols = [c for c in _COLUMNS if c != "job_id"]
        set_clause = ", ".join(f"{col} = ${i + 2}" for i, col in enumerate(update_cols))

        # Terminal records are never overwritten.
        q = f'''
        UPDATE "{self._table}"
        SET {set_clause}
        WHERE job_id = $1 AND state IN ({_ACTIVE_SQL})
        '''

        values = [job.job_id] + [row[col] for col in update_cols]

        async with self._connection() as conn:
            result = await conn.execute(q, *values)
        return result != "UPDATE 0"

    async def find_expired(self, now: float | None = None) -> list[JobRecord]:
        await self._ensure_table()

        now = time.time() if now is None else now
        q = f'''
        SELECT * FROM "{self._table}"
        WHERE state IN ({_ACTIVE_SQL})
          AND created_at + timeout_seconds * INTERVAL '1 second' < $1
        ORDER BY created_at
        '''

        async with self._connection() as conn:
            rows = await conn.fetch(q, _to_timestamptz(now))
            return [self._row_to_job(row) for row in rows]

    async def list(self, filter: JobFilter | None = None) -> list[JobRecord]:
        await self._ensure_table()

        filter = filter or JobFilter()
        q = f'SELECT * FROM "{self._table}"'
        params: list[Any] = []
        conditions: list[str] = []

        if filter.name:
            params.append(filter.name)
            conditions.append(f"name = ${len(params)}")
        if filter.state is not None:
            params.append(filter.state.value)
            conditions.append(f"state = ${len(params)}")

        if conditions:
            q += " WHERE " + " AND ".join(conditions)

        params.extend([filter.page_size, filter.offset])
        q += f" ORDER BY created_at DESC, job_id DESC LIMIT ${len(params) - 1} OFFSET ${len(params)}"

        async with self._connection() as conn:
            rows = await conn.fetch(q, *params)
            return [self._row_to_job(row) for row in rows]


__all__ = ["PostgresStatusStore"]
