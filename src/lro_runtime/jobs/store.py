"""
Status store interface and the in-process implementation.

Every backend honors the same contract:
- operations are atomic per record; no multi-record transactions
- ``update`` stamps ``updated_at`` itself and never overwrites a terminal
  record, so terminal states cannot be left once reached
- connection failures surface as StoreUnavailableError
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..errors import DuplicateJobError
from .types import JobRecord, JobState

MAX_PAGE_SIZE = 500


@dataclass
class JobFilter:
    """Filter and offset-pagination criteria for listing jobs."""
    name: str | None = None
    state: JobState | None = None
    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        if isinstance(self.state, str) and not isinstance(self.state, JobState):
            self.state = JobState(self.state)
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not (1 <= self.page_size <= MAX_PAGE_SIZE):
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def matches(self, job: JobRecord) -> bool:
        """Check if a job matches this filter."""
        if self.name and job.name != self.name:
            return False
        if self.state is not None and job.state != self.state:
            return False
        return True

    def apply(self, jobs: list[JobRecord]) -> list[JobRecord]:
        """Filter, order by created_at descending, and cut the page window."""
        selected = [j for j in jobs if self.matches(j)]
        # job_id breaks created_at ties so pages stay stable
        selected.sort(key=lambda j: (j.created_at, j.job_id), reverse=True)
        return selected[self.offset:self.offset + self.page_size]


class StatusStore(ABC):
    """Abstract interface for job status persistence.

    Implementations must be safe for concurrent access from many tasks.
    """

    backend_name: str = "abstract"

    async def ensure_ready(self) -> None:
        """Prepare backend resources (tables, connections). Idempotent."""
        return None

    async def close(self) -> None:
        """Release backend resources."""
        return None

    @abstractmethod
    async def create(self, job: JobRecord) -> JobRecord:
        """Persist a new job record.

        Raises:
            DuplicateJobError: If job_id already exists
        """
        ...

    @abstractmethod
    async def get(self, job_id: str) -> JobRecord | None:
        """Get a job by ID."""
        ...

    @abstractmethod
    async def update(self, job: JobRecord) -> bool:
        """Replace the stored record with ``job``.

        Stamps ``updated_at``. Returns False and writes nothing when the record
        does not exist or the stored record is already terminal.
        """
        ...

    @abstractmethod
    async def find_expired(self, now: float | None = None) -> list[JobRecord]:
        """Active jobs whose ``created_at + timeout_seconds`` is before ``now``."""
        ...

    @abstractmethod
    async def list(self, filter: JobFilter | None = None) -> list[JobRecord]:
        """List jobs matching the filter, newest first."""
        ...


class InMemoryStatusStore(StatusStore):
    """In-process status store.

    Suitable for testing and single-instance deployments; nothing is shared
    across processes and everything is lost on restart. Every record handed
    in or out is a copy, so callers only change stored state through update().
    """

    backend_name = "memory"

    def __init__(self):
        self._jobs: dict[str, JobRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: JobRecord) -> JobRecord:
        async with self._lock:
            if job.job_id in self._jobs:
                raise DuplicateJobError(job.job_id, backend=self.backend_name)

            self._jobs[job.job_id] = job.copy()
            return job.copy()

    async def get(self, job_id: str) -> JobRecord | None:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.copy() if job else None

    async def update(self, job: JobRecord) -> bool:
        async with self._lock:
            current = self._jobs.get(job.job_id)
            if current is None or current.state.is_terminal:
                return False

            job.updated_at = time.time()
            self._jobs[job.job_id] = job.copy()
            return True

    async def find_expired(self, now: float | None = None) -> list[JobRecord]:
        now = time.time() if now is None else now
        async with self._lock:
            return [j.copy() for j in self._jobs.values() if j.is_expired(now)]

    async def list(self, filter: JobFilter | None = None) -> list[JobRecord]:
        filter = filter or JobFilter()
        async with self._lock:
            return [j.copy() for j in filter.apply(list(self._jobs.values()))]

    def __len__(self) -> int:
        return len(self._jobs)


__all__ = [
    "StatusStore",
    "InMemoryStatusStore",
    "JobFilter",
    "MAX_PAGE_SIZE",
]
