"""
Job manager for lifecycle operations.

This module provides the JobManager that creates jobs, serves status reads,
cancellation and listing to any instance, and tracks which jobs are executing
on this instance so their cancellation tokens can be triggered directly.
"""

from __future__ import annotations

import time

from ..cancellation import CancellationToken
from ..config.jobs import generate_instance_id
from ..errors import JobConflictError, JobNotFoundError
from ..logging import JobEventLog, get_logger
from .context import ExecutionContext
from .store import JobFilter, StatusStore
from .types import JobRecord, JobState, new_job_id


class JobManager:
    """Manages job lifecycle operations.

    The JobManager is responsible for:
    - Creating jobs and handing out their execution contexts
    - Status reads, cancellation and listing from any instance
    - The local table of job_id -> CancellationToken for jobs running here

    Job state itself always lives in the StatusStore; the local table holds
    only cancellation handles.
    """

    def __init__(
        self,
        store: StatusStore,
        instance_id: str | None = None,
    ):
        self._store = store
        self._instance_id = instance_id or generate_instance_id()
        self._tokens: dict[str, CancellationToken] = {}
        self._logger = get_logger("lro_runtime")

    @property
    def store(self) -> StatusStore:
        return self._store

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def tracked_count(self) -> int:
        """Number of jobs currently tracked as executing on this instance."""
        return len(self._tokens)

    def is_tracked(self, job_id: str) -> bool:
        return job_id in self._tokens

    async def create(
        self,
        name: str,
        timeout_seconds: int,
        created_by: str | None = None,
        correlation_id: str | None = None,
    ) -> tuple[JobRecord, ExecutionContext]:
        """Persist a new ACCEPTED job owned by this instance.

        Does not start any work; the caller runs its work function with the
        returned context.
        """
        if not name:
            raise ValueError("name is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        now = time.time()
        job = JobRecord(
            job_id=new_job_id(),
            name=name,
            state=JobState.ACCEPTED,
            created_at=now,
            updated_at=now,
            timeout_seconds=int(timeout_seconds),
            owner_instance_id=self._instance_id,
            created_by=created_by,
            correlation_id=correlation_id,
        )
        job = await self._store.create(job)

        token = CancellationToken(job_id=job.job_id)
        self._tokens[job.job_id] = token
        context = ExecutionContext(job.job_id, self._store, token)

        self._logger.log_job_event(JobEventLog(
            job_id=job.job_id,
            event="created",
            state=job.state.value,
            job_name=job.name,
            instance_id=self._instance_id,
        ))
        return job, context

    async def get_status(self, job_id: str) -> JobRecord:
        """Read a job from the shared store.

        Raises:
            JobNotFoundError: If the id is unknown
        """
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def cancel(self, job_id: str) -> JobRecord:
        """Request cancellation and record it immediately.

        CANCELLED is written to the store first, so every instance sees it
        even if the work never checks its token; the local token is then
        triggered when the work runs on this instance. The work may still be
        running when this returns.

        Raises:
            JobNotFoundError: If the id is unknown
            JobConflictError: If the job is already terminal
            StoreUnavailableError: If the store cannot be reached; nothing
                is cancelled and the caller may retry
        """
        job = await self.get_status(job_id)
        if job.state.is_terminal:
            raise JobConflictError(job_id, job.state.value)

        cancelled = job.transition_to(JobState.CANCELLED)
        cancelled.cancellation_requested = True
        if not await self._store.update(cancelled):
            # Lost a race with a completion or the sweeper.
            current = await self.get_status(job_id)
            raise JobConflictError(job_id, current.state.value)

        # Token fires only once CANCELLED is stored.
        token = self._tokens.get(job_id)
        if token is not None:
            token.cancel()

        self._logger.log_job_event(JobEventLog(
            job_id=job_id,
            event="cancelled",
            state=cancelled.state.value,
            job_name=cancelled.name,
            instance_id=self._instance_id,
        ))
        return cancelled

    def complete_tracking(self, job_id: str) -> None:
        """Forget the local cancellation handle once the work has finished."""
        if self._tokens.pop(job_id, None) is None:
            self._logger.debug("complete_tracking for untracked job", job_id=job_id)

    async def list(
        self,
        name: str | None = None,
        state: JobState | str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[JobRecord]:
        """List jobs across the fleet, newest first."""
        return await self._store.list(JobFilter(
            name=name,
            state=JobState(state) if state is not None else None,
            page=page,
            page_size=page_size,
        ))


__all__ = ["JobManager"]
