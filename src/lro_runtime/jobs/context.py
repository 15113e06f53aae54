"""
Execution context handed to a job's background work function.

The context writes progress and outcome through to the status store and
carries the job's cancellation token. It never polls the store for
``cancellation_requested``; cancellation reaches running work only through
the in-process token.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from ..cancellation import CancellationToken
from ..errors import StoreUnavailableError
from ..logging import JobEventLog, get_logger, truncate_for_log
from ..serialization import dumps_payload
from .store import StatusStore
from .types import JobRecord, JobState


@dataclass
class _Outcome:
    state: JobState
    fields: dict[str, Any]


class ExecutionContext:
    """Progress/outcome reporting for exactly one job.

    Writes for a record that has disappeared are silent no-ops (the job was
    reclaimed). Writes against a record that is already terminal are rejected
    by the store and logged; a cancelled or timed-out job keeps that state.
    A store outage never turns into a job failure: progress writes are
    skipped and outcome writes are kept until ``retry_outcome`` succeeds.
    """

    def __init__(
        self,
        job_id: str,
        store: StatusStore,
        cancellation: CancellationToken | None = None,
    ):
        self._job_id = job_id
        self._store = store
        self._cancellation = cancellation or CancellationToken(job_id=job_id)
        self._completed = False
        self._outcome: _Outcome | None = None
        self._logger = get_logger("lro_runtime")

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def cancellation(self) -> CancellationToken:
        """Cooperative cancellation signal for this job."""
        return self._cancellation

    @property
    def is_cancelled(self) -> bool:
        return self._cancellation.is_cancelled

    @property
    def completed(self) -> bool:
        """True once an outcome has been recorded (or the record is gone)."""
        return self._completed

    @property
    def outcome_pending(self) -> bool:
        """True while an outcome write is waiting for the store to come back."""
        return self._outcome is not None

    async def report_progress(self, percent: int) -> bool:
        """Record progress (clamped to 0..100) and move the job to RUNNING.

        A store outage skips this write; the next progress report carries the
        newer value anyway.
        """
        try:
            job = await self._store.get(self._job_id)
            if job is None or job.state.is_terminal:
                return False

            job.percent_complete = max(0, min(100, int(percent)))
            job.state = JobState.RUNNING
            return await self._write(job, "progress")
        except StoreUnavailableError as e:
            self._logger.warning(
                "Progress write skipped, store unavailable",
                job_id=self._job_id,
                percent_complete=percent,
                error=str(e),
            )
            return False

    async def set_result(self, payload: Any) -> bool:
        """Record a successful outcome with its serialized payload."""
        self._outcome = _Outcome(
            JobState.SUCCEEDED,
            {"result": dumps_payload(payload), "percent_complete": 100},
        )
        return await self._write_outcome()

    async def set_failed(self, message: str, detail: str | None = None) -> bool:
        """Record a failed outcome."""
        self._outcome = _Outcome(JobState.FAILED, {"error": message, "error_detail": detail})
        return await self._write_outcome()

    async def retry_outcome(self) -> bool:
        """Retry an outcome write that a store outage deferred."""
        if self._outcome is None:
            return False
        return await self._write_outcome()

    async def _write_outcome(self) -> bool:
        outcome = self._outcome
        try:
            job = await self._store.get(self._job_id)
            if job is None:
                applied = False
            else:
                job.state = outcome.state
                for name, value in outcome.fields.items():
                    setattr(job, name, value)
                job.completed_at = time.time()
                error = outcome.fields.get("error")
                applied = await self._write(
                    job,
                    outcome.state.value,
                    error=truncate_for_log(error) if error else None,
                )
        except StoreUnavailableError as e:
            # Kept in self._outcome for retry_outcome().
            self._logger.log_error(
                e,
                f"Could not record {outcome.state.value} outcome, store unavailable",
                job_id=self._job_id,
            )
            return False

        self._outcome = None
        self._completed = True
        return applied

    async def _write(self, job: JobRecord, event: str, error: str | None = None) -> bool:
        applied = await self._store.update(job)
        if applied:
            self._logger.log_job_event(
                JobEventLog(
                    job_id=job.job_id,
                    event=event,
                    state=job.state.value,
                    job_name=job.name,
                    percent_complete=job.percent_complete,
                    error=error,
                ),
                level=logging.DEBUG if event == "progress" else logging.INFO,
            )
        else:
            self._logger.log_job_event(
                JobEventLog(
                    job_id=job.job_id,
                    event="rejected",
                    state=job.state.value,
                    job_name=job.name,
                    error=f"{event} write after terminal state",
                ),
                level=logging.WARNING,
            )
        return applied


__all__ = ["ExecutionContext"]
