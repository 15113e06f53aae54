"""
Long-running endpoint dispatch.

A LongRunningEndpoint declares how a piece of work is tracked; the
JobDispatcher creates the job, starts the work in the background and returns
the acknowledgment immediately:

    ```python
    export = LongRunningEndpoint("report.export", timeout_seconds=600)

    async def build_report(ctx: ExecutionContext, report_id: str) -> dict:
        for i, chunk in enumerate(chunks(report_id)):
            ctx.cancellation.raise_if_cancelled()
            await render(chunk)
            await ctx.report_progress(i * 10)
        return {"url": f"/reports/{report_id}.pdf"}

    accepted = await dispatcher.submit(export, build_report, "r-42")
    ```

Whatever the work function does, the job leaves the execution wrapper in a
terminal state and the local cancellation handle is released. The exception
is a status store outage: it is never recorded as a job failure, and a job
whose outcome could not be written is left for the timeout sweeper.
"""

from __future__ import annotations

import asyncio
import traceback
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .errors import JobCancelledError, LROError, StoreError
from .jobs.context import ExecutionContext
from .jobs.manager import JobManager
from .jobs.types import JobRecord
from .jobs.views import JobAccepted
from .logging import get_logger

WorkFunction = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class LongRunningEndpoint:
    """Declaration of a long-running operation."""
    name: str
    timeout_seconds: int | None = None  # None: the dispatcher default
    allow_cancellation: bool = True
    estimated_duration_seconds: int = 0

    def __post_init__(self):
        if not self.name:
            raise ValueError("name is required")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.estimated_duration_seconds < 0:
            raise ValueError("estimated_duration_seconds cannot be negative")


def _failure_message(error: BaseException) -> str:
    if isinstance(error, LROError):
        return error.message
    return str(error) or type(error).__name__


class JobDispatcher:
    """Runs work functions as tracked background jobs on this instance."""

    def __init__(
        self,
        manager: JobManager,
        base_url: str | None = None,
        route_prefix: str = "/operations",
        default_timeout_seconds: int = 3600,
    ):
        if default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be positive")
        self._manager = manager
        self._default_timeout = default_timeout_seconds
        self._base_url = (base_url or "").rstrip("/")
        self._route_prefix = "/" + route_prefix.strip("/")
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._logger = get_logger("lro_runtime")

    @property
    def manager(self) -> JobManager:
        return self._manager

    @property
    def in_flight(self) -> int:
        """Number of work tasks still running."""
        return len(self._tasks)

    def status_url(self, job_id: str) -> str:
        return f"{self._base_url}{self._route_prefix}/{job_id}"

    def cancel_url(self, job_id: str) -> str:
        return f"{self.status_url(job_id)}/cancel"

    async def submit(
        self,
        endpoint: LongRunningEndpoint,
        work: WorkFunction,
        *args: Any,
        created_by: str | None = None,
        correlation_id: str | None = None,
        **kwargs: Any,
    ) -> JobAccepted:
        """Create a job for ``endpoint`` and start ``work(ctx, *args, **kwargs)``.

        Returns as soon as the job is persisted; the work keeps running in a
        background task.
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        job, ctx = await self._manager.create(
            endpoint.name,
            endpoint.timeout_seconds or self._default_timeout,
            created_by=created_by,
            correlation_id=correlation_id,
        )

        task = asyncio.create_task(
            self._execute(job, ctx, work, args, kwargs),
            name=f"lro-job-{job.job_id}",
        )
        self._tasks[job.job_id] = task

        return JobAccepted(
            job_id=job.job_id,
            name=job.name,
            state=job.state,
            status_url=self.status_url(job.job_id),
            cancel_url=self.cancel_url(job.job_id) if endpoint.allow_cancellation else None,
            estimated_duration_seconds=endpoint.estimated_duration_seconds,
            created_at=job.created_at,
        )

    async def _execute(
        self,
        job: JobRecord,
        ctx: ExecutionContext,
        work: WorkFunction,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        """Run the work function (called in background task)."""
        with self._logger.job_context(
            job_id=job.job_id,
            job_name=job.name,
            instance_id=self._manager.instance_id,
            correlation_id=job.correlation_id,
        ):
            try:
                if ctx.is_cancelled:
                    return

                await ctx.report_progress(0)
                value = await work(ctx, *args, **kwargs)
                if not ctx.completed and not ctx.outcome_pending:
                    await ctx.set_result(value)
                if ctx.outcome_pending:
                    await ctx.retry_outcome()
                if ctx.outcome_pending:
                    self._logger.warning(
                        "Outcome not recorded, job left to the timeout sweeper",
                        job_id=job.job_id,
                    )
            except JobCancelledError:
                # The cancel request already recorded CANCELLED.
                self._logger.info("Work stopped after cancellation", job_id=job.job_id)
            except asyncio.CancelledError:
                self._logger.warning("Work task cancelled before finishing", job_id=job.job_id)
                raise
            except StoreError as e:
                self._logger.log_error(e, "Status store error during job execution", job_id=job.job_id)
            except Exception as e:
                self._logger.log_error(e, "Job work failed", job_id=job.job_id)
                await self._record_failure(ctx, e)
            finally:
                self._manager.complete_tracking(job.job_id)
                self._tasks.pop(job.job_id, None)

    async def _record_failure(self, ctx: ExecutionContext, error: Exception) -> None:
        detail = "".join(traceback.format_exception(error))
        try:
            if not await ctx.set_failed(_failure_message(error), detail) and ctx.outcome_pending:
                await ctx.retry_outcome()
        except StoreError as e:
            self._logger.log_error(e, "Could not record job failure", job_id=ctx.job_id)

    async def aclose(self, timeout: float | None = 5.0) -> None:
        """Wait for in-flight work, cancelling whatever outlives ``timeout``.

        Cancelled work leaves its job active; the timeout sweeper reclaims it.
        """
        tasks = list(self._tasks.values())
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self._logger.warning("Cancelled unfinished work on shutdown", count=len(pending))


__all__ = ["LongRunningEndpoint", "JobDispatcher", "WorkFunction"]
