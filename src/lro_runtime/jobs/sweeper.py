"""
Timeout sweeper.

One recurring loop per instance, with no coordination between instances.
Redundant sweeps are harmless: the TIMED_OUT write is conditional on the
record still being active, so a concurrent success, failure or cancellation
is never clobbered.
"""

from __future__ import annotations

import asyncio
import logging
import time

from ..errors import StoreUnavailableError
from ..logging import JobEventLog, get_logger, timed
from .store import StatusStore
from .types import JobRecord, JobState


def timeout_message(job: JobRecord) -> str:
    return f"Job timed out after {job.timeout_seconds} seconds."


class TimeoutSweeper:
    """Periodically marks expired active jobs as TIMED_OUT.

    Marking a job timed out changes its status only; work that never checks
    its cancellation token keeps running.
    """

    def __init__(
        self,
        store: StatusStore,
        interval_seconds: float = 60.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()
        self._logger = get_logger("lro_runtime")
        self.ticks = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self, now: float | None = None) -> int:
        """Run a single sweep. Returns the number of jobs marked TIMED_OUT."""
        now = time.time() if now is None else now
        expired = await self._store.find_expired(now)

        marked = 0
        for job in expired:
            timed_out = job.transition_to(JobState.TIMED_OUT, now=now)
            timed_out.error = timeout_message(job)
            if not await self._store.update(timed_out):
                # Finished or cancelled since find_expired.
                continue
            marked += 1
            self._logger.log_job_event(
                JobEventLog(
                    job_id=job.job_id,
                    event="timed_out",
                    state=timed_out.state.value,
                    job_name=job.name,
                    instance_id=job.owner_instance_id,
                    error=timed_out.error,
                ),
                level=logging.WARNING,
            )
        return marked

    def start(self) -> None:
        """Start the background loop (no-op if already running)."""
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="lro-timeout-sweeper")
        self._logger.info(
            "Timeout sweeper started",
            interval_seconds=self._interval,
        )

    async def stop(self) -> None:
        """Stop the loop and wait for the current tick to finish."""
        if self._task is None:
            return
        self._stopping.set()
        try:
            await asyncio.wait_for(self._task, timeout=max(self._interval, 5.0))
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._logger.info("Timeout sweeper stopped")

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                pass

            self.ticks += 1
            try:
                with timed() as timer:
                    marked = await self.sweep_once()
                if marked:
                    self._logger.info(
                        "Sweep marked jobs timed out",
                        count=marked,
                        duration_ms=round(timer.elapsed_ms, 2),
                    )
            except StoreUnavailableError as e:
                self._logger.warning(
                    "Status store unavailable during sweep; retrying next tick",
                    error=str(e),
                )
            except Exception as e:
                self._logger.log_error(e, "Error checking for timed-out jobs")


__all__ = ["TimeoutSweeper", "timeout_message"]
