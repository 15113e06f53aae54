"""Tests for ExecutionContext progress and outcome reporting."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from lro_runtime.jobs import ExecutionContext, JobManager, JobState
from lro_runtime.serialization import loads_payload


@dataclass
class ReportSummary:
    rows: int
    url: str


class TestProgress:
    """Test report_progress."""

    @pytest.mark.asyncio
    async def test_progress_moves_job_to_running(self, manager):
        job, ctx = await manager.create("report.export", 60)
        assert await ctx.report_progress(40) is True

        stored = await manager.get_status(job.job_id)
        assert stored.state == JobState.RUNNING
        assert stored.percent_complete == 40
        assert stored.completed_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reported,expected", [(150, 100), (-5, 0), (100, 100)])
    async def test_progress_is_clamped(self, manager, reported, expected):
        job, ctx = await manager.create("report.export", 60)
        await ctx.report_progress(reported)
        assert (await manager.get_status(job.job_id)).percent_complete == expected

    @pytest.mark.asyncio
    async def test_progress_for_missing_record_is_silent(self, memory_store):
        ctx = ExecutionContext("gone", memory_store)
        assert await ctx.report_progress(10) is False
        assert await memory_store.get("gone") is None


class TestOutcome:
    """Test set_result / set_failed."""

    @pytest.mark.asyncio
    async def test_set_result_records_success(self, manager):
        job, ctx = await manager.create("report.export", 60)
        await ctx.report_progress(30)
        assert await ctx.set_result(ReportSummary(rows=3, url="/r/1.pdf")) is True
        assert ctx.completed

        stored = await manager.get_status(job.job_id)
        assert stored.state == JobState.SUCCEEDED
        assert stored.percent_complete == 100
        assert stored.completed_at is not None
        assert loads_payload(stored.result) == {"rows": 3, "url": "/r/1.pdf"}

    @pytest.mark.asyncio
    async def test_set_failed_records_message_and_detail(self, manager):
        job, ctx = await manager.create("report.export", 60)
        assert await ctx.set_failed("disk full", "Traceback ...") is True

        stored = await manager.get_status(job.job_id)
        assert stored.state == JobState.FAILED
        assert stored.error == "disk full"
        assert stored.error_detail == "Traceback ..."
        assert stored.completed_at is not None
        assert stored.result is None

    @pytest.mark.asyncio
    async def test_result_after_cancel_is_rejected(self, manager):
        """A cancelled job stays cancelled even if the work later finishes."""
        job, ctx = await manager.create("report.export", 60)
        await ctx.report_progress(10)
        await manager.cancel(job.job_id)

        assert ctx.is_cancelled
        assert await ctx.set_result({"late": True}) is False

        stored = await manager.get_status(job.job_id)
        assert stored.state == JobState.CANCELLED
        assert stored.result is None

    @pytest.mark.asyncio
    async def test_progress_after_terminal_is_rejected(self, manager):
        job, ctx = await manager.create("report.export", 60)
        await ctx.set_failed("nope")
        assert await ctx.report_progress(90) is False
        assert (await manager.get_status(job.job_id)).percent_complete == 0

    @pytest.mark.asyncio
    async def test_outcome_for_missing_record_is_silent(self, memory_store):
        ctx = ExecutionContext("gone", memory_store)
        assert await ctx.set_result(1) is False
        assert await ctx.set_failed("x") is False
        assert ctx.completed


class TestCancellationAccess:
    """Test the context's view of its cancellation token."""

    @pytest.mark.asyncio
    async def test_context_token_is_manager_token(self, manager):
        job, ctx = await manager.create("report.export", 60)
        assert not ctx.is_cancelled
        await manager.cancel(job.job_id)
        assert ctx.cancellation.is_cancelled

    def test_standalone_context_gets_its_own_token(self, memory_store):
        ctx = ExecutionContext("job-x", memory_store)
        assert ctx.cancellation.job_id == "job-x"
        assert not ctx.is_cancelled


class TestStoreOutage:
    """Test writes while the store is unreachable."""

    @pytest.mark.asyncio
    async def test_progress_write_skipped(self, outage_store):
        manager = JobManager(outage_store, instance_id="test-instance")
        job, ctx = await manager.create("report.export", 60)
        outage_store.failing_updates = {1}

        assert await ctx.report_progress(40) is False
        assert await ctx.report_progress(60) is True
        assert (await manager.get_status(job.job_id)).percent_complete == 60

    @pytest.mark.asyncio
    async def test_outcome_kept_until_retried(self, outage_store):
        manager = JobManager(outage_store, instance_id="test-instance")
        job, ctx = await manager.create("report.export", 60)
        outage_store.failing_updates = {1}

        assert await ctx.set_failed("bad input") is False
        assert ctx.outcome_pending
        assert not ctx.completed
        assert (await manager.get_status(job.job_id)).state == JobState.ACCEPTED

        assert await ctx.retry_outcome() is True
        assert ctx.completed
        assert not ctx.outcome_pending
        stored = await manager.get_status(job.job_id)
        assert stored.state == JobState.FAILED
        assert stored.error == "bad input"

    @pytest.mark.asyncio
    async def test_retry_without_pending_outcome(self, memory_store):
        assert await ExecutionContext("job-1", memory_store).retry_outcome() is False
