"""Tests for client-facing job views."""

from __future__ import annotations

import pytest

from lro_runtime.jobs import JobAccepted, JobState, JobStatusView


class TestJobStatusView:
    """Test which fields each state exposes."""

    def test_active_job_has_retry_hint_only(self, job_factory):
        job = job_factory(state=JobState.RUNNING, percent_complete=40)
        view = JobStatusView.from_record(job, retry_after_seconds=5)

        data = view.to_dict()
        assert data["state"] == "running"
        assert data["percent_complete"] == 40
        assert data["retry_after_seconds"] == 5
        assert "result" not in data
        assert "error" not in data

    def test_succeeded_job_exposes_result(self, job_factory):
        job = job_factory(
            state=JobState.SUCCEEDED,
            percent_complete=100,
            result='{"rows": [1, 2]}',
            completed_at=2000.0,
        )
        view = JobStatusView.from_record(job, retry_after_seconds=5)

        assert view.result == {"rows": [1, 2]}
        assert view.retry_after_seconds is None
        data = view.to_dict()
        assert data["result"] == {"rows": [1, 2]}
        assert data["completed_at"].startswith("1970-01-01T00:33:20")

    @pytest.mark.parametrize("state", [JobState.FAILED, JobState.TIMED_OUT])
    def test_failed_states_expose_error(self, job_factory, state):
        job = job_factory(state=state, error="boom", completed_at=1.0)
        data = JobStatusView.from_record(job).to_dict()
        assert data["error"] == "boom"
        assert "result" not in data

    def test_cancelled_job_hides_error_and_result(self, job_factory):
        job = job_factory(
            state=JobState.CANCELLED,
            error="stale",
            result='"stale"',
            completed_at=1.0,
        )
        data = JobStatusView.from_record(job, retry_after_seconds=5).to_dict()
        assert "error" not in data
        assert "result" not in data
        assert "retry_after_seconds" not in data

    def test_result_can_be_left_out(self, job_factory):
        job = job_factory(state=JobState.SUCCEEDED, result='{"big": true}')
        view = JobStatusView.from_record(job, include_result=False)
        assert view.result is None


class TestJobAccepted:
    """Test the acknowledgment payload."""

    def test_to_dict(self):
        accepted = JobAccepted(
            job_id="job-1",
            name="report.export",
            state=JobState.ACCEPTED,
            status_url="/operations/job-1",
            cancel_url=None,
            estimated_duration_seconds=30,
            created_at=0.0,
        )
        data = accepted.to_dict()
        assert data["state"] == "accepted"
        assert data["cancel_url"] is None
        assert data["created_at"] == "1970-01-01T00:00:00+00:00"
