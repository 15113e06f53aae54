"""
Client-facing views of job records.

Transport layers render these; the core decides which fields are meaningful
for each state so no transport can leak a stale result or error.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..serialization import loads_payload
from .types import JobRecord, JobState


def _iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class JobAccepted:
    """Acknowledgment returned as soon as a job is created."""
    job_id: str
    name: str
    state: JobState
    status_url: str
    cancel_url: str | None
    estimated_duration_seconds: int
    created_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "name": self.name,
            "state": self.state.value,
            "status_url": self.status_url,
            "cancel_url": self.cancel_url,
            "estimated_duration_seconds": self.estimated_duration_seconds,
            "created_at": _iso(self.created_at),
        }


@dataclass
class JobStatusView:
    """Status read of a job.

    - ``result`` only when SUCCEEDED (deserialized payload)
    - ``error`` only when FAILED or TIMED_OUT
    - ``retry_after_seconds`` only while ACCEPTED or RUNNING
    """
    job_id: str
    name: str
    state: JobState
    percent_complete: int
    created_at: float
    updated_at: float
    completed_at: float | None = None
    result: Any = None
    error: str | None = None
    retry_after_seconds: int | None = None

    @classmethod
    def from_record(
        cls,
        job: JobRecord,
        retry_after_seconds: int | None = None,
        *,
        include_result: bool = True,
    ) -> JobStatusView:
        result = None
        if include_result and job.state == JobState.SUCCEEDED:
            result = loads_payload(job.result)

        error = None
        if job.state in (JobState.FAILED, JobState.TIMED_OUT):
            error = job.error

        return cls(
            job_id=job.job_id,
            name=job.name,
            state=job.state,
            percent_complete=job.percent_complete,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            result=result,
            error=error,
            retry_after_seconds=retry_after_seconds if job.state.is_active else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "job_id": self.job_id,
            "name": self.name,
            "state": self.state.value,
            "percent_complete": self.percent_complete,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
        }
        if self.state == JobState.SUCCEEDED:
            data["result"] = self.result
        if self.state in (JobState.FAILED, JobState.TIMED_OUT):
            data["error"] = self.error
        if self.retry_after_seconds is not None:
            data["retry_after_seconds"] = self.retry_after_seconds
        return data


__all__ = ["JobAccepted", "JobStatusView"]
