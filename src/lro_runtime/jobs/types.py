"""
Job types for the long-running operation runtime.

This module defines the JobState enum and JobRecord dataclass
that form the core of the job lifecycle system.
"""

from __future__ import annotations

import dataclasses
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import InvalidTransitionError


class JobState(str, Enum):
    """Job lifecycle states.

    State transitions:
    - ACCEPTED -> RUNNING (first progress report)
    - RUNNING -> RUNNING (further progress)
    - ACCEPTED|RUNNING -> SUCCEEDED (result recorded)
    - ACCEPTED|RUNNING -> FAILED (work raised or reported failure)
    - ACCEPTED|RUNNING -> CANCELLED (cancel requested from any instance)
    - ACCEPTED|RUNNING -> TIMED_OUT (timeout sweeper)
    """
    ACCEPTED = "accepted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in TERMINAL_STATES

    @property
    def is_active(self) -> bool:
        """Check if the job is still active."""
        return self in ACTIVE_STATES


ACTIVE_STATES: frozenset[JobState] = frozenset({JobState.ACCEPTED, JobState.RUNNING})

TERMINAL_STATES: frozenset[JobState] = frozenset({
    JobState.SUCCEEDED,
    JobState.FAILED,
    JobState.CANCELLED,
    JobState.TIMED_OUT,
})

# Valid state transitions
VALID_TRANSITIONS: dict[JobState, set[JobState]] = {
    # Work may finish (or fail) without ever reporting progress.
    JobState.ACCEPTED: {
        JobState.RUNNING,
        JobState.SUCCEEDED,
        JobState.FAILED,
        JobState.CANCELLED,
        JobState.TIMED_OUT,
    },
    JobState.RUNNING: {
        JobState.RUNNING,
        JobState.SUCCEEDED,
        JobState.FAILED,
        JobState.CANCELLED,
        JobState.TIMED_OUT,
    },
    # Terminal states have no valid transitions
    JobState.SUCCEEDED: set(),
    JobState.FAILED: set(),
    JobState.CANCELLED: set(),
    JobState.TIMED_OUT: set(),
}


def new_job_id() -> str:
    """Generate a globally unique job id."""
    return str(uuid.uuid4())


@dataclass
class JobRecord:
    """Persistent record of one submitted unit of background work.

    Timestamps are epoch seconds. ``result`` holds the serialized JSON payload
    and is only set on SUCCEEDED; ``error``/``error_detail`` only on FAILED or
    TIMED_OUT.
    """
    # Identity
    job_id: str = field(default_factory=new_job_id)
    name: str = ""

    # Status
    state: JobState = JobState.ACCEPTED
    percent_complete: int = 0

    # Timestamps
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    # Outcome
    result: str | None = None
    error: str | None = None
    error_detail: str | None = None

    # Ownership and limits
    owner_instance_id: str | None = None
    timeout_seconds: int = 3600
    cancellation_requested: bool = False

    # Caller attribution (never interpreted)
    created_by: str | None = None
    correlation_id: str | None = None

    @property
    def deadline(self) -> float:
        """Absolute time after which the job counts as expired."""
        return self.created_at + self.timeout_seconds

    def is_expired(self, now: float | None = None) -> bool:
        """True for an active job whose deadline has passed."""
        now = time.time() if now is None else now
        return self.state.is_active and self.deadline < now

    def can_transition_to(self, new_state: JobState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(self, new_state: JobState, *, now: float | None = None) -> JobRecord:
        """Return a copy of this record moved to ``new_state``.

        Entering a terminal state stamps ``completed_at``.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Invalid transition: {self.state.value} -> {new_state.value}",
                job_id=self.job_id,
            )

        now = time.time() if now is None else now
        updates: dict[str, Any] = {"state": new_state, "updated_at": now}
        if new_state.is_terminal:
            updates["completed_at"] = now
        return dataclasses.replace(self, **updates)

    def copy(self) -> JobRecord:
        """Return an independent copy (all fields are immutable values)."""
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "job_id": self.job_id,
            "name": self.name,
            "state": self.state.value,
            "percent_complete": self.percent_complete,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
            "result": self.result,
            "error": self.error,
            "error_detail": self.error_detail,
            "owner_instance_id": self.owner_instance_id,
            "timeout_seconds": self.timeout_seconds,
            "cancellation_requested": self.cancellation_requested,
            "created_by": self.created_by,
            "correlation_id": self.correlation_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobRecord:
        """Create from dictionary."""
        return cls(
            job_id=data["job_id"],
            name=data.get("name", ""),
            state=JobState(data.get("state", JobState.ACCEPTED.value)),
            percent_complete=int(data.get("percent_complete") or 0),
            created_at=float(data["created_at"]),
            updated_at=float(data.get("updated_at") or data["created_at"]),
            completed_at=data.get("completed_at"),
            result=data.get("result"),
            error=data.get("error"),
            error_detail=data.get("error_detail"),
            owner_instance_id=data.get("owner_instance_id"),
            timeout_seconds=int(data.get("timeout_seconds", 3600)),
            cancellation_requested=bool(data.get("cancellation_requested", False)),
            created_by=data.get("created_by"),
            correlation_id=data.get("correlation_id"),
        )


__all__ = [
    "JobState",
    "JobRecord",
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "new_job_id",
]
