"""
Job lifecycle core.

This package provides:
- JobRecord / JobState: persisted job state and its state machine
- StatusStore: persistence interface with the in-process implementation
- ExecutionContext: progress/outcome reporting for running work
- JobManager: create, status, cancel, list, local cancellation tracking
- TimeoutSweeper: periodic reclaiming of expired jobs
"""

from .types import (
    JobState,
    JobRecord,
    ACTIVE_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    new_job_id,
)
from .store import (
    StatusStore,
    InMemoryStatusStore,
    JobFilter,
)
from .context import ExecutionContext
from .manager import JobManager
from .sweeper import TimeoutSweeper
from .views import JobAccepted, JobStatusView

__all__ = [
    "JobState",
    "JobRecord",
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "new_job_id",
    "StatusStore",
    "InMemoryStatusStore",
    "JobFilter",
    "ExecutionContext",
    "JobManager",
    "TimeoutSweeper",
    "JobAccepted",
    "JobStatusView",
]
