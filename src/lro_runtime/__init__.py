"""
LRO Runtime - lifecycle core for long-running background jobs.

This package lets any instance of a horizontally scaled service accept a
request, return immediately, run the work in the background, and answer
status, cancellation and listing requests for that work from any instance:
- Job records with a monotonic state machine
- Interchangeable status stores (in-process, PostgreSQL, Redis)
- Cooperative cancellation tokens and per-job execution contexts
- A per-instance timeout sweeper
- A FastAPI router for the status surface (``lro_runtime.api``)

Example:
    ```python
    from lro_runtime import LroRuntime, LongRunningEndpoint, Settings

    export = LongRunningEndpoint("report.export", timeout_seconds=600)

    async def build_report(ctx, report_id):
        await ctx.report_progress(50)
        return {"report_id": report_id}

    async with LroRuntime(Settings.from_env()) as runtime:
        accepted = await runtime.dispatcher.submit(export, build_report, "r-42")
        status = await runtime.manager.get_status(accepted.job_id)
    ```
"""

from .cancellation import CancellationToken
from .config import (
    JobsConfig,
    LoggingConfig,
    PostgresStoreConfig,
    RedisStoreConfig,
    Settings,
    StoreConfig,
    configure,
    get_settings,
    load_env,
)
from .dispatch import JobDispatcher, LongRunningEndpoint
from .errors import (
    ConfigurationError,
    DuplicateJobError,
    ErrorCode,
    InvalidTransitionError,
    JobCancelledError,
    JobConflictError,
    JobError,
    JobNotFoundError,
    LROError,
    MissingConnectionError,
    StoreError,
    StoreUnavailableError,
    WorkFailureError,
)
from .jobs import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    ExecutionContext,
    InMemoryStatusStore,
    JobAccepted,
    JobFilter,
    JobManager,
    JobRecord,
    JobState,
    JobStatusView,
    StatusStore,
    TimeoutSweeper,
)
from .logging import StructuredLogger, configure_logging, get_logger
from .runtime import LroRuntime, build_store
from .storage import PostgresStatusStore, RedisStatusStore

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Jobs
    "JobState",
    "JobRecord",
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "JobFilter",
    "JobManager",
    "ExecutionContext",
    "TimeoutSweeper",
    "JobAccepted",
    "JobStatusView",
    # Stores
    "StatusStore",
    "InMemoryStatusStore",
    "PostgresStatusStore",
    "RedisStatusStore",
    # Cancellation
    "CancellationToken",
    # Dispatch
    "LongRunningEndpoint",
    "JobDispatcher",
    # Runtime
    "LroRuntime",
    "build_store",
    # Config
    "Settings",
    "StoreConfig",
    "PostgresStoreConfig",
    "RedisStoreConfig",
    "JobsConfig",
    "LoggingConfig",
    "get_settings",
    "configure",
    "load_env",
    # Logging
    "StructuredLogger",
    "get_logger",
    "configure_logging",
    # Errors
    "ErrorCode",
    "LROError",
    "JobError",
    "JobNotFoundError",
    "JobConflictError",
    "InvalidTransitionError",
    "JobCancelledError",
    "WorkFailureError",
    "StoreError",
    "StoreUnavailableError",
    "DuplicateJobError",
    "ConfigurationError",
    "MissingConnectionError",
]
