"""
Error taxonomy for lro-runtime.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification
- Structured context for debugging
- HTTP status mapping for the status surface
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the job runtime."""

    # Job lookup / lifecycle errors (1xxx)
    JOB_ERROR = "ERR_1000"
    JOB_NOT_FOUND = "ERR_1001"
    JOB_CONFLICT = "ERR_1002"
    JOB_CANCELLED = "ERR_1003"
    INVALID_TRANSITION = "ERR_1004"

    # Store errors (2xxx)
    STORE_ERROR = "ERR_2000"
    STORE_UNAVAILABLE = "ERR_2001"
    DUPLICATE_JOB = "ERR_2002"

    # Work errors (3xxx)
    WORK_FAILURE = "ERR_3000"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    MISSING_CONNECTION = "ERR_6001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    job_id: str | None = None
    instance_id: str | None = None
    backend: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "instance_id": self.instance_id,
            "backend": self.backend,
            "operation": self.operation,
            **self.extra,
        }


class LROError(Exception):
    """
    Base exception for all lro-runtime errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False
    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.job_id:
            parts.append(f"(job_id={self.context.job_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Job Errors
# =============================================================================


class JobError(LROError):
    """Base class for errors about a specific job."""

    code = ErrorCode.JOB_ERROR

    def __init__(self, message: str, *, job_id: str | None = None, **kwargs):
        context = kwargs.pop("context", None) or ErrorContext()
        if job_id is not None:
            context.job_id = job_id
        super().__init__(message, context=context, **kwargs)
        self.job_id = job_id


class JobNotFoundError(JobError):
    """The job id is unknown to the store."""

    code = ErrorCode.JOB_NOT_FOUND
    http_status = 404

    def __init__(self, job_id: str, **kwargs):
        super().__init__(f"Job {job_id} not found", job_id=job_id, **kwargs)


class JobConflictError(JobError):
    """The requested change is not allowed in the job's current state."""

    code = ErrorCode.JOB_CONFLICT
    http_status = 409

    def __init__(self, job_id: str, state: str, message: str | None = None, **kwargs):
        super().__init__(
            message or f"Job {job_id} cannot be cancelled in state {state}",
            job_id=job_id,
            **kwargs,
        )
        self.state = state


class InvalidTransitionError(JobError):
    """A state change that is not an edge of the job state machine."""

    code = ErrorCode.INVALID_TRANSITION
    http_status = 409


class JobCancelledError(JobError):
    """Raised inside work functions when their cancellation token fires."""

    code = ErrorCode.JOB_CANCELLED
    http_status = 409

    def __init__(self, message: str = "Job was cancelled", **kwargs):
        super().__init__(message, **kwargs)


class WorkFailureError(JobError):
    """A caller-supplied work function raised; absorbed into the job's state."""

    code = ErrorCode.WORK_FAILURE


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(LROError):
    """Base class for status store errors."""

    code = ErrorCode.STORE_ERROR

    def __init__(self, message: str, *, backend: str | None = None, **kwargs):
        context = kwargs.pop("context", None) or ErrorContext()
        if backend is not None:
            context.backend = backend
        super().__init__(message, context=context, **kwargs)


class StoreUnavailableError(StoreError):
    """The backend could not be reached. Retried on the next natural cycle."""

    code = ErrorCode.STORE_UNAVAILABLE
    retryable = True
    http_status = 503


class DuplicateJobError(StoreError):
    """A record with the same id already exists."""

    code = ErrorCode.DUPLICATE_JOB
    http_status = 409

    def __init__(self, job_id: str, **kwargs):
        super().__init__(f"Job {job_id} already exists", **kwargs)
        self.context.job_id = job_id


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LROError):
    """Invalid or incomplete configuration. Fatal at startup."""

    code = ErrorCode.CONFIG_ERROR


class MissingConnectionError(ConfigurationError):
    """The selected backend has no connection string configured."""

    code = ErrorCode.MISSING_CONNECTION

    def __init__(self, backend: str, setting: str, **kwargs):
        super().__init__(
            f"{setting} is required when the store backend is {backend!r}",
            **kwargs,
        )
        self.backend = backend
        self.setting = setting


# =============================================================================
# Utilities
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, LROError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def http_status_for(error: Exception) -> int:
    """Map an error to the HTTP status the status surface should return."""
    if isinstance(error, LROError):
        return error.http_status
    return 500


__all__ = [
    "ErrorCode",
    "ErrorContext",
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
    "is_retryable",
    "http_status_for",
]
