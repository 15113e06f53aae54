"""
Tests for the error taxonomy.
"""

import pytest

from lro_runtime.errors import (
    ConfigurationError,
    DuplicateJobError,
    ErrorCode,
    ErrorContext,
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
    http_status_for,
    is_retryable,
)


class TestLROError:
    """Test the base error."""

    def test_defaults(self):
        err = LROError("something broke")
        assert err.code == ErrorCode.INTERNAL_ERROR
        assert err.retryable is False
        assert err.http_status == 500
        assert str(err) == "[ERR_9000] something broke"

    def test_overrides_and_cause(self):
        cause = OSError("socket closed")
        err = LROError("wrapped", code=ErrorCode.STORE_ERROR, retryable=True, cause=cause)
        assert err.code == ErrorCode.STORE_ERROR
        assert err.retryable is True
        assert err.to_dict()["cause"] == "socket closed"

    def test_to_dict(self):
        err = LROError("x", context=ErrorContext(instance_id="api-1", extra={"attempt": 2}))
        data = err.to_dict()
        assert data["error_type"] == "LROError"
        assert data["context"]["instance_id"] == "api-1"
        assert data["context"]["attempt"] == 2


class TestJobErrors:
    """Test job error classes."""

    def test_not_found(self):
        err = JobNotFoundError("job-1")
        assert isinstance(err, JobError)
        assert err.job_id == "job-1"
        assert err.http_status == 404
        assert "(job_id=job-1)" in str(err)

    def test_conflict_carries_state(self):
        err = JobConflictError("job-1", "succeeded")
        assert err.state == "succeeded"
        assert err.http_status == 409
        assert "succeeded" in err.message

    def test_invalid_transition(self):
        err = InvalidTransitionError("bad", job_id="job-2")
        assert err.code == ErrorCode.INVALID_TRANSITION
        assert err.context.job_id == "job-2"

    def test_cancelled_default_message(self):
        assert JobCancelledError().message == "Job was cancelled"

    def test_work_failure(self):
        err = WorkFailureError("upstream 500", job_id="job-3")
        assert err.code == ErrorCode.WORK_FAILURE
        assert err.message == "upstream 500"


class TestStoreErrors:
    """Test store error classes."""

    def test_unavailable_is_retryable(self):
        err = StoreUnavailableError("down", backend="redis")
        assert isinstance(err, StoreError)
        assert err.retryable
        assert err.http_status == 503
        assert err.context.backend == "redis"

    def test_duplicate(self):
        err = DuplicateJobError("job-1", backend="postgres")
        assert err.context.job_id == "job-1"
        assert err.context.backend == "postgres"
        assert err.code == ErrorCode.DUPLICATE_JOB


class TestConfigurationErrors:
    """Test configuration errors."""

    def test_missing_connection(self):
        err = MissingConnectionError("postgres", "dsn")
        assert isinstance(err, ConfigurationError)
        assert err.backend == "postgres"
        assert err.setting == "dsn"
        assert "dsn is required" in err.message


class TestHelpers:
    """Test classification helpers."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (StoreUnavailableError("down"), True),
            (JobNotFoundError("x"), False),
            (ConnectionError("reset"), True),
            (TimeoutError(), True),
            (ValueError("bad"), False),
        ],
    )
    def test_is_retryable(self, error, expected):
        assert is_retryable(error) is expected

    @pytest.mark.parametrize(
        "error,status",
        [
            (JobNotFoundError("x"), 404),
            (JobConflictError("x", "failed"), 409),
            (StoreUnavailableError("down"), 503),
            (RuntimeError("?"), 500),
        ],
    )
    def test_http_status_for(self, error, status):
        assert http_status_for(error) == status
