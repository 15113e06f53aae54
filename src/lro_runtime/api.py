"""
HTTP status surface for long-running jobs.

Every instance of the fleet mounts the same router, so status, cancellation
and listing work regardless of which instance started the job:

    ```python
    app = FastAPI()
    app.include_router(create_router(runtime.manager, runtime.settings))
    ```
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response

from .config import Settings, get_settings
from .errors import JobConflictError, JobNotFoundError, LROError, http_status_for
from .jobs.manager import JobManager
from .jobs.store import MAX_PAGE_SIZE
from .jobs.views import JobStatusView


class OperationsAPI:
    """Request handlers behind the operations router."""

    def __init__(self, manager: JobManager, retry_after_seconds: int = 5):
        self._manager = manager
        self._retry_after = retry_after_seconds

    def _http_error(self, exc: LROError) -> HTTPException:
        """Map any other runtime error, e.g. a store outage becomes a 503."""
        headers = {"Retry-After": str(self._retry_after)} if exc.retryable else None
        return HTTPException(
            status_code=http_status_for(exc),
            detail={"error": exc.message, "code": exc.code.value},
            headers=headers,
        )

    async def get_operation(self, job_id: str, response: Response) -> dict[str, Any]:
        try:
            job = await self._manager.get_status(job_id)
        except JobNotFoundError as exc:
            raise HTTPException(status_code=404, detail={"error": "Job not found", "job_id": job_id}) from exc
        except LROError as exc:
            raise self._http_error(exc) from exc

        view = JobStatusView.from_record(job, self._retry_after)
        if view.retry_after_seconds is not None:
            response.headers["Retry-After"] = str(view.retry_after_seconds)
        return view.to_dict()

    async def cancel_operation(self, job_id: str) -> dict[str, Any]:
        try:
            job = await self._manager.cancel(job_id)
        except JobNotFoundError as exc:
            raise HTTPException(status_code=404, detail={"error": "Job not found", "job_id": job_id}) from exc
        except JobConflictError as exc:
            raise HTTPException(
                status_code=409,
                detail={"error": "Job cannot be cancelled in its current state", "state": exc.state},
            ) from exc
        except LROError as exc:
            raise self._http_error(exc) from exc

        return {"message": "Cancellation requested", "job_id": job.job_id, "state": job.state.value}

    async def list_operations(
        self,
        name: str | None = None,
        state: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[dict[str, Any]]:
        try:
            jobs = await self._manager.list(name=name, state=state, page=page, page_size=page_size)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except LROError as exc:
            raise self._http_error(exc) from exc

        return [JobStatusView.from_record(j, include_result=False).to_dict() for j in jobs]


def create_router(
    manager: JobManager,
    settings: Settings | None = None,
    prefix: str = "/operations",
) -> APIRouter:
    """Build the operations router for ``manager``."""
    settings = settings or get_settings()
    api = OperationsAPI(manager, settings.jobs.default_retry_after_seconds)
    router = APIRouter(prefix=prefix, tags=["operations"])

    @router.get("/{job_id}")
    async def get_operation(job_id: str, response: Response) -> dict[str, Any]:
        return await api.get_operation(job_id, response)

    @router.post("/{job_id}/cancel")
    async def cancel_operation(job_id: str) -> dict[str, Any]:
        return await api.cancel_operation(job_id)

    @router.get("")
    async def list_operations(
        name: str | None = None,
        state: str | None = None,
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    ) -> list[dict[str, Any]]:
        return await api.list_operations(name=name, state=state, page=page, page_size=page_size)

    return router


__all__ = ["OperationsAPI", "create_router"]
