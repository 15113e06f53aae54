"""Cancellation tokens for cooperative job interruption.

This module provides a CancellationToken class that the JobManager triggers
and a job's work function observes at its own safe points.

Key design:
- Token uses asyncio.Event internally for async-friendly waiting
- One-shot: once cancelled, a token stays cancelled; there is no reset
- Cooperative cancellation: work functions check the token at natural breakpoints
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import JobCancelledError

logger = logging.getLogger(__name__)


@dataclass
class CancellationToken:
    """One-shot broadcast token for cooperative cancellation.

    Usage:
        token = CancellationToken()

        # In long-running work:
        for chunk in rows:
            token.raise_if_cancelled()
            process(chunk)

        # To cancel (any number of times):
        token.cancel()
    """

    job_id: str | None = None
    _event: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)
    _callbacks: list[Callable[[], Any]] = field(default_factory=list, init=False, repr=False)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation (idempotent).

        Triggers all registered callbacks on the first call only.
        """
        if self._event.is_set():
            return
        self._event.set()
        for cb in self._callbacks:
            self._invoke(cb)

    async def wait(self) -> None:
        """Block until cancel() is called."""
        await self._event.wait()

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        """Register callback for cancellation.

        Callback is invoked immediately if already cancelled.
        """
        self._callbacks.append(callback)
        if self._event.is_set():
            self._invoke(callback)

    def raise_if_cancelled(self) -> None:
        """Raise JobCancelledError if cancelled.

        Raises:
            JobCancelledError: If cancellation was requested.
        """
        if self._event.is_set():
            raise JobCancelledError(job_id=self.job_id)

    def _invoke(self, callback: Callable[[], Any]) -> None:
        try:
            callback()
        except Exception:
            # A broken callback must not stop the token from firing.
            logger.exception("Cancellation callback failed for job %s", self.job_id)


__all__ = ["CancellationToken"]
