"""
Job lifecycle configuration.
"""

from __future__ import annotations

import socket
import uuid
from dataclasses import dataclass


def generate_instance_id() -> str:
    """Host name plus a random suffix, capped at 32 characters."""
    return f"{socket.gethostname()}-{uuid.uuid4().hex}"[:32]


@dataclass
class JobsConfig:
    """Configuration for the job manager and timeout sweeper."""

    # Identity of this process within the fleet (auto-generated if empty)
    instance_id: str = ""

    # Polling hint returned to clients for non-terminal jobs
    default_retry_after_seconds: int = 5

    # How often the timeout sweeper scans for expired jobs
    timeout_check_interval_seconds: float = 60.0

    # Defaults for endpoint declarations
    default_timeout_seconds: int = 3600

    # Used to build status/cancel locators in acknowledgments
    base_url: str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.instance_id:
            self.instance_id = generate_instance_id()
        if self.default_retry_after_seconds < 0:
            raise ValueError("default_retry_after_seconds cannot be negative")
        if self.timeout_check_interval_seconds <= 0:
            raise ValueError("timeout_check_interval_seconds must be positive")
        if self.default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be positive")
        if self.base_url:
            self.base_url = self.base_url.rstrip("/")


__all__ = ["JobsConfig", "generate_instance_id"]
