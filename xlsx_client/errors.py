"""Errors raised along the job lifecycle."""
from typing import Any, Optional


class JobError(Exception):
    """Base class for job lifecycle errors."""


class ValidationError(JobError):
    """Submit preconditions not met; raised before any network call."""


class TransportError(JobError):
    """Network failure while talking to the processing service."""


class ServerError(JobError):
    """Service answered with an error status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class CleanupError(JobError):
    """Removing server-side job data failed."""
