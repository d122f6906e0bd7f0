"""
Protocols (Interfaces) for Dependency Inversion.

The lifecycle only depends on these; the HTTP client and the status sinks
implement them.
"""
from typing import Protocol, Sequence, runtime_checkable

from .models import FileEntry, ProcessResult, StatusColor


@runtime_checkable
class IJobAPIClient(Protocol):
    """Interface for the remote row-deletion service."""

    async def upload(self, files: Sequence[FileEntry]) -> str:
        """Upload files, return the job id."""
        ...

    async def process(self, job_id: str, num_rows_to_delete: int) -> ProcessResult:
        """Delete rows from every uploaded file."""
        ...

    async def download(self, file_url: str) -> bytes:
        """Fetch the result archive."""
        ...

    async def remove(self, job_id: str) -> str:
        """Delete server-side job data."""
        ...


@runtime_checkable
class IStatusReporter(Protocol):
    """Interface for the status message sink (UI boundary)."""

    def report(
        self,
        message: str,
        visible: bool = True,
        color: StatusColor = StatusColor.NEUTRAL,
    ) -> None:
        """Show (or hide, with visible=False) a status message."""
        ...
