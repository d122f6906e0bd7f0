"""
xlsx_client - client for the spreadsheet row-deletion service.

Collects .xlsx/.xls files (one by one, from zip archives or whole folders),
uploads them, asks the service to delete rows from each file and fetches
the resulting archive.

Usage:
    from xlsx_client import BatchJobClient, ClientConfig

    async with BatchJobClient(ClientConfig(base_url="http://localhost:8080")) as client:
        client.add_excel_files([Path("a.xlsx")])
        client.add_zip_files([Path("more.zip")])
        client.set_rows_to_delete(3)
        handle = await client.submit()
        if handle:
            handle.save(Path("."))
        await client.clear()
"""
from .batch import FileBatch, FileCollector
from .errors import CleanupError, JobError, ServerError, TransportError, ValidationError
from .models import (
    EXCEL_EXTENSIONS,
    ZIP_EXTENSIONS,
    ClientConfig,
    DownloadHandle,
    FileEntry,
    LifecycleState,
    ProcessResult,
    StatusColor,
    StepTiming,
)
from .orchestrator import BatchJobClient, JobLifecycle
from .services import HTTPAPIClient, LoggingStatusReporter

__version__ = "0.1.0"
__all__ = [
    # Main
    "BatchJobClient",
    "JobLifecycle",
    "FileBatch",
    "FileCollector",
    # Models
    "ClientConfig",
    "DownloadHandle",
    "FileEntry",
    "LifecycleState",
    "ProcessResult",
    "StatusColor",
    "StepTiming",
    "EXCEL_EXTENSIONS",
    "ZIP_EXTENSIONS",
    # Errors
    "JobError",
    "ValidationError",
    "TransportError",
    "ServerError",
    "CleanupError",
    # Services
    "HTTPAPIClient",
    "LoggingStatusReporter",
]
