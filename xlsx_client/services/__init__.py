"""Services for xlsx_client module."""
from .api_client import HTTPAPIClient
from .status import LoggingStatusReporter

__all__ = [
    "HTTPAPIClient",
    "LoggingStatusReporter",
]
