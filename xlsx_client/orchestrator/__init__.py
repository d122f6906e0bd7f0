"""Orchestrator package - batch client and job lifecycle."""
from .core import BatchJobClient
from .lifecycle import JobLifecycle, parse_row_count

__all__ = ["BatchJobClient", "JobLifecycle", "parse_row_count"]
