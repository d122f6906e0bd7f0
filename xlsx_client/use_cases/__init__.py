"""Application use cases for the job pipeline."""

from .job_steps import (
    DownloadOutcome,
    DownloadResultUseCase,
    ProcessJobUseCase,
    ProcessOutcome,
    RemoveJobUseCase,
    UploadFilesUseCase,
    UploadOutcome,
)

__all__ = [
    "DownloadOutcome",
    "DownloadResultUseCase",
    "ProcessJobUseCase",
    "ProcessOutcome",
    "RemoveJobUseCase",
    "UploadFilesUseCase",
    "UploadOutcome",
]
