"""Use cases for the job pipeline steps (upload, process, download, remove)."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Sequence, Tuple, TypeVar

from xlsx_client.errors import CleanupError, JobError, ValidationError
from xlsx_client.models import DownloadHandle, FileEntry, ProcessResult, StepTiming
from xlsx_client.protocols import IJobAPIClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _timed(step: str, call: Awaitable[T]) -> Tuple[T, StepTiming]:
    start = time.perf_counter()
    result = await call
    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info(f"[{step}] took {duration_ms} ms")
    return result, StepTiming(step=step, duration_ms=duration_ms)


@dataclass(frozen=True)
class UploadOutcome:
    job_id: str
    timing: StepTiming


@dataclass(frozen=True)
class ProcessOutcome:
    result: ProcessResult
    timing: StepTiming


@dataclass(frozen=True)
class DownloadOutcome:
    handle: DownloadHandle
    timing: StepTiming


class UploadFilesUseCase:
    """Upload the batch snapshot and register a new job."""

    async def execute(self, api: IJobAPIClient, files: Sequence[FileEntry]) -> UploadOutcome:
        if not files:
            raise ValidationError("Nothing to upload")
        logger.info(f"[upload] Sending {len(files)} file(s)")
        job_id, timing = await _timed("upload", api.upload(files))
        logger.info(f"[upload] Job ID: {job_id}")
        return UploadOutcome(job_id=job_id, timing=timing)


class ProcessJobUseCase:
    """Ask the service to delete rows from every file of the job."""

    async def execute(self, api: IJobAPIClient, job_id: str, rows_to_delete: int) -> ProcessOutcome:
        logger.info(f"[process] job_id={job_id} rows_to_delete={rows_to_delete}")
        result, timing = await _timed("process", api.process(job_id, rows_to_delete))
        logger.info(f"[process] Result archive: {result.zip_file_name}")
        return ProcessOutcome(result=result, timing=timing)


class DownloadResultUseCase:
    """Fetch the result archive named by the process step."""

    async def execute(self, api: IJobAPIClient, result: ProcessResult) -> DownloadOutcome:
        locator = result.zip_file_name
        logger.info(f"[download] {locator}")
        content, timing = await _timed("download", api.download(locator))
        handle = DownloadHandle(filename=result.archive_name, content=content, locator=locator)
        return DownloadOutcome(handle=handle, timing=timing)


class RemoveJobUseCase:
    """Delete server-side data of a job."""

    async def execute(self, api: IJobAPIClient, job_id: str) -> str:
        try:
            acknowledgement = await api.remove(job_id)
        except JobError as exc:
            raise CleanupError(f"Could not remove job {job_id}: {exc}") from exc
        logger.info(f"[remove] Job removed successfully: {acknowledgement}")
        return acknowledgement
