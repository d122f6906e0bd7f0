"""Job lifecycle - drives one job through upload, process and download."""
import asyncio
import logging
from typing import List, Optional, Union

from ..batch import FileBatch
from ..errors import CleanupError, JobError, ValidationError
from ..models import ClientConfig, DownloadHandle, LifecycleState, StatusColor, StepTiming
from ..protocols import IJobAPIClient, IStatusReporter
from ..services.status import LoggingStatusReporter
from ..use_cases.job_steps import (
    DownloadResultUseCase,
    ProcessJobUseCase,
    RemoveJobUseCase,
    UploadFilesUseCase,
)
from ..utils.events import EventEmitter

logger = logging.getLogger(__name__)

STATE_CHANGED = "state"

VALIDATION_MESSAGE = "Please select files and specify the number of rows to delete."
BUSY_MESSAGE = "A job is already in progress. Clear the form before submitting again."
FAILURE_MESSAGE = "Failed to process files. Please try again."
DOWNLOAD_FAILURE_MESSAGE = "Failed to download the processed files. Please try again."


def parse_row_count(value: Union[int, str, None]) -> int:
    """Parse the row count as typed by the user; must be an integer >= 1."""
    if value is None or isinstance(value, bool):
        raise ValidationError("Row count is required")
    if isinstance(value, int):
        rows = value
    else:
        text = str(value).strip()
        if not text:
            raise ValidationError("Row count is required")
        try:
            rows = int(text)
        except ValueError as exc:
            raise ValidationError(f"Row count must be an integer, got {value!r}") from exc
    if rows < 1:
        raise ValidationError(f"Row count must be positive, got {rows}")
    return rows


class JobLifecycle:
    """
    State machine for a single job: Upload -> Process -> Download.

    Steps run strictly in order; the first error moves the lifecycle to
    FAILED and nothing is retried. Only IDLE and FAILED accept a submit.
    ``clear`` resets local state at once and then removes server data on a
    best-effort basis. A pass still in flight during ``clear`` keeps running
    (HTTP calls are not aborted) but its results are discarded.

    Usage:
        lifecycle = JobLifecycle(api_client, reporter)
        handle = await lifecycle.submit(batch, 3)
        if handle:
            handle.save(Path("out"))
        await lifecycle.clear(batch)
    """

    def __init__(
        self,
        api_client: IJobAPIClient,
        reporter: Optional[IStatusReporter] = None,
        config: Optional[ClientConfig] = None,
        upload: Optional[UploadFilesUseCase] = None,
        process: Optional[ProcessJobUseCase] = None,
        download: Optional[DownloadResultUseCase] = None,
        remove: Optional[RemoveJobUseCase] = None,
    ):
        self._api = api_client
        self._reporter = reporter or LoggingStatusReporter()
        self._config = config or ClientConfig()
        self._upload = upload or UploadFilesUseCase()
        self._process = process or ProcessJobUseCase()
        self._download_step = download or DownloadResultUseCase()
        self._remove = remove or RemoveJobUseCase()

        self._state = LifecycleState.IDLE
        self._job_id: Optional[str] = None
        self._download: Optional[DownloadHandle] = None
        self._timings: List[StepTiming] = []
        self._generation = 0
        self._hide_handle: Optional[asyncio.TimerHandle] = None
        self.events = EventEmitter()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def job_id(self) -> Optional[str]:
        return self._job_id

    @property
    def download(self) -> Optional[DownloadHandle]:
        return self._download

    @property
    def timings(self) -> List[StepTiming]:
        return list(self._timings)

    def report(self, message: str, color: StatusColor = StatusColor.NEUTRAL) -> None:
        """Publish a visible status message, cancelling any pending auto-hide."""
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None
        self._reporter.report(message, visible=True, color=color)

    async def submit(self, batch: FileBatch, rows_to_delete: Union[int, str, None]) -> Optional[DownloadHandle]:
        """
        Run the whole pipeline for the current batch.

        Returns:
            The download handle on success, None on any failure or rejection
        """
        if not self._state.accepts_submit:
            logger.warning(f"Submit rejected while {self._state.value}")
            self.report(BUSY_MESSAGE, StatusColor.ERROR)
            return None

        try:
            rows = parse_row_count(rows_to_delete)
            files = batch.snapshot()
            if not files:
                raise ValidationError("No files selected")
        except ValidationError as exc:
            logger.warning(f"Submit rejected: {exc}")
            self.report(VALIDATION_MESSAGE, StatusColor.ERROR)
            return None

        self._generation += 1
        generation = self._generation
        self._job_id = None
        self._download = None
        self._timings = []
        self.report("Form submitted successfully!")

        try:
            return await self._run(generation, files, rows)
        except JobError as exc:
            if self._is_stale(generation):
                logger.info(f"Ignoring failure of a cleared job: {exc}")
                return None
            logger.error(f"Job failed during {self._state.value}: {exc}")
            self._fail()
            return None
        except asyncio.CancelledError:
            if not self._is_stale(generation):
                logger.warning(f"Submit cancelled during {self._state.value}")
                self._set_state(LifecycleState.FAILED)
            raise
        except Exception:
            if not self._is_stale(generation):
                self._fail()
            raise

    def _fail(self) -> None:
        failed_download = self._state is LifecycleState.DOWNLOADING
        self._set_state(LifecycleState.FAILED)
        self.report(
            DOWNLOAD_FAILURE_MESSAGE if failed_download else FAILURE_MESSAGE,
            StatusColor.ERROR,
        )

    async def _run(self, generation: int, files, rows: int) -> Optional[DownloadHandle]:
        self._set_state(LifecycleState.UPLOADING)
        uploaded = await self._upload.execute(self._api, files)
        if self._is_stale(generation):
            # The clear already ran without knowing this job id.
            await self.cleanup(uploaded.job_id)
            return None
        self._job_id = uploaded.job_id
        self._timings.append(uploaded.timing)
        self._set_state(LifecycleState.UPLOADED)
        self.report(
            f"Files uploaded successfully! Job ID: {uploaded.job_id} "
            f"(Took {uploaded.timing.duration_ms} ms)"
        )

        self._set_state(LifecycleState.PROCESSING)
        processed = await self._process.execute(self._api, uploaded.job_id, rows)
        if self._is_stale(generation):
            return None
        self._timings.append(processed.timing)
        self._set_state(LifecycleState.PROCESSED)
        self.report(
            f"Processing completed successfully! Job ID: {uploaded.job_id} "
            f"(Took {processed.timing.duration_ms} ms)"
        )

        self._set_state(LifecycleState.DOWNLOADING)
        downloaded = await self._download_step.execute(self._api, processed.result)
        if self._is_stale(generation):
            return None
        self._timings.append(downloaded.timing)
        self._download = downloaded.handle
        self._set_state(LifecycleState.COMPLETE)
        self.report(f"Result ready: {downloaded.handle.filename} ({downloaded.handle.size} bytes)")
        return downloaded.handle

    async def clear(self, batch: Optional[FileBatch] = None) -> None:
        """Reset local state, then remove the job on the server (best effort)."""
        job_id = self._job_id
        self._generation += 1
        self._job_id = None
        self._download = None
        self._timings = []
        if batch is not None:
            batch.clear()
        self._set_state(LifecycleState.IDLE)
        self.report("Form cleared.")
        self._schedule_hide()

        if job_id is None:
            logger.debug("No job to remove")
            return
        await self.cleanup(job_id)

    async def cleanup(self, job_id: str) -> bool:
        """Remove server-side data of job_id. Failures are logged, never raised."""
        try:
            await self._remove.execute(self._api, job_id)
        except CleanupError as exc:
            logger.warning(f"Error removing job: {exc}")
            return False
        return True

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _set_state(self, state: LifecycleState) -> None:
        if state is self._state:
            return
        logger.debug(f"Lifecycle {self._state.value} -> {state.value}")
        self._state = state
        self.events.emit(STATE_CHANGED, state)

    def _schedule_hide(self) -> None:
        delay = self._config.status_hide_delay
        if delay is None:
            return
        loop = asyncio.get_running_loop()
        self._hide_handle = loop.call_later(delay, self._hide)

    def _hide(self) -> None:
        self._hide_handle = None
        self._reporter.report("", visible=False, color=StatusColor.NEUTRAL)
