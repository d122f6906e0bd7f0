"""Tests for JobLifecycle."""
import asyncio
from unittest.mock import AsyncMock, Mock, call

import pytest

from xlsx_client.batch import FileBatch
from xlsx_client.errors import ServerError, TransportError, ValidationError
from xlsx_client.models import (
    EXCEL_EXTENSIONS,
    ClientConfig,
    FileEntry,
    LifecycleState,
    ProcessResult,
    StatusColor,
)
from xlsx_client.orchestrator.lifecycle import (
    BUSY_MESSAGE,
    DOWNLOAD_FAILURE_MESSAGE,
    FAILURE_MESSAGE,
    VALIDATION_MESSAGE,
    JobLifecycle,
    parse_row_count,
)

NO_HIDE = ClientConfig(status_hide_delay=None)


@pytest.fixture
def api():
    api = Mock()
    api.upload = AsyncMock(return_value="J1")
    api.process = AsyncMock(return_value=ProcessResult(zip_file_name="/out/J1.zip"))
    api.download = AsyncMock(return_value=b"PK\x03\x04")
    api.remove = AsyncMock(return_value="removed")
    return api


@pytest.fixture
def reporter():
    return Mock()


@pytest.fixture
def batch():
    batch = FileBatch()
    batch.add([FileEntry("a.xlsx", b"A"), FileEntry("b.xls", b"B")], EXCEL_EXTENSIONS)
    return batch


@pytest.fixture
def lifecycle(api, reporter):
    return JobLifecycle(api, reporter, NO_HIDE)


def last_report(reporter):
    return reporter.report.call_args


class TestParseRowCount:
    def test_accepts_int_and_numeric_text(self):
        assert parse_row_count(3) == 3
        assert parse_row_count(" 12 ") == 12

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "2.5", 0, -1, "0", True])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_row_count(value)


class TestSubmitValidation:
    @pytest.mark.asyncio
    async def test_empty_batch_issues_no_calls(self, lifecycle, api, reporter):
        result = await lifecycle.submit(FileBatch(), 3)

        assert result is None
        assert lifecycle.state is LifecycleState.IDLE
        api.upload.assert_not_called()
        api.process.assert_not_called()
        api.download.assert_not_called()
        assert last_report(reporter) == call(VALIDATION_MESSAGE, visible=True, color=StatusColor.ERROR)

    @pytest.mark.asyncio
    async def test_missing_row_count_issues_no_calls(self, lifecycle, api, batch):
        result = await lifecycle.submit(batch, None)

        assert result is None
        assert lifecycle.state is LifecycleState.IDLE
        api.upload.assert_not_called()


class TestSubmitSuccess:
    @pytest.mark.asyncio
    async def test_full_pipeline(self, lifecycle, api, batch):
        handle = await lifecycle.submit(batch, 3)

        api.upload.assert_awaited_once()
        uploaded = api.upload.call_args.args[0]
        assert [f.name for f in uploaded] == ["a.xlsx", "b.xls"]
        api.process.assert_awaited_once_with("J1", 3)
        api.download.assert_awaited_once_with("/out/J1.zip")

        assert handle.filename == "J1.zip"
        assert handle.content == b"PK\x03\x04"
        assert lifecycle.download is handle
        assert lifecycle.job_id == "J1"
        assert lifecycle.state is LifecycleState.COMPLETE

    @pytest.mark.asyncio
    async def test_row_count_text_is_sent_as_integer(self, lifecycle, api, batch):
        await lifecycle.submit(batch, "7")
        api.process.assert_awaited_once_with("J1", 7)

    @pytest.mark.asyncio
    async def test_state_events_in_order(self, lifecycle, batch):
        states = []
        lifecycle.events.on("state", states.append)

        await lifecycle.submit(batch, 3)

        assert states == [
            LifecycleState.UPLOADING,
            LifecycleState.UPLOADED,
            LifecycleState.PROCESSING,
            LifecycleState.PROCESSED,
            LifecycleState.DOWNLOADING,
            LifecycleState.COMPLETE,
        ]

    @pytest.mark.asyncio
    async def test_timings_recorded_per_step(self, lifecycle, batch):
        await lifecycle.submit(batch, 3)
        assert [t.step for t in lifecycle.timings] == ["upload", "process", "download"]
        assert all(t.duration_ms >= 0 for t in lifecycle.timings)

    @pytest.mark.asyncio
    async def test_reports_progress(self, lifecycle, reporter, batch):
        await lifecycle.submit(batch, 3)

        messages = [c.args[0] for c in reporter.report.call_args_list]
        assert messages[0] == "Form submitted successfully!"
        assert messages[1].startswith("Files uploaded successfully! Job ID: J1")
        assert messages[2].startswith("Processing completed successfully! Job ID: J1")
        assert messages[3].startswith("Result ready: J1.zip")
        assert all(c.kwargs["color"] is StatusColor.NEUTRAL for c in reporter.report.call_args_list)


class TestSubmitFailure:
    @pytest.mark.asyncio
    async def test_upload_failure_stops_pipeline(self, lifecycle, api, reporter, batch):
        api.upload.side_effect = TransportError("connection refused")

        result = await lifecycle.submit(batch, 3)

        assert result is None
        assert lifecycle.state is LifecycleState.FAILED
        api.process.assert_not_called()
        api.download.assert_not_called()
        assert last_report(reporter) == call(FAILURE_MESSAGE, visible=True, color=StatusColor.ERROR)

    @pytest.mark.asyncio
    async def test_process_failure(self, lifecycle, api, batch):
        api.process.side_effect = ServerError("not found", 404)

        assert await lifecycle.submit(batch, 3) is None
        assert lifecycle.state is LifecycleState.FAILED
        assert lifecycle.job_id == "J1"
        api.download.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_failure_is_reported(self, lifecycle, api, reporter, batch):
        api.download.side_effect = ServerError("File not found", 404)

        assert await lifecycle.submit(batch, 3) is None

        assert lifecycle.state is LifecycleState.FAILED
        assert lifecycle.download is None
        assert last_report(reporter) == call(
            DOWNLOAD_FAILURE_MESSAGE, visible=True, color=StatusColor.ERROR
        )

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed_and_propagates(self, lifecycle, api, batch):
        api.upload.side_effect = RuntimeError("HTTPAPIClient not initialized")

        with pytest.raises(RuntimeError):
            await lifecycle.submit(batch, 3)
        assert lifecycle.state is LifecycleState.FAILED

    @pytest.mark.asyncio
    async def test_resubmit_after_failure(self, lifecycle, api, batch):
        api.upload.side_effect = [TransportError("down"), "J2"]

        await lifecycle.submit(batch, 3)
        handle = await lifecycle.submit(batch, 3)

        assert handle is not None
        assert lifecycle.job_id == "J2"
        assert api.upload.await_count == 2


class TestSubmitGuard:
    @pytest.mark.asyncio
    async def test_rejects_concurrent_submit(self, lifecycle, api, reporter, batch):
        release = asyncio.Event()

        async def slow_upload(files):
            await release.wait()
            return "J1"

        api.upload.side_effect = slow_upload
        first = asyncio.create_task(lifecycle.submit(batch, 3))
        await asyncio.sleep(0)
        assert lifecycle.state is LifecycleState.UPLOADING

        second = await lifecycle.submit(batch, 3)

        assert second is None
        assert last_report(reporter) == call(BUSY_MESSAGE, visible=True, color=StatusColor.ERROR)
        release.set()
        assert (await first) is not None
        assert api.upload.await_count == 1

    @pytest.mark.asyncio
    async def test_complete_requires_clear(self, lifecycle, api, batch):
        await lifecycle.submit(batch, 3)

        assert await lifecycle.submit(batch, 3) is None
        assert api.upload.await_count == 1

        await lifecycle.clear()
        batch.add([FileEntry("c.xlsx", b"C")], EXCEL_EXTENSIONS)
        assert await lifecycle.submit(batch, 3) is not None


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_resets_and_removes_job(self, lifecycle, api, reporter, batch):
        await lifecycle.submit(batch, 3)

        await lifecycle.clear(batch)

        assert len(batch) == 0
        assert lifecycle.state is LifecycleState.IDLE
        assert lifecycle.download is None
        assert lifecycle.job_id is None
        assert lifecycle.timings == []
        api.remove.assert_awaited_once_with("J1")
        assert call("Form cleared.", visible=True, color=StatusColor.NEUTRAL) in reporter.report.call_args_list

    @pytest.mark.asyncio
    async def test_clear_survives_remove_failure(self, lifecycle, api, batch):
        await lifecycle.submit(batch, 3)
        api.remove.side_effect = TransportError("down")

        await lifecycle.clear(batch)

        assert len(batch) == 0
        assert lifecycle.state is LifecycleState.IDLE
        assert lifecycle.download is None

    @pytest.mark.asyncio
    async def test_clear_without_job_skips_remove(self, lifecycle, api, batch):
        await lifecycle.clear(batch)
        api.remove.assert_not_called()
        assert len(batch) == 0

    @pytest.mark.asyncio
    async def test_clear_after_failure(self, lifecycle, api, batch):
        api.process.side_effect = ServerError("boom", 500)
        await lifecycle.submit(batch, 3)

        await lifecycle.clear(batch)

        assert lifecycle.state is LifecycleState.IDLE
        api.remove.assert_awaited_once_with("J1")

    @pytest.mark.asyncio
    async def test_cleanup_reports_outcome(self, lifecycle, api):
        assert await lifecycle.cleanup("J1") is True
        api.remove.side_effect = ServerError("missing", 404)
        assert await lifecycle.cleanup("J1") is False

    @pytest.mark.asyncio
    async def test_clear_during_upload_discards_result(self, lifecycle, api, batch):
        release = asyncio.Event()

        async def slow_upload(files):
            await release.wait()
            return "J1"

        api.upload.side_effect = slow_upload
        pending = asyncio.create_task(lifecycle.submit(batch, 3))
        await asyncio.sleep(0)

        await lifecycle.clear(batch)
        release.set()

        assert await pending is None
        assert lifecycle.state is LifecycleState.IDLE
        assert lifecycle.job_id is None
        api.process.assert_not_called()
        # the orphaned job is removed once its id is known
        api.remove.assert_awaited_once_with("J1")

    @pytest.mark.asyncio
    async def test_clear_during_process_ignores_late_failure(self, lifecycle, api, batch):
        release = asyncio.Event()

        async def slow_process(job_id, rows):
            await release.wait()
            raise ServerError("gone", 404)

        api.process.side_effect = slow_process
        pending = asyncio.create_task(lifecycle.submit(batch, 3))
        while lifecycle.state is not LifecycleState.PROCESSING:
            await asyncio.sleep(0)

        await lifecycle.clear(batch)
        release.set()

        assert await pending is None
        assert lifecycle.state is LifecycleState.IDLE


class TestAutoHide:
    @pytest.mark.asyncio
    async def test_status_hidden_after_clear(self, api, reporter):
        lifecycle = JobLifecycle(api, reporter, ClientConfig(status_hide_delay=0.01))

        await lifecycle.clear()
        await asyncio.sleep(0.05)

        assert last_report(reporter) == call("", visible=False, color=StatusColor.NEUTRAL)

    @pytest.mark.asyncio
    async def test_new_message_cancels_hide(self, api, reporter):
        lifecycle = JobLifecycle(api, reporter, ClientConfig(status_hide_delay=0.01))

        await lifecycle.clear()
        lifecycle.report("Skipped 1 file(s)")
        await asyncio.sleep(0.05)

        assert last_report(reporter) == call("Skipped 1 file(s)", visible=True, color=StatusColor.NEUTRAL)


class TestSubmitCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_submit_leaves_lifecycle_usable(self, lifecycle, api, batch):
        started = asyncio.Event()

        async def hanging_upload(files):
            started.set()
            await asyncio.Event().wait()

        api.upload.side_effect = hanging_upload
        pending = asyncio.create_task(lifecycle.submit(batch, 3))
        await started.wait()

        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert lifecycle.state is LifecycleState.FAILED
        api.upload.side_effect = None
        assert await lifecycle.submit(batch, 3) is not None
        assert api.upload.await_count == 2

    @pytest.mark.asyncio
    async def test_cancel_after_clear_keeps_idle(self, lifecycle, api, batch):
        started = asyncio.Event()

        async def hanging_process(job_id, rows):
            started.set()
            await asyncio.Event().wait()

        api.process.side_effect = hanging_process
        pending = asyncio.create_task(lifecycle.submit(batch, 3))
        await started.wait()
        await lifecycle.clear(batch)

        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert lifecycle.state is LifecycleState.IDLE
