"""Core client - the user-facing surface over one batch and one job lifecycle."""
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from ..batch import FileBatch, FileCollector, normalize_extensions
from ..models import (
    EXCEL_EXTENSIONS,
    ZIP_EXTENSIONS,
    ClientConfig,
    DownloadHandle,
    FileEntry,
    LifecycleState,
    extension_of,
)
from ..protocols import IJobAPIClient, IStatusReporter
from ..services.api_client import HTTPAPIClient
from ..services.status import LoggingStatusReporter
from .lifecycle import JobLifecycle

logger = logging.getLogger(__name__)


class BatchJobClient:
    """
    Collects files, submits them for row deletion and fetches the result.

    Owns the FileBatch, the row count and the JobLifecycle; front ends only
    forward user intents here and render what comes back.

    Usage:
        async with BatchJobClient(ClientConfig(base_url=url)) as client:
            client.add_excel_files([Path("a.xlsx"), Path("b.xls")])
            client.add_folder(Path("reports"))
            client.set_rows_to_delete(3)
            handle = await client.submit()
            if handle:
                handle.save(Path("out"))
            await client.clear()
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        reporter: Optional[IStatusReporter] = None,
        api_client: Optional[IJobAPIClient] = None,
    ):
        """
        Initialize client with dependencies.

        Args:
            config: Client configuration
            reporter: Status message sink (defaults to logging)
            api_client: Service client; an HTTPAPIClient is built from config when omitted
        """
        self._config = config or ClientConfig()
        self._reporter = reporter or LoggingStatusReporter()
        self._owned_api: Optional[HTTPAPIClient] = None
        if api_client is None:
            self._owned_api = HTTPAPIClient(self._config.base_url, self._config.timeout)
            api_client = self._owned_api

        self.batch = FileBatch()
        self.lifecycle = JobLifecycle(api_client, self._reporter, self._config)
        self._rows_to_delete: Optional[Union[int, str]] = None

    async def __aenter__(self):
        if self._owned_api:
            await self._owned_api.__aenter__()
        return self

    async def __aexit__(self, *args):
        if self._owned_api:
            await self._owned_api.__aexit__(*args)

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    @property
    def download(self) -> Optional[DownloadHandle]:
        return self.lifecycle.download

    @property
    def rows_to_delete(self) -> Optional[Union[int, str]]:
        return self._rows_to_delete

    def set_rows_to_delete(self, value: Optional[Union[int, str]]) -> None:
        self._rows_to_delete = value

    def add_entries(self, entries: Sequence[FileEntry], allowed_extensions: Iterable[str]) -> int:
        """Add entries through the batch filter; returns how many were accepted."""
        rejected = self.batch.add(entries, allowed_extensions)
        self._report_skipped(len(rejected))
        return len(entries) - len(rejected)

    def add_excel_files(self, paths: Iterable[Path]) -> int:
        return self.add_paths(paths, EXCEL_EXTENSIONS)

    def add_zip_files(self, paths: Iterable[Path]) -> int:
        return self.add_paths(paths, ZIP_EXTENSIONS)

    def add_folder(self, folder: Path) -> int:
        """Add every .xlsx/.xls file found under folder."""
        paths = FileCollector.collect_files(folder, EXCEL_EXTENSIONS)
        logger.debug(f"Found {len(paths)} spreadsheet(s) in {folder}")
        return self.add_paths(paths, EXCEL_EXTENSIONS)

    def add_paths(self, paths: Iterable[Path], allowed_extensions: Iterable[str]) -> int:
        """
        Read and add local files.

        Paths with a disallowed extension or a name already in the batch
        are skipped without being read.
        """
        allowed = normalize_extensions(allowed_extensions)
        paths = [Path(path) for path in paths]
        wanted = [
            path for path in paths
            if extension_of(path.name) in allowed and path.name not in self.batch
        ]
        entries = [FileEntry.from_path(path) for path in wanted]
        rejected = self.batch.add(entries, allowed)
        self._report_skipped(len(paths) - len(wanted) + len(rejected))
        return len(entries) - len(rejected)

    def remove_file(self, index: int) -> None:
        self.batch.remove(index)

    async def submit(self) -> Optional[DownloadHandle]:
        return await self.lifecycle.submit(self.batch, self._rows_to_delete)

    async def clear(self) -> None:
        """Reset batch, row count and job; removal on the server is best effort."""
        self._rows_to_delete = None
        await self.lifecycle.clear(self.batch)

    def _report_skipped(self, count: int) -> None:
        if count:
            self.lifecycle.report(f"Skipped {count} file(s): wrong type or already added.")
