"""
Models for xlsx_client module.

Immutable dataclasses describing files, job results and client configuration.
"""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


EXCEL_EXTENSIONS = frozenset({".xlsx", ".xls"})
ZIP_EXTENSIONS = frozenset({".zip"})

DEFAULT_API_URL = "http://localhost:8080"


def extension_of(name: str) -> str:
    """Lower-cased text from the last '.' of name, or '' when there is none."""
    index = name.rfind(".")
    if index < 0:
        return ""
    return name[index:].lower()


class LifecycleState(Enum):
    """State of the job lifecycle."""
    IDLE = "idle"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    DOWNLOADING = "downloading"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def accepts_submit(self) -> bool:
        return self in (LifecycleState.IDLE, LifecycleState.FAILED)


class StatusColor(Enum):
    """Color hint for status messages."""
    NEUTRAL = "neutral"
    ERROR = "error"


@dataclass(frozen=True)
class FileEntry:
    """A selected spreadsheet (or archive) pending upload."""
    name: str
    payload: bytes

    @property
    def source_extension(self) -> str:
        return extension_of(self.name)

    @property
    def size(self) -> int:
        return len(self.payload)

    @classmethod
    def from_path(cls, path: Path) -> "FileEntry":
        path = Path(path)
        return cls(name=path.name, payload=path.read_bytes())


@dataclass(frozen=True)
class ProcessResult:
    """Response of the process step."""
    zip_file_name: str
    job_id: Optional[str] = None
    time_taken: Optional[str] = None
    num_rows_deleted: Optional[int] = None

    @property
    def archive_name(self) -> str:
        """Last path segment of the archive locator."""
        return re.split(r"[/\\]", self.zip_file_name)[-1]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ProcessResult":
        return cls(
            zip_file_name=data["zip_file_name"],
            job_id=data.get("job_id"),
            time_taken=data.get("time_taken"),
            num_rows_deleted=data.get("num_rows_deleted"),
        )


@dataclass(frozen=True)
class DownloadHandle:
    """Downloaded result archive, ready to be saved."""
    filename: str
    content: bytes
    locator: str

    @property
    def size(self) -> int:
        return len(self.content)

    def save(self, directory: Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.filename
        target.write_bytes(self.content)
        return target


@dataclass(frozen=True)
class StepTiming:
    """Wall-clock duration of one lifecycle step."""
    step: str
    duration_ms: int


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for the job client."""
    base_url: str = DEFAULT_API_URL
    timeout: float = 60
    status_hide_delay: Optional[float] = 1.0  # None disables auto-hide
