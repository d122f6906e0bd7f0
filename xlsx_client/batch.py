"""File batch - the ordered, de-duplicated set of files pending submission."""
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple

from .models import EXCEL_EXTENSIONS, FileEntry, extension_of
from .utils.events import EventEmitter

logger = logging.getLogger(__name__)

CHANGED = "changed"


def normalize_extensions(extensions: Iterable[str]) -> frozenset:
    """Lower-case extensions and make sure each starts with a dot."""
    return frozenset(
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in extensions
    )


class FileBatch:
    """
    Ordered collection of FileEntry, unique by exact name.

    Candidates with a disallowed extension or a name already in the batch
    are dropped without error; `add` hands them back so callers can tell
    the user. Every mutation emits a ``changed`` event with the new size.

    Usage:
        batch = FileBatch()
        batch.events.on("changed", lambda count: print(f"Total {count} files"))
        batch.add(entries, EXCEL_EXTENSIONS)
    """

    def __init__(self):
        self._entries: List[FileEntry] = []
        self.events = EventEmitter()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self.snapshot())

    def __contains__(self, name: object) -> bool:
        return any(entry.name == name for entry in self._entries)

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def add(self, candidates: Sequence[FileEntry], allowed_extensions: Iterable[str]) -> List[FileEntry]:
        """
        Append candidates that pass the extension and duplicate filters.

        Args:
            candidates: Entries to add, in order
            allowed_extensions: Extensions accepted by this entry point

        Returns:
            The rejected candidates
        """
        allowed = normalize_extensions(allowed_extensions)
        rejected = []
        for candidate in candidates:
            if candidate.source_extension not in allowed or candidate.name in self:
                rejected.append(candidate)
                continue
            self._entries.append(candidate)

        if rejected:
            logger.debug(f"Dropped {len(rejected)} file(s): {[c.name for c in rejected]}")
        self._changed()
        return rejected

    def remove(self, index: int) -> None:
        """Remove the entry at index; out-of-range indexes are ignored."""
        if not 0 <= index < len(self._entries):
            logger.debug(f"Ignoring remove of index {index} (size {len(self._entries)})")
            return
        del self._entries[index]
        self._changed()

    def clear(self) -> None:
        self._entries.clear()
        self._changed()

    def snapshot(self) -> Tuple[FileEntry, ...]:
        """Read-only view used to build the upload request."""
        return tuple(self._entries)

    def _changed(self):
        self.events.emit(CHANGED, len(self._entries))


class FileCollector:
    """Collects spreadsheet files from folders."""

    @staticmethod
    def collect_files(folder: Path, extensions: Iterable[str] = EXCEL_EXTENSIONS) -> List[Path]:
        """
        Collect matching files recursively.

        Args:
            folder: Root folder to scan
            extensions: Extensions to keep

        Returns:
            Sorted list of file paths
        """
        allowed = normalize_extensions(extensions)
        files = []
        for item in Path(folder).rglob("*"):
            if item.is_file() and extension_of(item.name) in allowed:
                files.append(item)
        return sorted(files)
