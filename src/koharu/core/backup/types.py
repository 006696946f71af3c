"""Value types returned by backup operations."""

from dataclasses import dataclass
from pathlib import Path

from koharu.constants import BackupItem


class BackupFormatError(ValueError):
    """Raised when an archive is not a backup this version of koharu can read.

    Restores fail closed on this error: nothing is extracted from an archive
    whose manifest is missing, malformed, or written by another format.
    """


@dataclass(frozen=True)
class BackupItemResult:
    """Outcome of capturing one backup item."""

    item: BackupItem
    success: bool
    skipped: bool = False
    error: str | None = None
    file_count: int = 0


@dataclass(frozen=True)
class BackupOutput:
    """A finished backup archive."""

    backup_file: Path
    file_size: int
    results: tuple[BackupItemResult, ...]

    @property
    def failed(self) -> tuple[BackupItemResult, ...]:
        return tuple(result for result in self.results if result.error is not None)


@dataclass(frozen=True)
class BackupManifest:
    """Contents of manifest.json inside a backup archive."""

    backup_type: str
    theme_version: str
    created_at: str
    items: tuple[BackupItem, ...]


@dataclass(frozen=True)
class RestorePreviewItem:
    """A project path a restore would write, with the number of files in it."""

    path: str
    file_count: int


@dataclass(frozen=True)
class BackupInfo:
    """A backup archive found in the backup directory."""

    name: str
    path: Path
    size: int
    backup_type: str
    timestamp: str


@dataclass(frozen=True)
class DeleteResult:
    deleted_count: int
    freed_space: int
    skipped_count: int
