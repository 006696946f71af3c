"""Backup storage interface.

The update workflow takes a backup before any history rewrite or tree
replacement and restores user content from it in clean mode. The CLI's
backup, restore, list and clean commands drive the same interface.
"""

from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from pathlib import Path

from koharu.core.backup.types import (
    BackupInfo,
    BackupManifest,
    BackupOutput,
    DeleteResult,
    RestorePreviewItem,
)


class BackupStore(ABC):
    """Abstract interface for creating and restoring backup archives."""

    @abstractmethod
    def run_backup(self, full: bool) -> BackupOutput:
        """Capture user content into a new archive.

        Args:
            full: Also capture generated assets, not only user content

        Raises:
            OSError: If the archive cannot be written
        """
        ...

    @abstractmethod
    def read_manifest(self, backup_file: Path) -> BackupManifest:
        """Read and validate an archive's manifest.

        Raises:
            BackupFormatError: If the manifest is missing or unrecognized
        """
        ...

    @abstractmethod
    def get_restore_preview(self, backup_file: Path) -> list[RestorePreviewItem]:
        """List the project paths a restore would write, without writing."""
        ...

    @abstractmethod
    def restore_backup(
        self, backup_file: Path, only: Collection[str] | None = None
    ) -> list[str]:
        """Copy archived items back into the project.

        Args:
            backup_file: Archive to restore
            only: Restrict the restore to these project paths

        Returns:
            Project paths that were restored

        Raises:
            BackupFormatError: If the archive is not a recognized backup
        """
        ...

    @abstractmethod
    def list_backups(self) -> list[BackupInfo]:
        """List archives in the backup directory, newest first."""
        ...

    @abstractmethod
    def delete_backups(self, paths: Sequence[Path]) -> DeleteResult:
        """Delete archives. Paths outside the backup directory are skipped."""
        ...
