"""Dry-run BackupStore wrapper.

Reads (manifests, previews, listings) go to the wrapped store; writes print
what would happen instead.
"""

from collections.abc import Collection, Sequence
from pathlib import Path

import click

from koharu.cli.output import user_output
from koharu.core.backup.abc import BackupStore
from koharu.core.backup.real import backup_file_name
from koharu.core.backup.types import (
    BackupInfo,
    BackupManifest,
    BackupOutput,
    DeleteResult,
    RestorePreviewItem,
)
from koharu.core.time.abc import Time


def _announce(message: str) -> None:
    user_output(click.style("[DRY RUN] ", fg="yellow") + message)


class DryRunBackupStore(BackupStore):
    """Wrapper that prints backup writes instead of performing them.

    Args:
        wrapped: Store used for read-only operations
        backup_dir: Directory the wrapped store writes archives to
        time: Clock used to name the archive that would be written
    """

    def __init__(self, wrapped: BackupStore, backup_dir: Path, time: Time) -> None:
        self._wrapped = wrapped
        self._backup_dir = backup_dir
        self._time = time

    def run_backup(self, full: bool) -> BackupOutput:
        backup_file = self._backup_dir / backup_file_name(self._time.now(), full)
        _announce(f"Would create {'full' if full else 'basic'} backup {backup_file}")
        return BackupOutput(backup_file=backup_file, file_size=0, results=())

    def read_manifest(self, backup_file: Path) -> BackupManifest:
        return self._wrapped.read_manifest(backup_file)

    def get_restore_preview(self, backup_file: Path) -> list[RestorePreviewItem]:
        return self._wrapped.get_restore_preview(backup_file)

    def restore_backup(
        self, backup_file: Path, only: Collection[str] | None = None
    ) -> list[str]:
        preview = self._wrapped.get_restore_preview(backup_file)
        paths = [item.path for item in preview if only is None or item.path in only]
        _announce(f"Would restore {', '.join(paths) or 'nothing'} from {backup_file.name}")
        return paths

    def list_backups(self) -> list[BackupInfo]:
        return self._wrapped.list_backups()

    def delete_backups(self, paths: Sequence[Path]) -> DeleteResult:
        for path in paths:
            _announce(f"Would delete {path}")
        return DeleteResult(deleted_count=0, freed_space=0, skipped_count=len(paths))
