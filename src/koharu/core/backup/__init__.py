from koharu.core.backup.abc import BackupStore
from koharu.core.backup.dry_run import DryRunBackupStore
from koharu.core.backup.real import RealBackupStore
from koharu.core.backup.types import (
    BackupFormatError,
    BackupInfo,
    BackupItemResult,
    BackupManifest,
    BackupOutput,
    DeleteResult,
    RestorePreviewItem,
)

__all__ = [
    "BackupFormatError",
    "BackupInfo",
    "BackupItemResult",
    "BackupManifest",
    "BackupOutput",
    "BackupStore",
    "DeleteResult",
    "DryRunBackupStore",
    "RealBackupStore",
    "RestorePreviewItem",
]
