"""Production backup store writing gzip-compressed tar archives.

Archive layout:
    manifest.json          name, format_version, type, theme_version, created_at, items
    content/blog/...       one directory or file per captured item, at item.dest
    config/site.yaml
    ...
"""

import json
import logging
import shutil
import tarfile
import tempfile
from collections.abc import Collection, Iterator, Sequence
from datetime import datetime
from io import BytesIO
from pathlib import Path

from koharu.constants import (
    BACKUP_FILE_EXTENSION,
    BACKUP_FILE_PREFIX,
    BACKUP_ITEMS,
    MANIFEST_FILENAME,
    MANIFEST_FORMAT_VERSION,
    MANIFEST_NAME,
    TEMP_DIR_PREFIX,
    UNKNOWN_VERSION,
    USER_CONTENT_ITEMS,
    BackupItem,
)
from koharu.core.backup.abc import BackupStore
from koharu.core.backup.types import (
    BackupFormatError,
    BackupInfo,
    BackupItemResult,
    BackupManifest,
    BackupOutput,
    DeleteResult,
    RestorePreviewItem,
)
from koharu.core.project import read_package_version
from koharu.core.time.abc import Time

logger = logging.getLogger(__name__)

_STAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"


def backup_file_name(now: datetime, full: bool) -> str:
    """Archive name for a backup taken at now, e.g. "backup-2026-01-31-12-00-00-full.tar.gz"."""
    backup_type = "full" if full else "basic"
    stamp = now.strftime(_STAMP_FORMAT)
    return f"{BACKUP_FILE_PREFIX}{stamp}-{backup_type}{BACKUP_FILE_EXTENSION}"


def _is_under(name: str, prefix: str) -> bool:
    return name == prefix or name.startswith(prefix + "/")


def _item_files(item: BackupItem, source: Path) -> list[Path]:
    if source.is_file():
        return [source]
    return sorted(path for path in source.rglob(item.pattern or "*") if path.is_file())


def _copy_into(extracted: Path, target: Path) -> None:
    if extracted.is_dir():
        shutil.copytree(extracted, target, dirs_exist_ok=True)
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(extracted, target)


def _known_item(entry: object) -> BackupItem:
    if isinstance(entry, dict):
        for item in BACKUP_ITEMS:
            if entry.get("src") == item.src and entry.get("dest") == item.dest:
                return item
    raise BackupFormatError(f"Unrecognized backup item in manifest: {entry!r}")


def _parse_manifest(raw: bytes, backup_file: Path) -> BackupManifest:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BackupFormatError(f"{backup_file.name}: {MANIFEST_FILENAME} is not valid JSON") from e

    if not isinstance(data, dict) or data.get("name") != MANIFEST_NAME:
        raise BackupFormatError(f"{backup_file.name} is not an {MANIFEST_NAME} archive")

    format_version = data.get("format_version")
    if format_version != MANIFEST_FORMAT_VERSION:
        raise BackupFormatError(
            f"{backup_file.name} uses backup format {format_version!r}; "
            f"this version of koharu reads format {MANIFEST_FORMAT_VERSION}"
        )

    items = data.get("items")
    if not isinstance(items, list):
        raise BackupFormatError(f"{backup_file.name}: manifest has no item list")

    return BackupManifest(
        backup_type=str(data.get("type", "unknown")),
        theme_version=str(data.get("theme_version", UNKNOWN_VERSION)),
        created_at=str(data.get("created_at", "")),
        items=tuple(_known_item(entry) for entry in items),
    )


def _backup_info(path: Path) -> BackupInfo:
    stem = path.name[len(BACKUP_FILE_PREFIX) : -len(BACKUP_FILE_EXTENSION)]
    stamp, _, kind = stem.rpartition("-")
    try:
        timestamp = datetime.strptime(stamp, _STAMP_FORMAT).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        timestamp = stamp
    return BackupInfo(
        name=path.name,
        path=path,
        size=path.stat().st_size,
        backup_type=kind if kind in ("full", "basic") else "unknown",
        timestamp=timestamp,
    )


class RealBackupStore(BackupStore):
    """Backup store keeping archives in a directory of the project.

    Archives are written under a temporary name and renamed into place, so
    an interrupted backup never leaves a truncated file that looks complete.
    """

    def __init__(self, project_root: Path, backup_dir: Path, time: Time) -> None:
        self._project_root = project_root
        self._backup_dir = backup_dir
        self._time = time

    # ------------------------------------------------------------------
    # Creating backups
    # ------------------------------------------------------------------

    def run_backup(self, full: bool) -> BackupOutput:
        items = BACKUP_ITEMS if full else USER_CONTENT_ITEMS
        backup_type = "full" if full else "basic"
        now = self._time.now()

        name = backup_file_name(now, full)
        backup_file = self._backup_dir / name
        if backup_file.exists():
            raise FileExistsError(f"Backup already exists: {backup_file}")

        self._backup_dir.mkdir(parents=True, exist_ok=True)
        partial = self._backup_dir / f"{TEMP_DIR_PREFIX}{name}"
        logger.debug("Writing %s backup to %s", backup_type, backup_file)

        try:
            with tarfile.open(partial, "w:gz") as tar:
                results = tuple(self._add_item(tar, item) for item in items)
                manifest = {
                    "name": MANIFEST_NAME,
                    "format_version": MANIFEST_FORMAT_VERSION,
                    "type": backup_type,
                    "theme_version": read_package_version(self._project_root) or UNKNOWN_VERSION,
                    "created_at": now.isoformat(timespec="seconds"),
                    "items": [
                        {
                            "src": result.item.src,
                            "dest": result.item.dest,
                            "files": result.file_count,
                        }
                        for result in results
                        if result.success
                    ],
                }
                payload = json.dumps(manifest, indent=2, ensure_ascii=False).encode("utf-8")
                info = tarfile.TarInfo(MANIFEST_FILENAME)
                info.size = len(payload)
                info.mtime = int(now.timestamp())
                tar.addfile(info, BytesIO(payload))
            partial.replace(backup_file)
        finally:
            partial.unlink(missing_ok=True)

        return BackupOutput(
            backup_file=backup_file,
            file_size=backup_file.stat().st_size,
            results=results,
        )

    def _add_item(self, tar: tarfile.TarFile, item: BackupItem) -> BackupItemResult:
        source = self._project_root / item.src
        if not source.exists():
            return BackupItemResult(item=item, success=False, skipped=True)

        try:
            files = _item_files(item, source)
            for path in files:
                if path == source:
                    arcname = item.dest
                else:
                    arcname = f"{item.dest}/{path.relative_to(source).as_posix()}"
                tar.add(path, arcname=arcname, recursive=False)
        except OSError as e:
            logger.debug("Failed to back up %s: %s", item.src, e)
            return BackupItemResult(item=item, success=False, error=str(e))

        return BackupItemResult(item=item, success=True, file_count=len(files))

    # ------------------------------------------------------------------
    # Reading and restoring backups
    # ------------------------------------------------------------------

    def _open(self, backup_file: Path) -> tarfile.TarFile:
        if not backup_file.is_file():
            raise FileNotFoundError(f"Backup file not found: {backup_file}")
        try:
            return tarfile.open(backup_file, "r:gz")
        except tarfile.ReadError as e:
            raise BackupFormatError(f"{backup_file.name} is not a readable backup archive") from e

    def _manifest_of(self, tar: tarfile.TarFile, backup_file: Path) -> BackupManifest:
        try:
            member = tar.getmember(MANIFEST_FILENAME)
        except KeyError as e:
            raise BackupFormatError(
                f"{backup_file.name} has no {MANIFEST_FILENAME}; refusing to guess its layout"
            ) from e
        handle = tar.extractfile(member)
        if handle is None:
            raise BackupFormatError(f"{backup_file.name}: {MANIFEST_FILENAME} is not a file")
        with handle:
            return _parse_manifest(handle.read(), backup_file)

    def read_manifest(self, backup_file: Path) -> BackupManifest:
        with self._open(backup_file) as tar:
            return self._manifest_of(tar, backup_file)

    def get_restore_preview(self, backup_file: Path) -> list[RestorePreviewItem]:
        with self._open(backup_file) as tar:
            manifest = self._manifest_of(tar, backup_file)
            members = [member for member in tar.getmembers() if member.isfile()]

        preview: list[RestorePreviewItem] = []
        for item in manifest.items:
            count = sum(1 for member in members if _is_under(member.name, item.dest))
            if count:
                preview.append(RestorePreviewItem(path=item.src, file_count=count))
        return preview

    def restore_backup(
        self, backup_file: Path, only: Collection[str] | None = None
    ) -> list[str]:
        restored: list[str] = []
        with self._open(backup_file) as tar:
            manifest = self._manifest_of(tar, backup_file)
            items = [item for item in manifest.items if only is None or item.src in only]
            members = [
                member
                for member in tar.getmembers()
                if any(_is_under(member.name, item.dest) for item in items)
            ]

            with tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX) as tmp:
                staging = Path(tmp)
                tar.extractall(staging, members=members, filter="data")
                for item in items:
                    extracted = staging / item.dest
                    if not extracted.exists():
                        continue
                    _copy_into(extracted, self._project_root / item.src)
                    restored.append(item.src)

        logger.debug("Restored %s from %s", restored, backup_file)
        return restored

    # ------------------------------------------------------------------
    # Managing archives
    # ------------------------------------------------------------------

    def _iter_archives(self) -> Iterator[Path]:
        if not self._backup_dir.is_dir():
            return
        for path in self._backup_dir.glob(f"{BACKUP_FILE_PREFIX}*{BACKUP_FILE_EXTENSION}"):
            if path.is_file():
                yield path

    def list_backups(self) -> list[BackupInfo]:
        infos = [_backup_info(path) for path in self._iter_archives()]
        return sorted(infos, key=lambda info: info.name, reverse=True)

    def delete_backups(self, paths: Sequence[Path]) -> DeleteResult:
        backup_dir = self._backup_dir.resolve()
        deleted = 0
        freed = 0
        skipped = 0
        for path in paths:
            resolved = path.resolve()
            if resolved.parent != backup_dir or not resolved.is_file():
                logger.debug("Skipping %s: not a backup in %s", path, backup_dir)
                skipped += 1
                continue
            size = resolved.stat().st_size
            resolved.unlink()
            deleted += 1
            freed += size
        return DeleteResult(deleted_count=deleted, freed_space=freed, skipped_count=skipped)
