"""Tests for RealBackupStore using real archives in a temporary project."""

import json
import tarfile
from datetime import datetime
from io import BytesIO
from pathlib import Path

import pytest

from koharu.core.backup.real import RealBackupStore, backup_file_name
from koharu.core.backup.types import BackupFormatError
from tests.fakes.time import DEFAULT_NOW, FakeTime


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "blog"
    _write(root / "package.json", json.dumps({"name": "astro-koharu", "version": "2.0.0"}))
    _write(root / "src/content/blog/hello.md", "# Hello")
    _write(root / "src/content/blog/2025/trip.md", "# Trip")
    _write(root / "config/site.yaml", "title: My Blog\n")
    _write(root / "src/pages/about.md", "About me")
    _write(root / "src/pages/index.astro", "---\n---")
    _write(root / ".env", "SECRET=1\n")
    _write(root / "src/assets/lqips.json", "{}")
    return root


def _store(project: Path, now: datetime = DEFAULT_NOW) -> RealBackupStore:
    return RealBackupStore(project, project / "backups", FakeTime(now))


def _archive(path: Path, manifest: object | None, files: dict[str, str] | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        entries = dict(files or {})
        if manifest is not None:
            raw = manifest if isinstance(manifest, str) else json.dumps(manifest)
            entries["manifest.json"] = raw
        for name, text in entries.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, BytesIO(data))
    return path


def test_backup_file_name() -> None:
    assert backup_file_name(DEFAULT_NOW, full=True) == "backup-2026-01-31-12-00-00-full.tar.gz"
    assert backup_file_name(DEFAULT_NOW, full=False) == "backup-2026-01-31-12-00-00-basic.tar.gz"


def test_basic_backup_captures_user_content(project: Path) -> None:
    output = _store(project).run_backup(full=False)

    assert output.backup_file == project / "backups/backup-2026-01-31-12-00-00-basic.tar.gz"
    assert output.backup_file.is_file()
    assert output.file_size == output.backup_file.stat().st_size
    counts = {result.item.src: result.file_count for result in output.results}
    assert counts["src/content/blog"] == 2
    assert counts["src/pages"] == 1
    assert "src/assets/lqips.json" not in counts
    skipped = [result.item.src for result in output.results if result.skipped]
    assert skipped == ["public/img"]
    assert output.failed == ()

    with tarfile.open(output.backup_file, "r:gz") as tar:
        names = set(tar.getnames())
    assert "content/blog/2025/trip.md" in names
    assert "pages/about.md" in names
    assert "pages/index.astro" not in names
    assert "env" in names


def test_backup_leaves_no_partial_file(project: Path) -> None:
    _store(project).run_backup(full=True)

    leftovers = [p.name for p in (project / "backups").iterdir() if p.name.startswith(".tmp")]
    assert leftovers == []


def test_full_backup_manifest(project: Path) -> None:
    store = _store(project)
    output = store.run_backup(full=True)

    manifest = store.read_manifest(output.backup_file)

    assert manifest.backup_type == "full"
    assert manifest.theme_version == "2.0.0"
    assert manifest.created_at == "2026-01-31T12:00:00+00:00"
    assert [item.src for item in manifest.items] == [
        "src/content/blog",
        "config/site.yaml",
        "src/pages",
        ".env",
        "src/assets/lqips.json",
    ]


def test_backup_refuses_to_overwrite(project: Path) -> None:
    store = _store(project)
    store.run_backup(full=True)

    with pytest.raises(FileExistsError):
        store.run_backup(full=True)


def test_restore_round_trip(project: Path) -> None:
    store = _store(project)
    output = store.run_backup(full=False)
    _write(project / "config/site.yaml", "title: Upstream\n")
    (project / "src/content/blog/hello.md").unlink()

    restored = store.restore_backup(output.backup_file)

    assert restored == ["src/content/blog", "config/site.yaml", "src/pages", ".env"]
    assert (project / "config/site.yaml").read_text(encoding="utf-8") == "title: My Blog\n"
    assert (project / "src/content/blog/hello.md").read_text(encoding="utf-8") == "# Hello"


def test_restore_only_selected_paths(project: Path) -> None:
    store = _store(project)
    output = store.run_backup(full=False)
    _write(project / "config/site.yaml", "title: Upstream\n")
    _write(project / ".env", "SECRET=2\n")

    restored = store.restore_backup(output.backup_file, only=["config/site.yaml"])

    assert restored == ["config/site.yaml"]
    assert (project / "config/site.yaml").read_text(encoding="utf-8") == "title: My Blog\n"
    assert (project / ".env").read_text(encoding="utf-8") == "SECRET=2\n"


def test_restore_preview_counts_files(project: Path) -> None:
    store = _store(project)
    output = store.run_backup(full=False)

    preview = {item.path: item.file_count for item in store.get_restore_preview(output.backup_file)}

    assert preview == {
        "src/content/blog": 2,
        "config/site.yaml": 1,
        "src/pages": 1,
        ".env": 1,
    }


def test_archive_without_manifest_is_rejected(project: Path) -> None:
    archive = _archive(
        project / "backups/backup-old.tar.gz", None, {"config/site.yaml": "title: x"}
    )

    with pytest.raises(BackupFormatError, match="no manifest.json"):
        _store(project).restore_backup(archive)

    assert (project / "config/site.yaml").read_text(encoding="utf-8") == "title: My Blog\n"


@pytest.mark.parametrize(
    ("manifest", "match"),
    [
        ("{not json", "not valid JSON"),
        ({"name": "something-else", "format_version": 1, "items": []}, "is not an"),
        ({"name": "astro-koharu-backup", "format_version": 2, "items": []}, "format 2"),
        ({"name": "astro-koharu-backup", "format_version": 1}, "no item list"),
        (
            {
                "name": "astro-koharu-backup",
                "format_version": 1,
                "items": [{"src": "/etc", "dest": "config/site.yaml"}],
            },
            "Unrecognized backup item",
        ),
    ],
)
def test_unrecognized_manifests_fail_closed(project: Path, manifest: object, match: str) -> None:
    archive = _archive(
        project / "backups/backup-bad.tar.gz", manifest, {"config/site.yaml": "title: x"}
    )

    with pytest.raises(BackupFormatError, match=match):
        _store(project).restore_backup(archive)

    assert (project / "config/site.yaml").read_text(encoding="utf-8") == "title: My Blog\n"


def test_non_archive_is_rejected(project: Path) -> None:
    bogus = project / "backups/backup-2026-01-01-00-00-00-full.tar.gz"
    _write(bogus, "plain text")

    with pytest.raises(BackupFormatError):
        _store(project).read_manifest(bogus)


def test_missing_archive(project: Path) -> None:
    with pytest.raises(FileNotFoundError):
        _store(project).read_manifest(project / "backups/nope.tar.gz")


def test_list_backups_newest_first(project: Path) -> None:
    _store(project, datetime(2026, 1, 1, 9, 0, 0)).run_backup(full=False)
    _store(project, datetime(2026, 1, 2, 9, 0, 0)).run_backup(full=True)
    _write(project / "backups/notes.txt", "not a backup")

    backups = _store(project).list_backups()

    assert [(b.name, b.backup_type, b.timestamp) for b in backups] == [
        ("backup-2026-01-02-09-00-00-full.tar.gz", "full", "2026-01-02 09:00:00"),
        ("backup-2026-01-01-09-00-00-basic.tar.gz", "basic", "2026-01-01 09:00:00"),
    ]


def test_list_backups_without_directory(project: Path) -> None:
    assert _store(project).list_backups() == []


def test_delete_backups_skips_paths_outside_backup_dir(project: Path) -> None:
    store = _store(project)
    output = store.run_backup(full=True)
    outsider = project / "config/site.yaml"

    result = store.delete_backups([output.backup_file, outsider])

    assert result.deleted_count == 1
    assert result.freed_space == output.file_size
    assert result.skipped_count == 1
    assert not output.backup_file.exists()
    assert outsider.exists()
