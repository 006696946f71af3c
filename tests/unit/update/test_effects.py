"""Tests for turning update commands into actions."""

from pathlib import Path

import httpx

from koharu.constants import BACKUP_ITEMS
from koharu.core.backup.types import BackupItemResult
from koharu.core.config import LoadedConfig
from koharu.core.context import KoharuContext
from koharu.core.git.types import StandardMergeResult
from koharu.core.releases.types import ReleaseInfo
from koharu.core.update.effects import execute_command
from koharu.core.update.types import (
    AbortInProgress,
    BackupDone,
    CheckGitStatus,
    CleanRestored,
    Error,
    Fetched,
    FetchReleaseNotes,
    FetchUpdates,
    GitChecked,
    InstallDependencies,
    Installed,
    MergeAborted,
    Merged,
    PerformUpdate,
    ReleaseNotesFetched,
    RestoreUserContent,
    RunBackup,
    UpdateOptions,
    UpdateStatus,
)
from tests.fakes.backup import FakeBackupStore
from tests.fakes.git import FakeGit
from tests.fakes.releases import FakeReleaseClient
from tests.fakes.shell import FakeShell
from tests.test_utils.builders import dirty_status, make_info, state_in

REPO = Path("/repo")
BACKUP = Path("/repo/backups/backup-2026-01-31-12-00-00-full.tar.gz")


def _ctx(**kwargs) -> KoharuContext:
    return KoharuContext.for_test(repo_root=REPO, **kwargs)


def test_check_git_status_reports_status() -> None:
    status = dirty_status("src/content/blog/draft.md")
    ctx = _ctx(git=FakeGit(status=status))

    action = execute_command(ctx, state_in(UpdateStatus.CHECKING), CheckGitStatus())

    assert action == GitChecked(status)


def test_commands_outside_repository_become_errors() -> None:
    ctx = KoharuContext.for_test(repo_root=None)

    action = execute_command(ctx, state_in(UpdateStatus.CHECKING), CheckGitStatus())

    assert isinstance(action, Error)
    assert "Not inside a git repository" in action.message


def test_run_backup_reports_archive() -> None:
    backups = FakeBackupStore(backup_dir=REPO / "backups")
    ctx = _ctx(backups=backups)

    action = execute_command(ctx, state_in(UpdateStatus.BACKING_UP), RunBackup(full=True))

    assert action == BackupDone(BACKUP)
    assert backups.run_backup_calls == [True]


def test_incomplete_backup_is_an_error() -> None:
    results = (
        BackupItemResult(item=BACKUP_ITEMS[0], success=True, file_count=4),
        BackupItemResult(item=BACKUP_ITEMS[1], success=False, error="Permission denied"),
    )
    ctx = _ctx(backups=FakeBackupStore(item_results=results))

    action = execute_command(ctx, state_in(UpdateStatus.BACKING_UP), RunBackup())

    assert isinstance(action, Error)
    assert "config/site.yaml: Permission denied" in action.message
    assert "Nothing was changed" in action.message


def test_backup_write_failure_is_an_error() -> None:
    ctx = _ctx(backups=FakeBackupStore(run_error="No space left on device"))

    action = execute_command(ctx, state_in(UpdateStatus.BACKING_UP), RunBackup())

    assert isinstance(action, Error)
    assert action.message.startswith("Backup failed: No space left on device")


def test_fetch_updates_reports_info() -> None:
    git = FakeGit(
        latest_tags={"upstream/main": "v2.1.0"},
        ahead_behind={"upstream/main": (0, 2)},
        merge_base=None,
    )
    ctx = _ctx(git=git)

    action = execute_command(ctx, state_in(UpdateStatus.FETCHING), FetchUpdates())

    assert isinstance(action, Fetched)
    assert action.info.behind_count == 2
    assert action.info.latest_version == "2.1.0"
    assert action.needs_migration


def test_fetch_failure_names_the_remote() -> None:
    config = LoadedConfig(upstream_remote="theme")
    ctx = _ctx(git=FakeGit(remotes={"theme"}, fetch_error="Connection timed out"), config=config)

    action = execute_command(ctx, state_in(UpdateStatus.FETCHING), FetchUpdates())

    assert isinstance(action, Error)
    assert "Connection timed out" in action.message
    assert "'theme' remote" in action.message


def test_release_notes_found() -> None:
    release = ReleaseInfo(tag_name="v2.1.0", url="https://example.test", body="- Fix")
    ctx = _ctx(releases=FakeReleaseClient(releases={"2.1.0": release}))

    action = execute_command(
        ctx, state_in(UpdateStatus.PREVIEW), FetchReleaseNotes(version="2.1.0")
    )

    assert action == ReleaseNotesFetched(release)


def test_missing_release_notes_report_nothing() -> None:
    releases = FakeReleaseClient()
    ctx = _ctx(releases=releases)

    action = execute_command(
        ctx, state_in(UpdateStatus.PREVIEW), FetchReleaseNotes(version="2.1.0")
    )

    assert action is None
    assert releases.fetch_calls == ["2.1.0"]


def test_release_client_transport_errors_report_nothing() -> None:
    class BrokenReleaseClient(FakeReleaseClient):
        def fetch_release_info(self, version: str) -> ReleaseInfo:
            raise httpx.ConnectError("offline")

    ctx = _ctx(releases=BrokenReleaseClient())

    action = execute_command(
        ctx, state_in(UpdateStatus.PREVIEW), FetchReleaseNotes(version="2.1.0")
    )

    assert action is None


def test_perform_update_reports_merge_result() -> None:
    git = FakeGit()
    ctx = _ctx(git=git)
    info = make_info()

    action = execute_command(ctx, state_in(UpdateStatus.MERGING), PerformUpdate(info=info))

    assert action == Merged(StandardMergeResult(success=True))
    assert git.merge_calls == ["upstream/main"]


def test_perform_update_uses_state_options() -> None:
    git = FakeGit()
    ctx = _ctx(git=git)
    state = state_in(UpdateStatus.MERGING, UpdateOptions(rebase=True))

    execute_command(ctx, state, PerformUpdate(info=make_info()))

    assert git.rebase_calls == ["upstream/main"]


def test_restore_user_content_reports_restored_paths() -> None:
    backups = FakeBackupStore(restorable_paths=["src/content/blog", "config/site.yaml"])
    ctx = _ctx(backups=backups)

    action = execute_command(
        ctx,
        state_in(UpdateStatus.CLEAN_RESTORING, UpdateOptions(clean=True)),
        RestoreUserContent(backup_file=BACKUP, pre_clean_sha="pre0000"),
    )

    assert action == CleanRestored(("src/content/blog", "config/site.yaml"))


def test_failed_clean_restore_is_an_error_after_rollback() -> None:
    git = FakeGit(head_sha="replaced")
    ctx = _ctx(git=git, backups=FakeBackupStore(restore_error="corrupt archive"))

    action = execute_command(
        ctx,
        state_in(UpdateStatus.CLEAN_RESTORING, UpdateOptions(clean=True)),
        RestoreUserContent(backup_file=BACKUP, pre_clean_sha="pre0000"),
    )

    assert isinstance(action, Error)
    assert "corrupt archive" in action.message
    assert git.head_sha == "pre0000"


def test_install_dependencies_runs_configured_command() -> None:
    shell = FakeShell()
    config = LoadedConfig(install_command=("npm", "ci"))
    ctx = _ctx(shell=shell, config=config)

    action = execute_command(ctx, state_in(UpdateStatus.INSTALLING), InstallDependencies())

    assert action == Installed()
    assert shell.command_calls == [(("npm", "ci"), REPO)]


def test_install_failure_names_the_command_to_run() -> None:
    ctx = _ctx(shell=FakeShell(command_error="pnpm: command not found"))

    action = execute_command(ctx, state_in(UpdateStatus.INSTALLING), InstallDependencies())

    assert isinstance(action, Error)
    assert "pnpm: command not found" in action.message
    assert "Run: pnpm install" in action.message


def test_abort_merge() -> None:
    git = FakeGit()
    ctx = _ctx(git=git)

    action = execute_command(
        ctx, state_in(UpdateStatus.CONFLICT), AbortInProgress(is_rebase=False)
    )

    assert action == MergeAborted()
    assert git.abort_merge_count == 1
    assert git.abort_rebase_count == 0


def test_abort_rebase_refused() -> None:
    git = FakeGit(abort_succeeds=False)
    ctx = _ctx(git=git)

    action = execute_command(ctx, state_in(UpdateStatus.CONFLICT), AbortInProgress(is_rebase=True))

    assert isinstance(action, Error)
    assert "git rebase --abort" in action.message
    assert git.abort_rebase_count == 1
