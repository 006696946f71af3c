"""Tests for the pure update state machine."""

import itertools
from pathlib import Path

import pytest

from koharu.core.git.types import CleanModeResult, StandardMergeResult
from koharu.core.releases.types import ReleaseInfo
from koharu.core.update.machine import (
    FINAL_STATUSES,
    auto_action,
    exit_code,
    is_terminal,
    start,
    transition,
)
from koharu.core.update.types import (
    AbortInProgress,
    AbortRequested,
    BackupConfirm,
    BackupDone,
    BackupSkip,
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
    PreviewFinished,
    ReleaseNotesFetched,
    RestoreUserContent,
    RunBackup,
    UpdateCancel,
    UpdateConfirm,
    UpdateOptions,
    UpdateState,
    UpdateStatus,
)
from tests.test_utils.builders import clean_status, dirty_status, make_info, state_in

BACKUP = Path("/repo/backups/backup-2026-01-31-12-00-00-full.tar.gz")


# ============================================================================
# Options
# ============================================================================


def test_rebase_and_clean_are_mutually_exclusive() -> None:
    with pytest.raises(ValueError, match="--rebase and --clean"):
        UpdateOptions(rebase=True, clean=True)


def test_strategy_and_requires_backup() -> None:
    assert UpdateOptions().strategy == "merge"
    assert not UpdateOptions().requires_backup
    assert UpdateOptions(rebase=True).strategy == "rebase"
    assert UpdateOptions(rebase=True).requires_backup
    assert UpdateOptions(clean=True).strategy == "clean"
    assert UpdateOptions(clean=True).requires_backup


# ============================================================================
# checking
# ============================================================================


def test_start_checks_git_status() -> None:
    result = start(UpdateOptions(), "main")

    assert result.state.status == UpdateStatus.CHECKING
    assert result.state.main_branch == "main"
    assert result.commands == (CheckGitStatus(),)


def test_clean_tree_asks_about_backup() -> None:
    state = start(UpdateOptions(), "main").state

    result = transition(state, GitChecked(clean_status()))

    assert result.state.status == UpdateStatus.BACKUP_CONFIRM
    assert result.state.git_status == clean_status()
    assert result.commands == ()


def test_dirty_tree_stops_with_warning() -> None:
    state = start(UpdateOptions(), "main").state

    result = transition(state, GitChecked(dirty_status("src/content/blog/a.md")))

    assert result.state.status == UpdateStatus.DIRTY_WARNING
    assert result.commands == ()
    assert exit_code(result.state) == 1


def test_dirty_tree_with_force_continues() -> None:
    state = start(UpdateOptions(force=True), "main").state

    result = transition(state, GitChecked(dirty_status()))

    assert result.state.status == UpdateStatus.BACKUP_CONFIRM


@pytest.mark.parametrize(
    "options",
    [
        UpdateOptions(skip_backup=True),
        UpdateOptions(check_only=True),
        UpdateOptions(dry_run=True),
    ],
)
def test_merge_without_backup_goes_straight_to_fetching(options: UpdateOptions) -> None:
    state = start(options, "main").state

    result = transition(state, GitChecked(clean_status()))

    assert result.state.status == UpdateStatus.FETCHING
    assert result.commands == (FetchUpdates(target_tag=None),)


def test_fetch_carries_target_tag() -> None:
    state = start(UpdateOptions(skip_backup=True, target_tag="v2.0.0"), "main").state

    result = transition(state, GitChecked(clean_status()))

    assert result.commands == (FetchUpdates(target_tag="v2.0.0"),)


def test_branch_other_than_main_records_warning() -> None:
    state = start(UpdateOptions(), "main").state

    result = transition(state, GitChecked(clean_status("feature/theme")))

    assert result.state.branch_warning is not None
    assert "feature/theme" in result.state.branch_warning
    assert "'main'" in result.state.branch_warning


def test_main_branch_has_no_warning() -> None:
    state = start(UpdateOptions(), "main").state

    result = transition(state, GitChecked(clean_status("main")))

    assert result.state.branch_warning is None


# ============================================================================
# backup
# ============================================================================


def test_backup_confirm_runs_full_backup() -> None:
    state = state_in(UpdateStatus.BACKUP_CONFIRM)

    result = transition(state, BackupConfirm())

    assert result.state.status == UpdateStatus.BACKING_UP
    assert result.commands == (RunBackup(full=True),)


def test_backup_skip_fetches_for_merge() -> None:
    state = state_in(UpdateStatus.BACKUP_CONFIRM)

    result = transition(state, BackupSkip())

    assert result.state.status == UpdateStatus.FETCHING
    assert result.state.backup_file is None


@pytest.mark.parametrize("options", [UpdateOptions(rebase=True), UpdateOptions(clean=True)])
def test_backup_skip_is_ignored_when_backup_is_mandatory(options: UpdateOptions) -> None:
    state = state_in(UpdateStatus.BACKUP_CONFIRM, options)

    result = transition(state, BackupSkip())

    assert result.state is state
    assert result.commands == ()


def test_backup_done_records_file_and_fetches() -> None:
    state = state_in(UpdateStatus.BACKING_UP)

    result = transition(state, BackupDone(BACKUP))

    assert result.state.status == UpdateStatus.FETCHING
    assert result.state.backup_file == BACKUP
    assert result.commands == (FetchUpdates(target_tag=None),)


def test_cancel_at_backup_prompt() -> None:
    state = state_in(UpdateStatus.BACKUP_CONFIRM)

    result = transition(state, UpdateCancel())

    assert result.state.status == UpdateStatus.CANCELLED
    assert exit_code(result.state) == 0


_FLAG_COMBINATIONS = [
    UpdateOptions(
        rebase=strategy == "rebase",
        clean=strategy == "clean",
        skip_backup=skip_backup,
        check_only=check_only,
        dry_run=dry_run,
        force=force,
    )
    for strategy, skip_backup, check_only, dry_run, force in itertools.product(
        ("rebase", "clean"), *([(False, True)] * 4)
    )
]


@pytest.mark.parametrize("options", _FLAG_COMBINATIONS)
def test_history_rewrites_never_fetch_without_a_completed_backup(options: UpdateOptions) -> None:
    state = start(options, "main").state
    state = transition(state, GitChecked(clean_status())).state
    assert state.status != UpdateStatus.FETCHING

    # Neither skipping nor an early backup report gets past the prompt
    for action in (BackupSkip(), BackupDone(BACKUP)):
        state = transition(state, action).state
        assert state.status != UpdateStatus.FETCHING

    state = transition(state, BackupConfirm()).state
    assert state.status == UpdateStatus.BACKING_UP
    state = transition(state, BackupDone(BACKUP)).state

    assert state.status == UpdateStatus.FETCHING
    assert state.backup_file == BACKUP


# ============================================================================
# fetching and preview
# ============================================================================


def test_nothing_to_do_is_up_to_date() -> None:
    state = state_in(UpdateStatus.FETCHING)

    result = transition(state, Fetched(make_info(behind=0, ahead=0)))

    assert result.state.status == UpdateStatus.UP_TO_DATE
    assert exit_code(result.state) == 0


def test_missing_upstream_is_up_to_date() -> None:
    state = state_in(UpdateStatus.FETCHING)

    result = transition(state, Fetched(make_info(has_upstream=False)))

    assert result.state.status == UpdateStatus.UP_TO_DATE


def test_new_commits_enter_preview_and_fetch_release_notes() -> None:
    state = state_in(UpdateStatus.FETCHING)
    info = make_info(behind=3, latest="2.1.0")

    result = transition(state, Fetched(info, needs_migration=True))

    assert result.state.status == UpdateStatus.PREVIEW
    assert result.state.update_info == info
    assert result.state.needs_migration
    assert result.commands == (FetchReleaseNotes(version="2.1.0"),)


def test_downgrade_enters_preview_without_release_notes() -> None:
    state = state_in(UpdateStatus.FETCHING)
    info = make_info(behind=0, ahead=2, current="2.1.0", latest="2.0.0", is_downgrade=True)

    result = transition(state, Fetched(info))

    assert result.state.status == UpdateStatus.PREVIEW
    assert result.commands == ()


def test_rebase_onto_older_version_is_an_error() -> None:
    state = state_in(UpdateStatus.FETCHING, UpdateOptions(rebase=True), backup_file=BACKUP)
    info = make_info(behind=0, ahead=2, current="2.1.0", latest="2.0.0", is_downgrade=True)

    result = transition(state, Fetched(info))

    assert result.state.status == UpdateStatus.ERROR
    assert result.state.error is not None
    assert "v2.1.0 → v2.0.0" in result.state.error
    assert "without --rebase" in result.state.error
    assert result.commands == ()


def test_unknown_latest_version_skips_release_notes() -> None:
    state = state_in(UpdateStatus.FETCHING)

    result = transition(state, Fetched(make_info(latest="unknown")))

    assert result.state.status == UpdateStatus.PREVIEW
    assert result.commands == ()


def test_release_notes_are_attached_to_preview() -> None:
    state = state_in(UpdateStatus.PREVIEW, update_info=make_info())
    release = ReleaseInfo(tag_name="v2.1.0", url="https://example.test/v2.1.0", body="## New")

    result = transition(state, ReleaseNotesFetched(release))

    assert result.state.status == UpdateStatus.PREVIEW
    assert result.state.release_info == release


@pytest.mark.parametrize(
    "options", [UpdateOptions(check_only=True), UpdateOptions(dry_run=True)]
)
def test_preview_finished_ends_read_only_runs(options: UpdateOptions) -> None:
    state = state_in(UpdateStatus.PREVIEW, options, update_info=make_info())

    result = transition(state, PreviewFinished())

    assert result.state.status == UpdateStatus.DONE
    assert result.commands == ()


def test_preview_finished_is_ignored_for_real_runs() -> None:
    state = state_in(UpdateStatus.PREVIEW, update_info=make_info())

    result = transition(state, PreviewFinished())

    assert result.state is state


def test_update_confirm_performs_update() -> None:
    info = make_info()
    state = state_in(UpdateStatus.PREVIEW, update_info=info)

    result = transition(state, UpdateConfirm())

    assert result.state.status == UpdateStatus.MERGING
    assert result.commands == (PerformUpdate(info=info),)


@pytest.mark.parametrize(
    "options", [UpdateOptions(check_only=True), UpdateOptions(dry_run=True)]
)
def test_update_confirm_is_ignored_for_read_only_runs(options: UpdateOptions) -> None:
    state = state_in(UpdateStatus.PREVIEW, options, update_info=make_info())

    result = transition(state, UpdateConfirm())

    assert result.state is state
    assert result.commands == ()


def test_cancel_at_preview() -> None:
    state = state_in(UpdateStatus.PREVIEW, update_info=make_info())

    result = transition(state, UpdateCancel())

    assert result.state.status == UpdateStatus.CANCELLED


# ============================================================================
# merging
# ============================================================================


def test_successful_merge_installs_dependencies() -> None:
    state = state_in(UpdateStatus.MERGING, update_info=make_info())
    merge_result = StandardMergeResult(success=True, auto_resolved_files=("config/site.yaml",))

    result = transition(state, Merged(merge_result))

    assert result.state.status == UpdateStatus.INSTALLING
    assert result.state.merge_result == merge_result
    assert result.commands == (InstallDependencies(),)


def test_conflicting_merge_stops_in_conflict() -> None:
    state = state_in(UpdateStatus.MERGING, update_info=make_info())
    merge_result = StandardMergeResult(
        success=False, has_conflict=True, conflict_files=("src/layouts/Base.astro",)
    )

    result = transition(state, Merged(merge_result))

    assert result.state.status == UpdateStatus.CONFLICT
    assert result.commands == ()
    assert is_terminal(result.state)
    assert exit_code(result.state) == 1


def test_failed_merge_is_an_error() -> None:
    state = state_in(UpdateStatus.MERGING, update_info=make_info())

    result = transition(state, Merged(StandardMergeResult(success=False, error="boom")))

    assert result.state.status == UpdateStatus.ERROR
    assert result.state.error == "boom"


def test_clean_replacement_restores_user_content() -> None:
    state = state_in(
        UpdateStatus.MERGING,
        UpdateOptions(clean=True),
        update_info=make_info(),
        backup_file=BACKUP,
    )

    result = transition(state, Merged(CleanModeResult(success=True, pre_clean_sha="abc123")))

    assert result.state.status == UpdateStatus.CLEAN_RESTORING
    assert result.commands == (RestoreUserContent(backup_file=BACKUP, pre_clean_sha="abc123"),)


def test_clean_replacement_without_backup_is_an_error_naming_the_reset() -> None:
    state = state_in(UpdateStatus.MERGING, UpdateOptions(clean=True), update_info=make_info())

    result = transition(state, Merged(CleanModeResult(success=True, pre_clean_sha="abc123")))

    assert result.state.status == UpdateStatus.ERROR
    assert result.state.error is not None
    assert "git reset --hard abc123" in result.state.error


def test_clean_restored_installs_dependencies() -> None:
    state = state_in(UpdateStatus.CLEAN_RESTORING, UpdateOptions(clean=True))

    result = transition(state, CleanRestored(("src/content/blog", "config/site.yaml")))

    assert result.state.status == UpdateStatus.INSTALLING
    assert result.state.restored_files == ("src/content/blog", "config/site.yaml")
    assert result.commands == (InstallDependencies(),)


def test_installed_is_done() -> None:
    state = state_in(UpdateStatus.INSTALLING)

    result = transition(state, Installed())

    assert result.state.status == UpdateStatus.DONE
    assert exit_code(result.state) == 0


# ============================================================================
# conflict
# ============================================================================


@pytest.mark.parametrize("is_rebase", [False, True])
def test_abort_requested_aborts_the_operation_in_progress(is_rebase: bool) -> None:
    merge_result = StandardMergeResult(
        success=False, has_conflict=True, conflict_files=("a",), is_rebase_conflict=is_rebase
    )
    state = state_in(UpdateStatus.CONFLICT, merge_result=merge_result)

    result = transition(state, AbortRequested())

    assert result.state.status == UpdateStatus.CONFLICT
    assert result.commands == (AbortInProgress(is_rebase=is_rebase),)


def test_merge_aborted_cancels() -> None:
    state = state_in(UpdateStatus.CONFLICT)

    result = transition(state, MergeAborted())

    assert result.state.status == UpdateStatus.CANCELLED


def test_error_is_accepted_in_conflict() -> None:
    state = state_in(UpdateStatus.CONFLICT)

    result = transition(state, Error("Could not abort the merge"))

    assert result.state.status == UpdateStatus.ERROR
    assert result.state.error == "Could not abort the merge"


# ============================================================================
# errors and ignored actions
# ============================================================================


@pytest.mark.parametrize(
    "status",
    [
        UpdateStatus.CHECKING,
        UpdateStatus.BACKUP_CONFIRM,
        UpdateStatus.BACKING_UP,
        UpdateStatus.FETCHING,
        UpdateStatus.PREVIEW,
        UpdateStatus.MERGING,
        UpdateStatus.CLEAN_RESTORING,
        UpdateStatus.INSTALLING,
    ],
)
def test_error_from_any_active_status(status: UpdateStatus) -> None:
    state = state_in(status)

    result = transition(state, Error("network down"))

    assert result.state.status == UpdateStatus.ERROR
    assert result.state.error == "network down"
    assert result.commands == ()


@pytest.mark.parametrize("status", sorted(FINAL_STATUSES, key=lambda s: s.value))
def test_final_statuses_ignore_everything(status: UpdateStatus) -> None:
    state = state_in(status, error="original")

    for action in (Error("late"), UpdateConfirm(), Installed(), BackupConfirm()):
        result = transition(state, action)
        assert result.state is state
        assert result.commands == ()


def test_unexpected_action_leaves_state_unchanged() -> None:
    state = state_in(UpdateStatus.CHECKING)

    result = transition(state, Installed())

    assert result.state is state
    assert result.commands == ()


# ============================================================================
# auto_action and exit codes
# ============================================================================


def test_auto_action_finishes_check_only_preview() -> None:
    state = state_in(UpdateStatus.PREVIEW, UpdateOptions(check_only=True, force=True))

    assert auto_action(state) == PreviewFinished()


def test_auto_action_confirms_forced_preview() -> None:
    state = state_in(UpdateStatus.PREVIEW, UpdateOptions(force=True))

    assert auto_action(state) == UpdateConfirm()


def test_auto_action_confirms_forced_backup_prompt() -> None:
    state = state_in(UpdateStatus.BACKUP_CONFIRM, UpdateOptions(force=True))

    assert auto_action(state) == BackupConfirm()


def test_auto_action_waits_for_the_user_otherwise() -> None:
    assert auto_action(state_in(UpdateStatus.PREVIEW)) is None
    assert auto_action(state_in(UpdateStatus.BACKUP_CONFIRM)) is None
    assert auto_action(state_in(UpdateStatus.CONFLICT, UpdateOptions(force=True))) is None


@pytest.mark.parametrize(
    ("status", "code"),
    [
        (UpdateStatus.DONE, 0),
        (UpdateStatus.UP_TO_DATE, 0),
        (UpdateStatus.CANCELLED, 0),
        (UpdateStatus.ERROR, 1),
        (UpdateStatus.DIRTY_WARNING, 1),
        (UpdateStatus.CONFLICT, 1),
    ],
)
def test_exit_codes(status: UpdateStatus, code: int) -> None:
    assert exit_code(UpdateState(status=status, options=UpdateOptions())) == code


# ============================================================================
# Scenarios
# ============================================================================


def test_check_only_scenario_never_merges_or_backs_up() -> None:
    options = UpdateOptions(check_only=True)
    result = start(options, "main")
    statuses = [result.state.status]
    commands = list(result.commands)

    for action in (GitChecked(clean_status()), Fetched(make_info(behind=3))):
        result = transition(result.state, action)
        statuses.append(result.state.status)
        commands.extend(result.commands)

    finishing = auto_action(result.state)
    assert finishing == PreviewFinished()
    result = transition(result.state, finishing)
    statuses.append(result.state.status)

    assert statuses == [
        UpdateStatus.CHECKING,
        UpdateStatus.FETCHING,
        UpdateStatus.PREVIEW,
        UpdateStatus.DONE,
    ]
    assert not any(isinstance(c, (RunBackup, PerformUpdate)) for c in commands)


def test_dirty_rebase_scenario_stops_before_backup() -> None:
    options = UpdateOptions(rebase=True, skip_backup=True)
    state = start(options, "main").state

    result = transition(state, GitChecked(dirty_status()))

    assert result.state.status == UpdateStatus.DIRTY_WARNING
    assert result.commands == ()
