"""Pure transition logic of the theme update workflow.

transition() never performs I/O. It returns the next state plus the
Commands the runner must execute; the runner reports each command's outcome
back as an Action. Because the runner executes one command at a time, a
backup always finishes before PerformUpdate can be emitted.

    checking -> dirty-warning
    checking -> backup-confirm -> backing-up -> fetching
    checking -> fetching            (backup skipped; never for rebase/clean)
    fetching -> up-to-date | preview | error (rebase onto an older version)
    preview  -> done (check/dry-run) | cancelled | merging
    merging  -> conflict | installing | clean-restoring -> installing -> done
"""

import logging
from dataclasses import replace

from koharu.constants import UNKNOWN_VERSION
from koharu.core.git.types import CleanModeResult
from koharu.core.update.types import (
    AbortInProgress,
    AbortRequested,
    Action,
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
    Transition,
    UpdateCancel,
    UpdateConfirm,
    UpdateInfo,
    UpdateOptions,
    UpdateState,
    UpdateStatus,
)

logger = logging.getLogger(__name__)

# Statuses in which the workflow has ended and accepts no further action.
FINAL_STATUSES = frozenset(
    {
        UpdateStatus.DONE,
        UpdateStatus.UP_TO_DATE,
        UpdateStatus.ERROR,
        UpdateStatus.CANCELLED,
        UpdateStatus.DIRTY_WARNING,
    }
)

_EXIT_CODES = {
    UpdateStatus.DONE: 0,
    UpdateStatus.UP_TO_DATE: 0,
    UpdateStatus.CANCELLED: 0,
    UpdateStatus.ERROR: 1,
    UpdateStatus.DIRTY_WARNING: 1,
    UpdateStatus.CONFLICT: 1,
}


def start(options: UpdateOptions, main_branch: str) -> Transition:
    """Create the initial state and ask for the working tree status."""
    state = UpdateState(status=UpdateStatus.CHECKING, options=options, main_branch=main_branch)
    return Transition(state, (CheckGitStatus(),))


def is_terminal(state: UpdateState) -> bool:
    """Check whether the automated part of the workflow is over.

    A conflict is terminal for the automated flow; it still accepts the
    user's abort.
    """
    return state.status in FINAL_STATUSES or state.status == UpdateStatus.CONFLICT


def exit_code(state: UpdateState) -> int:
    """Process exit status for the state the workflow ended in."""
    return _EXIT_CODES.get(state.status, 1)


def rebase_downgrade_message(info: UpdateInfo) -> str:
    """Error for --rebase with an older --tag.

    The older tag is already part of HEAD's history, so a rebase onto it
    would change nothing.
    """
    return (
        f"Cannot rebase onto an older version (v{info.current_version} → "
        f"v{info.latest_version}).\n"
        "Run again without --rebase to downgrade with a hard reset, "
        "or with --clean to replace the theme files."
    )


def _skips_backup(options: UpdateOptions) -> bool:
    if options.requires_backup:
        return False
    return options.skip_backup or options.check_only or options.dry_run


def _enter_fetching(state: UpdateState) -> Transition:
    fetching = replace(state, status=UpdateStatus.FETCHING)
    return Transition(fetching, (FetchUpdates(target_tag=state.options.target_tag),))


def _ignore(state: UpdateState, action: Action) -> Transition:
    logger.debug("Ignoring %s in status %s", type(action).__name__, state.status.value)
    return Transition(state)


def _on_git_checked(state: UpdateState, action: GitChecked) -> Transition:
    git_status = action.status
    branch_warning = None
    if git_status.current_branch != state.main_branch:
        branch_warning = (
            f"You are on branch '{git_status.current_branch}', not '{state.main_branch}'. "
            f"The update will be applied to '{git_status.current_branch}'."
        )
    checked = replace(state, git_status=git_status, branch_warning=branch_warning)

    if not git_status.is_clean and not state.options.force:
        return Transition(replace(checked, status=UpdateStatus.DIRTY_WARNING))
    if _skips_backup(state.options):
        return _enter_fetching(checked)
    return Transition(replace(checked, status=UpdateStatus.BACKUP_CONFIRM))


def _on_fetched(state: UpdateState, action: Fetched) -> Transition:
    info = action.info
    nothing_to_do = info.behind_count == 0 and info.ahead_count == 0 and not info.is_downgrade
    if not info.has_upstream or nothing_to_do:
        return Transition(replace(state, status=UpdateStatus.UP_TO_DATE, update_info=info))

    if info.is_downgrade and state.options.rebase:
        return Transition(
            replace(
                state,
                status=UpdateStatus.ERROR,
                update_info=info,
                error=rebase_downgrade_message(info),
            )
        )

    preview = replace(
        state,
        status=UpdateStatus.PREVIEW,
        update_info=info,
        needs_migration=action.needs_migration,
    )
    if info.is_downgrade or info.latest_version == UNKNOWN_VERSION:
        return Transition(preview)
    return Transition(preview, (FetchReleaseNotes(version=info.latest_version),))


def _on_update_confirm(state: UpdateState, action: UpdateConfirm) -> Transition:
    options = state.options
    if options.check_only or options.dry_run or state.update_info is None:
        return _ignore(state, action)
    merging = replace(state, status=UpdateStatus.MERGING)
    return Transition(merging, (PerformUpdate(info=state.update_info),))


def _on_merged(state: UpdateState, action: Merged) -> Transition:
    result = action.result
    recorded = replace(state, merge_result=result)

    if result.has_conflict:
        return Transition(replace(recorded, status=UpdateStatus.CONFLICT))
    if not result.success:
        return Transition(
            replace(recorded, status=UpdateStatus.ERROR, error=result.error or "Update failed")
        )
    if isinstance(result, CleanModeResult):
        if state.backup_file is None:
            return Transition(
                replace(
                    recorded,
                    status=UpdateStatus.ERROR,
                    error=(
                        "Clean mode needs a backup to restore user content from. "
                        f"Run: git reset --hard {result.pre_clean_sha}"
                    ),
                )
            )
        restoring = replace(recorded, status=UpdateStatus.CLEAN_RESTORING)
        command = RestoreUserContent(
            backup_file=state.backup_file, pre_clean_sha=result.pre_clean_sha
        )
        return Transition(restoring, (command,))
    return Transition(replace(recorded, status=UpdateStatus.INSTALLING), (InstallDependencies(),))


def transition(state: UpdateState, action: Action) -> Transition:
    """Apply one action to the workflow state.

    An action the current status does not accept leaves the state unchanged
    and emits no commands. Error is accepted from every status that has not
    finished, conflict included.
    """
    if isinstance(action, Error):
        if state.status in FINAL_STATUSES:
            return _ignore(state, action)
        return Transition(replace(state, status=UpdateStatus.ERROR, error=action.message))

    match (state.status, action):
        case (UpdateStatus.CHECKING, GitChecked()):
            return _on_git_checked(state, action)

        case (UpdateStatus.BACKUP_CONFIRM, BackupConfirm()):
            backing_up = replace(state, status=UpdateStatus.BACKING_UP)
            return Transition(backing_up, (RunBackup(full=True),))

        case (UpdateStatus.BACKUP_CONFIRM, BackupSkip()):
            if state.options.requires_backup:
                return _ignore(state, action)
            return _enter_fetching(state)

        case (UpdateStatus.BACKING_UP, BackupDone(backup_file=backup_file)):
            return _enter_fetching(replace(state, backup_file=backup_file))

        case (UpdateStatus.FETCHING, Fetched()):
            return _on_fetched(state, action)

        case (UpdateStatus.PREVIEW, ReleaseNotesFetched(release=release)):
            return Transition(replace(state, release_info=release))

        case (UpdateStatus.PREVIEW, UpdateConfirm()):
            return _on_update_confirm(state, action)

        case (UpdateStatus.PREVIEW, PreviewFinished()):
            if not (state.options.check_only or state.options.dry_run):
                return _ignore(state, action)
            return Transition(replace(state, status=UpdateStatus.DONE))

        case (UpdateStatus.BACKUP_CONFIRM | UpdateStatus.PREVIEW, UpdateCancel()):
            return Transition(replace(state, status=UpdateStatus.CANCELLED))

        case (UpdateStatus.MERGING, Merged()):
            return _on_merged(state, action)

        case (UpdateStatus.CLEAN_RESTORING, CleanRestored(restored_files=restored_files)):
            installing = replace(
                state, status=UpdateStatus.INSTALLING, restored_files=restored_files
            )
            return Transition(installing, (InstallDependencies(),))

        case (UpdateStatus.INSTALLING, Installed()):
            return Transition(replace(state, status=UpdateStatus.DONE))

        case (UpdateStatus.CONFLICT, AbortRequested()):
            is_rebase = state.merge_result is not None and state.merge_result.is_rebase_conflict
            return Transition(state, (AbortInProgress(is_rebase=is_rebase),))

        case (UpdateStatus.CONFLICT, MergeAborted()):
            return Transition(replace(state, status=UpdateStatus.CANCELLED))

        case _:
            return _ignore(state, action)


def auto_action(state: UpdateState) -> Action | None:
    """Action the workflow takes on its own, without asking the user.

    Check-only and dry-run runs finish at the preview. Forced runs confirm
    the update and the backup prompt; force never skips a backup.
    """
    options = state.options
    if state.status == UpdateStatus.PREVIEW:
        if options.check_only or options.dry_run:
            return PreviewFinished()
        if options.force:
            return UpdateConfirm()
    if state.status == UpdateStatus.BACKUP_CONFIRM and options.force:
        return BackupConfirm()
    return None
