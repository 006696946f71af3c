"""Execution of the commands emitted by the update state machine.

Each command runs against the integrations in KoharuContext and is turned
into the Action the machine consumes next. Integration failures become
Error actions with a next step for the user; nothing escapes as an
exception during the automated part of the workflow.
"""

import logging
import shlex
import tarfile
from pathlib import Path

import httpx

from koharu.core.backup.types import BackupFormatError
from koharu.core.context import KoharuContext
from koharu.core.update.operations import fetch_update_info, perform_update, restore_user_content
from koharu.core.update.types import (
    AbortInProgress,
    Action,
    BackupDone,
    CheckGitStatus,
    CleanRestored,
    Command,
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
    UpdateState,
)

logger = logging.getLogger(__name__)

# Failures integrations are documented to raise
INTEGRATION_ERRORS = (RuntimeError, OSError, tarfile.TarError, BackupFormatError)


def _require_repo(ctx: KoharuContext) -> Path:
    if ctx.repo_root is None:
        raise RuntimeError("Not inside a git repository")
    return ctx.repo_root


def describe_failure(
    ctx: KoharuContext, state: UpdateState, command: Command, error: Exception
) -> str:
    """Turn an integration failure into a message with an actionable next step."""
    match command:
        case CheckGitStatus():
            return f"Could not read the git status:\n{error}"
        case RunBackup():
            return f"Backup failed: {error}\nNothing was changed. Fix the problem above and retry."
        case FetchUpdates():
            return (
                f"Fetching updates failed:\n{error}\n"
                f"Check your network connection and the '{ctx.config.upstream_remote}' "
                "remote (git remote -v)."
            )
        case PerformUpdate():
            abort = "git rebase --abort" if state.options.rebase else "git merge --abort"
            return f"Update failed:\n{error}\nIf git is mid-operation, undo it with: {abort}"
        case InstallDependencies():
            return (
                f"The theme was updated but installing dependencies failed:\n{error}\n"
                f"Run: {shlex.join(ctx.config.install_command)}"
            )
        case _:
            return str(error)


def _execute(ctx: KoharuContext, state: UpdateState, command: Command) -> Action | None:
    repo_root = _require_repo(ctx)

    match command:
        case CheckGitStatus():
            return GitChecked(ctx.git.get_status(repo_root))

        case RunBackup(full=full):
            output = ctx.backups.run_backup(full)
            if output.failed:
                details = "; ".join(f"{r.item.src}: {r.error}" for r in output.failed)
                return Error(f"Backup incomplete ({details}). Nothing was changed.")
            logger.debug("Backup written to %s (%d bytes)", output.backup_file, output.file_size)
            return BackupDone(output.backup_file)

        case FetchUpdates(target_tag=target_tag):
            info, needs_migration = fetch_update_info(ctx.git, repo_root, ctx.config, target_tag)
            return Fetched(info, needs_migration=needs_migration)

        case FetchReleaseNotes(version=version):
            try:
                release = ctx.releases.fetch_release_info(version)
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.debug("No release notes for %s: %s", version, e)
                return None
            return ReleaseNotesFetched(release)

        case PerformUpdate(info=info):
            return Merged(perform_update(ctx.git, repo_root, info, state.options))

        case RestoreUserContent(backup_file=backup_file, pre_clean_sha=pre_clean_sha):
            restored = restore_user_content(
                ctx.git, ctx.backups, repo_root, backup_file, pre_clean_sha
            )
            return CleanRestored(restored)

        case InstallDependencies():
            ctx.shell.run_command(ctx.config.install_command, repo_root)
            return Installed()

        case AbortInProgress(is_rebase=is_rebase):
            if is_rebase:
                if ctx.git.abort_rebase(repo_root):
                    return MergeAborted()
                return Error("Could not abort the rebase. Run git rebase --abort manually.")
            if ctx.git.abort_merge(repo_root):
                return MergeAborted()
            return Error("Could not abort the merge. Run git merge --abort manually.")

    raise AssertionError(f"Unhandled command: {command!r}")


def execute_command(ctx: KoharuContext, state: UpdateState, command: Command) -> Action | None:
    """Run one command and report its outcome as an action.

    Returns:
        The resulting action, or None when the command has no outcome to
        report (release notes that could not be fetched)
    """
    logger.debug("Executing %s", command)
    try:
        return _execute(ctx, state, command)
    except INTEGRATION_ERRORS as e:
        logger.debug("%s failed: %s", type(command).__name__, e)
        return Error(describe_failure(ctx, state, command, e))
