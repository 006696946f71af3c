"""Terminal presentation of the update workflow.

ClickUpdatePresenter renders every settled state as styled text on stderr and
asks its questions with click prompts. Nothing here changes the repository;
all decisions go back to the runner as answers.
"""

import click

from koharu.cli.output import user_output
from koharu.constants import UNKNOWN_VERSION
from koharu.core.git.types import CommitInfo
from koharu.core.releases.parsing import build_release_url, extract_release_summary
from koharu.core.update.presenter import BackupChoice, UpdatePresenter
from koharu.core.update.types import (
    AbortInProgress,
    CheckGitStatus,
    Command,
    FetchReleaseNotes,
    FetchUpdates,
    InstallDependencies,
    PerformUpdate,
    RestoreUserContent,
    RunBackup,
    UpdateInfo,
    UpdateOptions,
    UpdateState,
    UpdateStatus,
)

MAX_LISTED_COMMITS = 10
MAX_LISTED_FILES = 5


def mode_label(options: UpdateOptions, is_downgrade: bool) -> str:
    """Name of the operation the options select ("Rebase", "Downgrade", ...)."""
    if options.rebase:
        return "Rebase"
    if options.clean:
        return "Clean Mode Update"
    if is_downgrade:
        return "Downgrade"
    return "Update"


def confirm_message(options: UpdateOptions, latest_version: str, is_downgrade: bool) -> str:
    """Question asked before the update is performed."""
    target = f"version v{latest_version}" if options.target_tag else "the latest version"
    if options.rebase:
        rebase_target = target if options.target_tag else "the latest upstream"
        return f"Confirm rebase to {rebase_target}? (History will be rewritten)"
    if options.clean:
        return f"Confirm clean mode update to {target}?"
    if is_downgrade:
        return f"Confirm downgrade to version v{latest_version}?"
    return f"Confirm update to {target}?"


def _dim(text: str) -> None:
    user_output(click.style(text, dim=True))


def _warn(text: str, bold: bool = False) -> None:
    user_output(click.style(text, fg="yellow", bold=bold))


def _file_list(files: tuple[str, ...], fg: str | None = None) -> None:
    for path in files:
        if fg is None:
            _dim(f"  - {path}")
        else:
            user_output(click.style(f"  - {path}", fg=fg))


def _commit_lines(commits: tuple[CommitInfo, ...], marker: str, fg: str) -> None:
    for commit in commits[:MAX_LISTED_COMMITS]:
        prefix = f"  {marker} {commit.hash}" if marker else f"  {commit.hash}"
        user_output(
            click.style(prefix, fg=fg)
            + f" {commit.message}"
            + click.style(f" ({commit.date})", dim=True)
        )
    if len(commits) > MAX_LISTED_COMMITS:
        _dim(f"  ... and {len(commits) - MAX_LISTED_COMMITS} more commits")


class ClickUpdatePresenter(UpdatePresenter):
    """Presenter writing to stderr and reading answers from stdin."""

    def show_progress(self, state: UpdateState, command: Command) -> None:
        match command:
            case CheckGitStatus():
                label = "Checking Git status..."
            case RunBackup():
                label = "Backing up..."
            case FetchUpdates():
                label = "Fetching updates..."
            case FetchReleaseNotes():
                label = "Fetching release notes..."
            case PerformUpdate(info=info):
                label = f"Executing {mode_label(state.options, info.is_downgrade)}..."
            case RestoreUserContent():
                label = "Restoring user content..."
            case InstallDependencies():
                label = "Installing dependencies..."
            case AbortInProgress(is_rebase=is_rebase):
                label = "Aborting rebase..." if is_rebase else "Aborting merge..."
            case _:
                label = f"Running {type(command).__name__}..."
        user_output(click.style(label, fg="cyan"))

    def render(self, state: UpdateState) -> None:
        match state.status:
            case UpdateStatus.DIRTY_WARNING:
                self._render_dirty(state)
            case UpdateStatus.BACKUP_CONFIRM:
                self._render_backup_confirm(state)
            case UpdateStatus.PREVIEW:
                self._render_preview(state)
            case UpdateStatus.DONE:
                if state.options.check_only or state.options.dry_run:
                    return
                self._render_done(state)
            case UpdateStatus.UP_TO_DATE:
                self._render_up_to_date(state)
            case UpdateStatus.CONFLICT:
                self._render_conflict(state)
            case UpdateStatus.ERROR:
                user_output()
                user_output(click.style("Update failed", fg="red", bold=True))
                user_output(click.style(state.error or "Unknown error", fg="red"))
            case UpdateStatus.CANCELLED:
                user_output()
                _dim("Update cancelled.")

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    def choose_backup(self, state: UpdateState) -> BackupChoice:
        if state.options.requires_backup:
            if click.confirm("Confirm to proceed with the backup?", default=True, err=True):
                return "backup"
            return "cancel"

        user_output("  backup - perform backup then update")
        user_output("  skip   - skip backup and update directly")
        user_output("  cancel - exit the update process")
        choice = click.prompt(
            "Choose",
            type=click.Choice(["backup", "skip", "cancel"]),
            default="backup",
            err=True,
        )
        if choice == "skip":
            return "skip"
        if choice == "cancel":
            return "cancel"
        return "backup"

    def confirm_update(self, state: UpdateState) -> bool:
        info = state.update_info
        if info is None:
            return False
        message = confirm_message(state.options, info.latest_version, info.is_downgrade)
        return click.confirm(message, default=False, err=True)

    def confirm_abort(self, state: UpdateState) -> bool:
        is_rebase = state.merge_result is not None and state.merge_result.is_rebase_conflict
        question = "Abort rebase?" if is_rebase else "Abort merge?"
        return click.confirm(question, default=False, err=True)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _render_dirty(self, state: UpdateState) -> None:
        files = state.git_status.uncommitted_files if state.git_status else ()
        user_output()
        _warn("Workspace has uncommitted changes", bold=True)
        user_output()
        _file_list(files[:MAX_LISTED_FILES])
        if len(files) > MAX_LISTED_FILES:
            _dim(f"  ... and {len(files) - MAX_LISTED_FILES} more files")
        user_output()
        user_output("Please commit or stash your changes first:")
        _dim('  git add . && git commit -m "save changes"')
        _dim("  # or")
        _dim("  git stash")
        user_output()
        _dim("Tip: Use --force to skip this check (not recommended)")

    def _render_backup_confirm(self, state: UpdateState) -> None:
        options = state.options
        user_output()
        if options.requires_backup:
            mode = "Rebase" if options.rebase else "Clean"
            _warn(f"⚠ {mode} mode requires a mandatory backup", bold=True)
            if options.skip_backup:
                _dim("  (--skip-backup has been ignored)")
            return
        user_output("Do you want to back up your current content before updating?")
        _dim(
            "A backup will save important files like blog posts and configurations, "
            "which can be restored if the update fails."
        )
        _dim("Tip: Use --skip-backup to bypass this prompt")

    def _render_version_line(self, state: UpdateState, info: UpdateInfo) -> None:
        current = click.style(f"v{info.current_version}", fg="cyan")
        if info.is_downgrade:
            latest = click.style(f"v{info.latest_version}", fg="yellow")
            heading = "Downgrading to version"
        elif state.options.target_tag:
            latest = click.style(f"v{info.latest_version}", fg="green")
            heading = "Updating to specified version"
        else:
            latest = click.style(f"v{info.latest_version}", fg="green")
            heading = "New version found"
        user_output(click.style(f"{heading}: ", bold=True) + f"{current} → {latest}")

    def _render_release_notes(self, state: UpdateState, info: UpdateInfo) -> None:
        release = state.release_info
        if release is not None and release.body:
            user_output(click.style("Release notes:", fg="magenta", bold=True))
            for line in extract_release_summary(release.body):
                _dim(f"  {line}")
        else:
            _dim("(Could not fetch detailed release notes)")
        if info.latest_version != UNKNOWN_VERSION:
            url = release.url if release is not None else build_release_url(info.latest_version)
            user_output("View full notes: " + click.style(url, fg="blue", underline=True))

    def _render_dry_run_plan(self, state: UpdateState, info: UpdateInfo) -> None:
        options = state.options
        if options.rebase:
            user_output()
            user_output("If rebase is executed, it will:")
            _dim("  • Replay local commits on top of the target reference")
            _dim("  • Rewrite commit history (commit hashes will change)")
            _dim("  • Require a backup first")
            if info.local_commits:
                user_output()
                user_output(
                    click.style(
                        f"Local commits to be rebased ({len(info.local_commits)}):", bold=True
                    )
                )
                _commit_lines(info.local_commits, "", "cyan")
        if options.clean:
            user_output()
            user_output("If clean mode is executed, it will:")
            _dim("  • Replace all theme files with the latest from upstream")
            _dim("  • Restore user content (blog posts, config, etc.) from backup")
            _dim("  • Be zero-conflict, ideal for first-time migration")

    def _render_preview(self, state: UpdateState) -> None:
        info = state.update_info
        if info is None:
            return
        options = state.options
        user_output()

        if options.rebase:
            rebase_warning = "⚠ REBASE MODE - History will be rewritten!"
            user_output(click.style(rebase_warning, fg="red", bold=True))
        if state.backup_file is not None:
            user_output(click.style(f"  + Backup complete: {state.backup_file.name}", fg="green"))
        if info.is_downgrade and not options.rebase:
            _warn(
                "⚠ This is a downgrade operation and will revert to an older version.", bold=True
            )
            _warn(
                "  Downgrading will overwrite all theme files. "
                "Please ensure your custom content is backed up."
            )
            if state.backup_file is None:
                user_output(
                    click.style(
                        "  ⚠ You have not performed a backup! "
                        "It is highly recommended to cancel and perform a backup first.",
                        fg="red",
                    )
                )
        if state.branch_warning:
            _warn(f"⚠ {state.branch_warning}")

        self._render_version_line(state, info)
        user_output()
        if not info.is_downgrade:
            self._render_release_notes(state, info)
            user_output()

        if info.is_downgrade:
            user_output(click.style(f"Will remove {info.ahead_count} commits:", bold=True))
            _commit_lines(info.commits, "-", "red")
        else:
            user_output(click.style(f"Found {info.behind_count} new commits:", bold=True))
            _commit_lines(info.commits, "+", "yellow")

        if not info.is_downgrade and info.ahead_count > 0:
            user_output()
            _warn(f"Tip: Local is {info.ahead_count} commits ahead of the upstream template.")

        if state.needs_migration and not options.rebase and not options.clean:
            user_output()
            _warn(
                "⚠ Detected first-time migration from squash merge. "
                "It's recommended to use --clean mode for a zero-conflict experience."
            )

        user_output()
        if options.dry_run:
            _dim("This is a dry-run. No actual operations were performed.")
            self._render_dry_run_plan(state, info)
            return
        if options.check_only:
            kind = "downgrade" if info.is_downgrade else "update"
            _dim(f"This is check-only mode. No {kind} was performed.")
            if info.is_downgrade:
                user_output()
                _warn("Tip: Please back up your blog content before downgrading.")
                _dim("  koharu backup # Perform backup")
            return
        if options.force:
            return

        if info.is_downgrade and state.backup_file is None and not options.rebase:
            user_output(
                click.style(
                    "⚠ WARNING: No backup found! You will need to manually restore "
                    "your blog content after downgrading.",
                    fg="red",
                    bold=True,
                )
            )
        if options.clean:
            _dim("  Will use clean mode: replace all theme files and restore user content.")
        elif not options.rebase and not info.is_downgrade:
            _dim("  Will use merge to combine upstream updates.")

    def _render_done(self, state: UpdateState) -> None:
        info = state.update_info
        options = state.options
        is_downgrade = info is not None and info.is_downgrade
        user_output()
        user_output(
            click.style(f"{mode_label(options, is_downgrade)} complete", fg="green", bold=True)
        )
        if info is not None and is_downgrade and not options.rebase:
            user_output(
                "Downgraded to version: " + click.style(f"v{info.latest_version}", fg="cyan")
            )

        if options.clean:
            _dim("All theme files have been replaced and user content has been restored.")
            if state.restored_files:
                user_output()
                user_output(click.style("Restored user content:", fg="cyan"))
                _file_list(state.restored_files)

        result = state.merge_result
        if result is not None and result.auto_resolved_files:
            user_output()
            user_output(
                click.style(
                    "Conflicts for the following user content files were automatically "
                    "resolved to keep the local version:",
                    fg="cyan",
                )
            )
            _file_list(result.auto_resolved_files)

        if state.backup_file is not None:
            user_output("Backup file: " + click.style(state.backup_file.name, fg="cyan"))

        if options.rebase:
            user_output()
            _warn("⚠ Your commit history has been synchronized with upstream.", bold=True)
            _warn("  To recover, execute:")
            user_output(click.style("  koharu restore --latest", fg="cyan"))

        if (
            info is not None
            and not is_downgrade
            and not options.rebase
            and info.latest_version != UNKNOWN_VERSION
        ):
            user_output()
            url = build_release_url(info.latest_version)
            user_output("View release notes: " + click.style(url, fg="blue", underline=True))

        if is_downgrade and not options.rebase:
            user_output()
            _warn("⚠ Important: Please restore your blog content immediately!", bold=True)
            if state.backup_file is not None:
                user_output("  Execute the following command to restore the backup:")
                user_output(click.style("  koharu restore --latest", fg="cyan"))
            else:
                user_output(
                    click.style(
                        "  You did not perform a backup. Please manually restore "
                        "src/content/blog and config/site.yaml.",
                        fg="red",
                    )
                )

        user_output()
        _dim("Next steps:")
        if (is_downgrade or options.rebase) and state.backup_file is not None:
            _dim("  koharu restore --latest # Restore backup")
        _dim("  pnpm dev # Start development server to test")

    def _render_up_to_date(self, state: UpdateState) -> None:
        info = state.update_info
        user_output()
        if info is not None and not info.has_upstream:
            _warn(f"Could not find {info.target_ref}; nothing to update from.", bold=True)
            return
        heading = "Already at this version" if state.options.target_tag else "Already up to date"
        user_output(click.style(heading, fg="green", bold=True))
        if info is not None:
            user_output("Current version: " + click.style(f"v{info.current_version}", fg="cyan"))

    def _render_conflict(self, state: UpdateState) -> None:
        result = state.merge_result
        if result is None:
            return
        is_rebase = result.is_rebase_conflict
        user_output()
        heading = "Rebase conflict detected" if is_rebase else "Merge conflict detected"
        _warn(heading, bold=True)

        if result.auto_resolved_files:
            user_output()
            user_output(
                click.style(
                    "The following user content files have been automatically kept "
                    "(using local version):",
                    fg="cyan",
                )
            )
            _file_list(result.auto_resolved_files)

        user_output()
        user_output("Files with conflicts that need manual resolution:")
        _file_list(result.conflict_files, fg="red")

        user_output()
        user_output("You can either:")
        if is_rebase:
            _dim("  1. Manually resolve conflicts, then run: git add . && git rebase --continue")
            _dim("  2. Abort the rebase to restore the state before the update.")
        else:
            _dim("  1. Manually resolve conflicts, then run: git add . && git commit")
            _dim("  2. Abort the merge to restore the state before the update.")

        if state.backup_file is not None:
            user_output()
            user_output("Backup file: " + click.style(state.backup_file.name, fg="cyan"))
