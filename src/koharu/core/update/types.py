"""Data model of the theme update workflow.

The state machine consumes Actions (results of I/O and user choices) and
emits Commands (descriptions of I/O for the runner to perform). Every value
here is immutable; a transition replaces UpdateState wholesale.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from koharu.constants import MAIN_BRANCH
from koharu.core.git.types import CommitInfo, GitStatusInfo, MergeResult
from koharu.core.releases.types import ReleaseInfo


@dataclass(frozen=True)
class UpdateOptions:
    """Command-line options for one update run.

    rebase and clean are mutually exclusive strategies. Either one makes a
    backup mandatory, whatever skip_backup says.
    """

    check_only: bool = False
    skip_backup: bool = False
    force: bool = False
    target_tag: str | None = None
    rebase: bool = False
    dry_run: bool = False
    clean: bool = False

    def __post_init__(self) -> None:
        if self.rebase and self.clean:
            raise ValueError("--rebase and --clean cannot be used together")

    @property
    def requires_backup(self) -> bool:
        return self.rebase or self.clean

    @property
    def strategy(self) -> str:
        if self.rebase:
            return "rebase"
        if self.clean:
            return "clean"
        return "merge"


@dataclass(frozen=True)
class UpdateInfo:
    """Result of comparing HEAD with the upstream target.

    Attributes:
        has_upstream: The upstream remote exists and its target resolved
        behind_count: Commits the target has that HEAD lacks
        ahead_count: Commits HEAD has that the target lacks
        commits: New upstream commits, or the commits a downgrade removes
        local_commits: Local-only commits a rebase would replay
        current_version: Version of HEAD, or "unknown"
        latest_version: Version of the target, or "unknown"
        is_downgrade: latest_version orders strictly before current_version
        target_ref: Git ref the update moves to (tag or remote branch)
    """

    has_upstream: bool
    behind_count: int
    ahead_count: int
    commits: tuple[CommitInfo, ...]
    local_commits: tuple[CommitInfo, ...]
    current_version: str
    latest_version: str
    is_downgrade: bool
    target_ref: str = ""


class UpdateStatus(Enum):
    """Where the update workflow is."""

    CHECKING = "checking"
    DIRTY_WARNING = "dirty-warning"
    BACKUP_CONFIRM = "backup-confirm"
    BACKING_UP = "backing-up"
    FETCHING = "fetching"
    PREVIEW = "preview"
    MERGING = "merging"
    CLEAN_RESTORING = "clean-restoring"
    INSTALLING = "installing"
    DONE = "done"
    CONFLICT = "conflict"
    UP_TO_DATE = "up-to-date"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class UpdateState:
    """Aggregate owned by the state machine."""

    status: UpdateStatus
    options: UpdateOptions
    main_branch: str = MAIN_BRANCH
    git_status: GitStatusInfo | None = None
    update_info: UpdateInfo | None = None
    merge_result: MergeResult | None = None
    backup_file: Path | None = None
    error: str | None = None
    branch_warning: str | None = None
    needs_migration: bool = False
    restored_files: tuple[str, ...] = ()
    release_info: ReleaseInfo | None = None


# ============================================================================
# Actions
# ============================================================================


@dataclass(frozen=True)
class GitChecked:
    status: GitStatusInfo


@dataclass(frozen=True)
class BackupConfirm:
    pass


@dataclass(frozen=True)
class BackupSkip:
    pass


@dataclass(frozen=True)
class BackupDone:
    backup_file: Path


@dataclass(frozen=True)
class Fetched:
    info: UpdateInfo
    needs_migration: bool = False


@dataclass(frozen=True)
class ReleaseNotesFetched:
    release: ReleaseInfo


@dataclass(frozen=True)
class UpdateConfirm:
    pass


@dataclass(frozen=True)
class UpdateCancel:
    pass


@dataclass(frozen=True)
class PreviewFinished:
    """Check-only and dry-run runs end after the preview."""


@dataclass(frozen=True)
class Merged:
    result: MergeResult


@dataclass(frozen=True)
class CleanRestored:
    restored_files: tuple[str, ...]


@dataclass(frozen=True)
class Installed:
    pass


@dataclass(frozen=True)
class AbortRequested:
    """The user chose to abort a conflicted merge or rebase."""


@dataclass(frozen=True)
class MergeAborted:
    pass


@dataclass(frozen=True)
class Error:
    message: str


Action = (
    GitChecked
    | BackupConfirm
    | BackupSkip
    | BackupDone
    | Fetched
    | ReleaseNotesFetched
    | UpdateConfirm
    | UpdateCancel
    | PreviewFinished
    | Merged
    | CleanRestored
    | Installed
    | AbortRequested
    | MergeAborted
    | Error
)


# ============================================================================
# Commands
# ============================================================================


@dataclass(frozen=True)
class CheckGitStatus:
    pass


@dataclass(frozen=True)
class RunBackup:
    full: bool = True


@dataclass(frozen=True)
class FetchUpdates:
    target_tag: str | None = None


@dataclass(frozen=True)
class FetchReleaseNotes:
    version: str


@dataclass(frozen=True)
class PerformUpdate:
    info: UpdateInfo


@dataclass(frozen=True)
class RestoreUserContent:
    backup_file: Path
    pre_clean_sha: str


@dataclass(frozen=True)
class InstallDependencies:
    pass


@dataclass(frozen=True)
class AbortInProgress:
    is_rebase: bool


Command = (
    CheckGitStatus
    | RunBackup
    | FetchUpdates
    | FetchReleaseNotes
    | PerformUpdate
    | RestoreUserContent
    | InstallDependencies
    | AbortInProgress
)


@dataclass(frozen=True)
class Transition:
    """New state plus the I/O the runner must perform next."""

    state: UpdateState
    commands: tuple[Command, ...] = field(default=())
