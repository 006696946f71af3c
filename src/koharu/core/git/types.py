"""Value types returned by git operations."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GitStatusInfo:
    """Snapshot of the working tree, replaced wholesale on every check."""

    current_branch: str
    is_clean: bool
    uncommitted_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommitInfo:
    """One commit, as listed in previews (sequences are newest first)."""

    hash: str
    message: str
    date: str
    author: str


@dataclass(frozen=True)
class StandardMergeResult:
    """Outcome of a merge, rebase or downgrade reset.

    Attributes:
        success: The operation completed and history now contains the target
        has_conflict: The operation stopped with unresolved conflicts
        conflict_files: Conflicting paths still awaiting manual resolution
        error: Raw diagnostic from the tool for non-conflict failures
        is_rebase_conflict: The stop happened inside a rebase
        auto_resolved_files: User content conflicts resolved to the local side
    """

    success: bool
    has_conflict: bool = False
    conflict_files: tuple[str, ...] = ()
    error: str | None = None
    is_rebase_conflict: bool = False
    auto_resolved_files: tuple[str, ...] = field(default=())


@dataclass(frozen=True)
class CleanModeResult:
    """Outcome of a clean-mode tree replacement.

    pre_clean_sha is the commit HEAD pointed at before the replacement; the
    restore step resets to it if user content cannot be brought back.
    """

    success: bool
    pre_clean_sha: str
    has_conflict: bool = False
    conflict_files: tuple[str, ...] = ()
    error: str | None = None
    auto_resolved_files: tuple[str, ...] = field(default=())

    @property
    def is_rebase_conflict(self) -> bool:
        return False


MergeResult = StandardMergeResult | CleanModeResult
