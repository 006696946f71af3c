"""Automatic resolution of conflicts on user-owned content.

Conflicts on user content (posts, site config, standalone pages, images,
.env) are resolved to the local version. Conflicts on theme files are
never resolved automatically; the user must reconcile them by hand.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from koharu.constants import USER_CONTENT_ITEMS
from koharu.core.git.abc import ConflictSide, Git, pathspec_matches
from koharu.core.git.types import StandardMergeResult

logger = logging.getLogger(__name__)

USER_CONTENT_PATHSPECS: tuple[str, ...] = tuple(
    f"{item.src}/{item.pattern}" if item.pattern else item.src for item in USER_CONTENT_ITEMS
)


def is_user_content_path(path: str) -> bool:
    """Check whether a repository-relative path is user-owned content."""
    return any(pathspec_matches(pathspec, path) for pathspec in USER_CONTENT_PATHSPECS)


@dataclass(frozen=True)
class ConflictPartition:
    """Conflicting paths split by ownership.

    auto_resolved and remaining are disjoint and together hold every input
    path, each in input order.
    """

    auto_resolved: tuple[str, ...]
    remaining: tuple[str, ...]


def partition_conflicts(
    conflict_files: Iterable[str],
    is_user_content: Callable[[str], bool] = is_user_content_path,
) -> ConflictPartition:
    """Split conflicts into those the policy resolves and those left to the user."""
    auto_resolved: list[str] = []
    remaining: list[str] = []
    for path in conflict_files:
        if is_user_content(path):
            auto_resolved.append(path)
        else:
            remaining.append(path)
    return ConflictPartition(auto_resolved=tuple(auto_resolved), remaining=tuple(remaining))


def local_side(is_rebase: bool) -> ConflictSide:
    """The side holding the user's version of a conflicted file.

    A rebase replays local commits onto upstream, so there "ours" is the
    upstream side and the local version is "theirs".
    """
    return "theirs" if is_rebase else "ours"


def resolve_conflicts(
    git: Git,
    repo_root: Path,
    conflict_files: Iterable[str],
    *,
    is_rebase: bool,
) -> StandardMergeResult:
    """Apply the policy to a stopped merge or rebase and finish it if possible.

    User content conflicts are checked out from the local side and staged.
    When nothing else conflicts, the merge is committed or the rebase
    continued; a rebase may stop again on a later commit, in which case the
    policy runs again for that stop.

    Returns:
        success=True when the operation completed, has_conflict=True when
        theme files still conflict (the repository is left mid-operation),
        or an error result when finalizing failed
    """
    auto_resolved: list[str] = []
    conflicts = list(conflict_files)
    abort_command = "git rebase --abort" if is_rebase else "git merge --abort"

    while True:
        partition = partition_conflicts(conflicts)
        if partition.auto_resolved:
            logger.debug("Keeping local version of %s", list(partition.auto_resolved))
            git.checkout_side(repo_root, partition.auto_resolved, local_side(is_rebase))
            auto_resolved.extend(p for p in partition.auto_resolved if p not in auto_resolved)

        if partition.remaining:
            return StandardMergeResult(
                success=False,
                has_conflict=True,
                conflict_files=partition.remaining,
                is_rebase_conflict=is_rebase,
                auto_resolved_files=tuple(auto_resolved),
            )

        if not is_rebase:
            try:
                git.commit_merge(repo_root)
            except RuntimeError as e:
                return StandardMergeResult(
                    success=False,
                    error=(
                        "Conflicts were resolved automatically but the merge commit failed:\n"
                        f"{e}\nCommit manually with: git commit, or undo with: {abort_command}"
                    ),
                    auto_resolved_files=tuple(auto_resolved),
                )
            return StandardMergeResult(success=True, auto_resolved_files=tuple(auto_resolved))

        step = git.continue_rebase(repo_root)
        if step.success:
            return StandardMergeResult(success=True, auto_resolved_files=tuple(auto_resolved))
        if not step.has_conflict:
            return StandardMergeResult(
                success=False,
                error=(
                    "Conflicts were resolved automatically but the rebase could not continue:\n"
                    f"{step.error}\nContinue manually with: git rebase --continue, "
                    f"or undo with: {abort_command}"
                ),
                auto_resolved_files=tuple(auto_resolved),
            )
        conflicts = list(step.conflict_files)
