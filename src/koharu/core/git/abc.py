"""High-level git operations interface.

This module provides a clean abstraction over git subprocess calls, so the
update workflow can be exercised against an in-memory fake.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- DryRunGit: Wrapper that turns destructive operations into printed no-ops
"""

import fnmatch
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Literal

from koharu.core.git.types import CommitInfo, GitStatusInfo, StandardMergeResult

ConflictSide = Literal["ours", "theirs"]


def strip_version_prefix(tag: str) -> str:
    """Turn a tag like "v2.1.0" into the bare version "2.1.0"."""
    if tag[:1] in ("v", "V") and tag[1:2].isdigit():
        return tag[1:]
    return tag


def pathspec_matches(pathspec: str, path: str) -> bool:
    """Check a repository-relative path against a git-style pathspec.

    A plain pathspec matches the path itself and everything below it. A
    pathspec with glob characters matches like git's default pathspec magic,
    where "*" also crosses directory separators ("src/pages/*.md" matches
    "src/pages/about/index.md").
    """
    if any(ch in pathspec for ch in "*?["):
        return fnmatch.fnmatchcase(path, pathspec)
    prefix = pathspec.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def match_tag(tags: Iterable[str], requested: str) -> str | None:
    """Find the tag matching a user-supplied version.

    "v2.1.0" and "2.1.0" both match either spelling of the tag. An exact
    match wins over a prefix-insensitive one.

    Args:
        tags: Tag names known to the remote
        requested: Version requested by the user

    Returns:
        The matching tag name, or None if no tag matches
    """
    tag_list = list(tags)
    if requested in tag_list:
        return requested
    wanted = strip_version_prefix(requested.strip())
    for tag in tag_list:
        if strip_version_prefix(tag) == wanted:
            return tag
    return None


# ============================================================================
# Abstract Interface
# ============================================================================


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real, dry-run and fake) must implement this
    interface. Failures raise RuntimeError unless the method documents a
    result value for them.
    """

    @abstractmethod
    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the repository containing cwd.

        Returns:
            Repository root, or None if cwd is not inside a git repository
        """
        ...

    @abstractmethod
    def get_status(self, repo_root: Path) -> GitStatusInfo:
        """Report the current branch and uncommitted files."""
        ...

    @abstractmethod
    def has_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote with this name is configured."""
        ...

    @abstractmethod
    def add_remote(self, repo_root: Path, remote: str, url: str) -> None:
        """Configure a new remote."""
        ...

    @abstractmethod
    def fetch(self, repo_root: Path, remote: str) -> None:
        """Fetch branches and tags from a remote.

        Raises:
            RuntimeError: If the fetch fails (network, authentication, ...)
        """
        ...

    @abstractmethod
    def get_current_version_tag(self, repo_root: Path) -> str | None:
        """Get the most recent tag reachable from HEAD, or None if there is none."""
        ...

    @abstractmethod
    def get_latest_tag(self, repo_root: Path, ref: str) -> str | None:
        """Get the most recent tag reachable from ref, or None if there is none."""
        ...

    @abstractmethod
    def list_remote_tags(self, repo_root: Path, remote: str) -> list[str]:
        """List tag names published by a remote (peeled markers excluded)."""
        ...

    @abstractmethod
    def resolve_tag(self, repo_root: Path, remote: str, requested: str) -> str | None:
        """Resolve a requested version ("v2.1.0" or "2.1.0") against the remote's tags.

        Returns:
            The tag name as published by the remote, or None if not found
        """
        ...

    @abstractmethod
    def ref_exists(self, repo_root: Path, ref: str) -> bool:
        """Check whether ref resolves to a commit."""
        ...

    @abstractmethod
    def get_ahead_behind(self, repo_root: Path, base_ref: str) -> tuple[int, int]:
        """Count commits HEAD has that base_ref lacks, and the reverse.

        Returns:
            Tuple of (ahead, behind) counts
        """
        ...

    @abstractmethod
    def get_commit_range(self, repo_root: Path, from_ref: str, to_ref: str) -> list[CommitInfo]:
        """List commits reachable from to_ref but not from from_ref, newest first."""
        ...

    @abstractmethod
    def get_merge_base(self, repo_root: Path, ref_a: str, ref_b: str) -> str | None:
        """Get the best common ancestor, or None if the histories are unrelated."""
        ...

    @abstractmethod
    def list_merge_commits(self, repo_root: Path, from_ref: str, to_ref: str) -> list[str]:
        """List SHAs of merge commits in from_ref..to_ref."""
        ...

    @abstractmethod
    def merge(self, repo_root: Path, ref: str) -> StandardMergeResult:
        """Merge ref into the current branch.

        Conflicts are reported in the result, not raised. The repository is
        left in git's native conflicted state.
        """
        ...

    @abstractmethod
    def rebase(self, repo_root: Path, ref: str) -> StandardMergeResult:
        """Replay local commits on top of ref.

        Conflicts are reported in the result (is_rebase_conflict=True), not
        raised. The repository is left mid-rebase.
        """
        ...

    @abstractmethod
    def continue_rebase(self, repo_root: Path) -> StandardMergeResult:
        """Continue a stopped rebase after its conflicts were staged.

        A commit left empty by the resolution is skipped. The result reports
        the next stop, completion, or failure.
        """
        ...

    @abstractmethod
    def get_conflicted_files(self, repo_root: Path) -> list[str]:
        """List paths with unresolved conflicts."""
        ...

    @abstractmethod
    def checkout_side(self, repo_root: Path, paths: Sequence[str], side: ConflictSide) -> None:
        """Resolve conflicted paths by taking one side wholesale and staging it.

        A path that side deleted is removed from the index and working tree.
        """
        ...

    @abstractmethod
    def commit_merge(self, repo_root: Path) -> None:
        """Conclude an in-progress merge with the prepared message."""
        ...

    @abstractmethod
    def abort_merge(self, repo_root: Path) -> bool:
        """Abort an in-progress merge. Returns False if git refused."""
        ...

    @abstractmethod
    def abort_rebase(self, repo_root: Path) -> bool:
        """Abort an in-progress rebase. Returns False if git refused."""
        ...

    @abstractmethod
    def replace_tree(
        self, repo_root: Path, ref: str, exclude_paths: Sequence[str], *, message: str
    ) -> None:
        """Replace every tracked file with ref's version and record a merge of ref.

        Tracked paths under exclude_paths keep HEAD's version. The result is
        a merge commit whose tree is ref's tree plus the excluded paths.
        """
        ...

    @abstractmethod
    def get_current_commit_sha(self, repo_root: Path) -> str:
        """Get the full SHA HEAD points at."""
        ...

    @abstractmethod
    def reset_hard(self, repo_root: Path, ref: str) -> None:
        """Move HEAD, index and working tree to ref, discarding local changes."""
        ...
