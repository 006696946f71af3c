"""Dry-run Git wrapper.

This module provides a Git wrapper that prevents execution of destructive
operations while delegating read-only operations to the wrapped implementation.
"""

from collections.abc import Sequence
from pathlib import Path

import click

from koharu.cli.output import user_output
from koharu.core.git.abc import ConflictSide, Git
from koharu.core.git.types import CommitInfo, GitStatusInfo, StandardMergeResult

# ============================================================================
# Dry-run Wrapper
# ============================================================================


def _announce(command: str) -> None:
    user_output(click.style("[DRY RUN] ", fg="yellow") + f"Would run: {command}")


class DryRunGit(Git):
    """Wrapper that prints destructive operations instead of executing them.

    Read-only operations (including fetch, which only moves remote-tracking
    refs) are delegated to the wrapped implementation. Operations that would
    change HEAD, the index or the working tree print what would happen and
    report success.

    Usage:
        real_ops = RealGit()
        dry_run_ops = DryRunGit(real_ops)

        # Prints "[DRY RUN] Would run: git merge --no-edit upstream/main"
        dry_run_ops.merge(repo_root, "upstream/main")
    """

    def __init__(self, wrapped: Git) -> None:
        """Create a dry-run wrapper around a Git implementation.

        Args:
            wrapped: The Git implementation to wrap (usually RealGit or FakeGit)
        """
        self._wrapped = wrapped

    # Read-only operations: delegate to wrapped implementation

    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get repository root (read-only, delegates to wrapped)."""
        return self._wrapped.get_repository_root(cwd)

    def get_status(self, repo_root: Path) -> GitStatusInfo:
        """Get working tree status (read-only, delegates to wrapped)."""
        return self._wrapped.get_status(repo_root)

    def has_remote(self, repo_root: Path, remote: str) -> bool:
        """Check remote exists (read-only, delegates to wrapped)."""
        return self._wrapped.has_remote(repo_root, remote)

    def fetch(self, repo_root: Path, remote: str) -> None:
        """Fetch (delegates to wrapped - considered read-only for dry-run)."""
        self._wrapped.fetch(repo_root, remote)

    def get_current_version_tag(self, repo_root: Path) -> str | None:
        """Get current version tag (read-only, delegates to wrapped)."""
        return self._wrapped.get_current_version_tag(repo_root)

    def get_latest_tag(self, repo_root: Path, ref: str) -> str | None:
        """Get latest tag of ref (read-only, delegates to wrapped)."""
        return self._wrapped.get_latest_tag(repo_root, ref)

    def list_remote_tags(self, repo_root: Path, remote: str) -> list[str]:
        """List remote tags (read-only, delegates to wrapped)."""
        return self._wrapped.list_remote_tags(repo_root, remote)

    def resolve_tag(self, repo_root: Path, remote: str, requested: str) -> str | None:
        """Resolve tag (read-only, delegates to wrapped)."""
        return self._wrapped.resolve_tag(repo_root, remote, requested)

    def ref_exists(self, repo_root: Path, ref: str) -> bool:
        """Check ref exists (read-only, delegates to wrapped)."""
        return self._wrapped.ref_exists(repo_root, ref)

    def get_ahead_behind(self, repo_root: Path, base_ref: str) -> tuple[int, int]:
        """Count ahead/behind (read-only, delegates to wrapped)."""
        return self._wrapped.get_ahead_behind(repo_root, base_ref)

    def get_commit_range(self, repo_root: Path, from_ref: str, to_ref: str) -> list[CommitInfo]:
        """List commits (read-only, delegates to wrapped)."""
        return self._wrapped.get_commit_range(repo_root, from_ref, to_ref)

    def get_merge_base(self, repo_root: Path, ref_a: str, ref_b: str) -> str | None:
        """Get merge base (read-only, delegates to wrapped)."""
        return self._wrapped.get_merge_base(repo_root, ref_a, ref_b)

    def list_merge_commits(self, repo_root: Path, from_ref: str, to_ref: str) -> list[str]:
        """List merge commits (read-only, delegates to wrapped)."""
        return self._wrapped.list_merge_commits(repo_root, from_ref, to_ref)

    def get_conflicted_files(self, repo_root: Path) -> list[str]:
        """List conflicted files (read-only, delegates to wrapped)."""
        return self._wrapped.get_conflicted_files(repo_root)

    def get_current_commit_sha(self, repo_root: Path) -> str:
        """Get HEAD SHA (read-only, delegates to wrapped)."""
        return self._wrapped.get_current_commit_sha(repo_root)

    # Destructive operations: print dry-run message instead of executing

    def add_remote(self, repo_root: Path, remote: str, url: str) -> None:
        """Print dry-run message instead of adding remote."""
        _announce(f"git remote add {remote} {url}")

    def merge(self, repo_root: Path, ref: str) -> StandardMergeResult:
        """Print dry-run message instead of merging."""
        _announce(f"git merge --no-edit {ref}")
        return StandardMergeResult(success=True)

    def rebase(self, repo_root: Path, ref: str) -> StandardMergeResult:
        """Print dry-run message instead of rebasing."""
        _announce(f"git rebase {ref}")
        return StandardMergeResult(success=True)

    def continue_rebase(self, repo_root: Path) -> StandardMergeResult:
        """Print dry-run message instead of continuing rebase."""
        _announce("git rebase --continue")
        return StandardMergeResult(success=True)

    def checkout_side(self, repo_root: Path, paths: Sequence[str], side: ConflictSide) -> None:
        """Print dry-run message instead of resolving conflicts."""
        _announce(f"git checkout --{side} -- {' '.join(paths)}")

    def commit_merge(self, repo_root: Path) -> None:
        """Print dry-run message instead of committing."""
        _announce("git commit --no-edit")

    def abort_merge(self, repo_root: Path) -> bool:
        """Print dry-run message instead of aborting merge."""
        _announce("git merge --abort")
        return True

    def abort_rebase(self, repo_root: Path) -> bool:
        """Print dry-run message instead of aborting rebase."""
        _announce("git rebase --abort")
        return True

    def replace_tree(
        self, repo_root: Path, ref: str, exclude_paths: Sequence[str], *, message: str
    ) -> None:
        """Print dry-run message instead of replacing the tree."""
        _announce(f"git read-tree --reset -u {ref} (keeping {', '.join(exclude_paths)})")

    def reset_hard(self, repo_root: Path, ref: str) -> None:
        """Print dry-run message instead of resetting."""
        _announce(f"git reset --hard {ref}")
