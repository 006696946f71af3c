"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes actual git
commands via subprocess.
"""

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from koharu.core.git.abc import ConflictSide, Git, match_tag, pathspec_matches
from koharu.core.git.types import CommitInfo, GitStatusInfo, StandardMergeResult
from koharu.core.subprocess import run_subprocess_with_context

logger = logging.getLogger(__name__)

# Keeps git from opening an editor for rebase --continue
_NON_INTERACTIVE_ENV = {"GIT_EDITOR": "true", "GIT_TERMINAL_PROMPT": "0"}

# ============================================================================
# Production Implementation
# ============================================================================


def _git(repo_root: Path, *args: str) -> subprocess.CompletedProcess[str]:
    """Run a git command without raising; callers inspect the return code."""
    return subprocess.run(
        ["git", *args],
        cwd=repo_root,
        capture_output=True,
        text=True,
        encoding="utf-8",
        check=False,
        env={**os.environ, **_NON_INTERACTIVE_ENV},
    )


def _nul_separated(output: str) -> list[str]:
    """Split -z output. Paths come back unquoted, non-ASCII names included."""
    return [entry for entry in output.split("\0") if entry]


def _tool_message(result: subprocess.CompletedProcess[str]) -> str:
    return (result.stderr.strip() or result.stdout.strip()) or f"exit code {result.returncode}"


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the repository containing cwd."""
        result = _git(cwd, "rev-parse", "--show-toplevel")
        if result.returncode != 0:
            return None
        return Path(result.stdout.strip())

    def get_status(self, repo_root: Path) -> GitStatusInfo:
        """Report the current branch and uncommitted files."""
        branch_result = _git(repo_root, "rev-parse", "--abbrev-ref", "HEAD")
        branch = branch_result.stdout.strip() if branch_result.returncode == 0 else "HEAD"

        result = run_subprocess_with_context(
            ["git", "status", "--porcelain", "-z"],
            operation_context="get working tree status",
            cwd=repo_root,
        )

        files: list[str] = []
        entries = iter(_nul_separated(result.stdout))
        for entry in entries:
            status_code = entry[:2]
            files.append(entry[3:])
            # Renames and copies are followed by their source path
            if "R" in status_code or "C" in status_code:
                next(entries, None)

        return GitStatusInfo(
            current_branch=branch, is_clean=not files, uncommitted_files=tuple(files)
        )

    def has_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote with this name is configured."""
        result = _git(repo_root, "remote")
        if result.returncode != 0:
            return False
        return remote in result.stdout.split()

    def add_remote(self, repo_root: Path, remote: str, url: str) -> None:
        """Configure a new remote."""
        run_subprocess_with_context(
            ["git", "remote", "add", remote, url],
            operation_context=f"add remote '{remote}' ({url})",
            cwd=repo_root,
        )

    def fetch(self, repo_root: Path, remote: str) -> None:
        """Fetch branches and tags from a remote."""
        run_subprocess_with_context(
            ["git", "fetch", remote, "--tags"],
            operation_context=f"fetch from remote '{remote}'",
            cwd=repo_root,
            env={**os.environ, **_NON_INTERACTIVE_ENV},
        )

    def get_current_version_tag(self, repo_root: Path) -> str | None:
        """Get the most recent tag reachable from HEAD."""
        return self.get_latest_tag(repo_root, "HEAD")

    def get_latest_tag(self, repo_root: Path, ref: str) -> str | None:
        """Get the most recent tag reachable from ref."""
        result = _git(repo_root, "describe", "--tags", "--abbrev=0", ref)
        if result.returncode != 0:
            return None
        tag = result.stdout.strip()
        return tag or None

    def list_remote_tags(self, repo_root: Path, remote: str) -> list[str]:
        """List tag names published by a remote."""
        result = run_subprocess_with_context(
            ["git", "ls-remote", "--tags", "--refs", remote],
            operation_context=f"list tags on remote '{remote}'",
            cwd=repo_root,
            env={**os.environ, **_NON_INTERACTIVE_ENV},
        )

        tags: list[str] = []
        for line in result.stdout.splitlines():
            # Format: <sha>\trefs/tags/<name>
            parts = line.split("\t")
            if len(parts) != 2 or not parts[1].startswith("refs/tags/"):
                continue
            tag = parts[1].removeprefix("refs/tags/")
            if not tag.endswith("^{}"):
                tags.append(tag)
        return tags

    def resolve_tag(self, repo_root: Path, remote: str, requested: str) -> str | None:
        """Resolve a requested version against the remote's tags."""
        return match_tag(self.list_remote_tags(repo_root, remote), requested)

    def ref_exists(self, repo_root: Path, ref: str) -> bool:
        """Check whether ref resolves to a commit."""
        result = _git(repo_root, "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        return result.returncode == 0

    def get_ahead_behind(self, repo_root: Path, base_ref: str) -> tuple[int, int]:
        """Count commits HEAD has that base_ref lacks, and the reverse."""
        result = run_subprocess_with_context(
            ["git", "rev-list", "--left-right", "--count", f"{base_ref}...HEAD"],
            operation_context=f"compare HEAD with '{base_ref}'",
            cwd=repo_root,
        )

        parts = result.stdout.strip().split()
        if len(parts) == 2:
            behind = int(parts[0])
            ahead = int(parts[1])
            return ahead, behind

        return 0, 0

    def get_commit_range(self, repo_root: Path, from_ref: str, to_ref: str) -> list[CommitInfo]:
        """List commits in from_ref..to_ref, newest first."""
        result = run_subprocess_with_context(
            [
                "git",
                "log",
                "--date=short",
                "--format=%h%x00%s%x00%ad%x00%an",
                f"{from_ref}..{to_ref}",
            ],
            operation_context=f"list commits in {from_ref}..{to_ref}",
            cwd=repo_root,
        )

        commits: list[CommitInfo] = []
        for line in result.stdout.splitlines():
            parts = line.split("\x00")
            if len(parts) == 4:
                commits.append(
                    CommitInfo(hash=parts[0], message=parts[1], date=parts[2], author=parts[3])
                )
        return commits

    def get_merge_base(self, repo_root: Path, ref_a: str, ref_b: str) -> str | None:
        """Get the best common ancestor of two refs."""
        result = _git(repo_root, "merge-base", ref_a, ref_b)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def list_merge_commits(self, repo_root: Path, from_ref: str, to_ref: str) -> list[str]:
        """List SHAs of merge commits in from_ref..to_ref."""
        result = run_subprocess_with_context(
            ["git", "rev-list", "--merges", f"{from_ref}..{to_ref}"],
            operation_context=f"list merge commits in {from_ref}..{to_ref}",
            cwd=repo_root,
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def _stopped_result(
        self, repo_root: Path, result: subprocess.CompletedProcess[str], *, rebase: bool
    ) -> StandardMergeResult:
        if result.returncode == 0:
            return StandardMergeResult(success=True)

        conflicts = self.get_conflicted_files(repo_root)
        if conflicts:
            return StandardMergeResult(
                success=False,
                has_conflict=True,
                conflict_files=tuple(conflicts),
                is_rebase_conflict=rebase,
            )
        return StandardMergeResult(success=False, error=_tool_message(result))

    def merge(self, repo_root: Path, ref: str) -> StandardMergeResult:
        """Merge ref into the current branch."""
        logger.debug("Merging %s in %s", ref, repo_root)
        result = _git(repo_root, "merge", "--no-edit", ref)
        return self._stopped_result(repo_root, result, rebase=False)

    def rebase(self, repo_root: Path, ref: str) -> StandardMergeResult:
        """Replay local commits on top of ref."""
        logger.debug("Rebasing onto %s in %s", ref, repo_root)
        result = _git(repo_root, "rebase", ref)
        return self._stopped_result(repo_root, result, rebase=True)

    def continue_rebase(self, repo_root: Path) -> StandardMergeResult:
        """Continue a stopped rebase, skipping commits the resolution emptied."""
        staged = _git(repo_root, "diff", "--cached", "--quiet")
        if staged.returncode == 0:
            result = _git(repo_root, "rebase", "--skip")
        else:
            result = _git(repo_root, "rebase", "--continue")
        return self._stopped_result(repo_root, result, rebase=True)

    def get_conflicted_files(self, repo_root: Path) -> list[str]:
        """List paths with unresolved conflicts."""
        result = _git(repo_root, "diff", "--name-only", "-z", "--diff-filter=U")
        if result.returncode != 0:
            return []
        return _nul_separated(result.stdout)

    def checkout_side(self, repo_root: Path, paths: Sequence[str], side: ConflictSide) -> None:
        """Resolve conflicted paths by taking one side wholesale and staging it."""
        for path in paths:
            result = _git(repo_root, "checkout", f"--{side}", "--", path)
            if result.returncode == 0:
                run_subprocess_with_context(
                    ["git", "add", "--", path],
                    operation_context=f"stage resolved file '{path}'",
                    cwd=repo_root,
                )
            else:
                # The chosen side deleted this path
                run_subprocess_with_context(
                    ["git", "rm", "-q", "-f", "--", path],
                    operation_context=f"remove deleted file '{path}'",
                    cwd=repo_root,
                )

    def commit_merge(self, repo_root: Path) -> None:
        """Conclude an in-progress merge with the prepared message."""
        run_subprocess_with_context(
            ["git", "commit", "--no-edit"],
            operation_context="commit merge",
            cwd=repo_root,
            env={**os.environ, **_NON_INTERACTIVE_ENV},
        )

    def abort_merge(self, repo_root: Path) -> bool:
        """Abort an in-progress merge."""
        return _git(repo_root, "merge", "--abort").returncode == 0

    def abort_rebase(self, repo_root: Path) -> bool:
        """Abort an in-progress rebase."""
        return _git(repo_root, "rebase", "--abort").returncode == 0

    def _head_files(self, repo_root: Path) -> list[str]:
        result = run_subprocess_with_context(
            ["git", "ls-tree", "-r", "-z", "--name-only", "HEAD"],
            operation_context="list files tracked at HEAD",
            cwd=repo_root,
        )
        return _nul_separated(result.stdout)

    def replace_tree(
        self, repo_root: Path, ref: str, exclude_paths: Sequence[str], *, message: str
    ) -> None:
        """Replace every tracked file with ref's version and record a merge of ref."""
        head_files = self._head_files(repo_root)

        # Open a merge of ref without touching the tree so the commit gets ref as parent
        run_subprocess_with_context(
            [
                "git",
                "merge",
                "-s",
                "ours",
                "--no-ff",
                "--no-commit",
                "--allow-unrelated-histories",
                ref,
            ],
            operation_context=f"start merge of '{ref}'",
            cwd=repo_root,
        )
        run_subprocess_with_context(
            ["git", "read-tree", "--reset", "-u", ref],
            operation_context=f"replace working tree with '{ref}'",
            cwd=repo_root,
        )

        for path in exclude_paths:
            run_subprocess_with_context(
                ["git", "rm", "-r", "-q", "-f", "--ignore-unmatch", "--", path],
                operation_context=f"drop upstream version of '{path}'",
                cwd=repo_root,
            )
            if any(pathspec_matches(path, tracked) for tracked in head_files):
                run_subprocess_with_context(
                    ["git", "checkout", "HEAD", "--", path],
                    operation_context=f"keep local version of '{path}'",
                    cwd=repo_root,
                )

        run_subprocess_with_context(
            ["git", "commit", "--allow-empty", "-m", message],
            operation_context=f"commit replacement with '{ref}'",
            cwd=repo_root,
            env={**os.environ, **_NON_INTERACTIVE_ENV},
        )

    def get_current_commit_sha(self, repo_root: Path) -> str:
        """Get the full SHA HEAD points at."""
        result = run_subprocess_with_context(
            ["git", "rev-parse", "HEAD"],
            operation_context="read current commit",
            cwd=repo_root,
        )
        return result.stdout.strip()

    def reset_hard(self, repo_root: Path, ref: str) -> None:
        """Move HEAD, index and working tree to ref."""
        run_subprocess_with_context(
            ["git", "reset", "--hard", ref],
            operation_context=f"reset to '{ref}'",
            cwd=repo_root,
        )
