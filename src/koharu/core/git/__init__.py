"""Git integration used by the update workflow.

RealGit shells out to git, DryRunGit prints the destructive calls instead of
making them, and tests substitute an in-memory fake behind the same ABC.
"""

from koharu.core.git.abc import ConflictSide, Git, match_tag, pathspec_matches
from koharu.core.git.dry_run import DryRunGit
from koharu.core.git.real import RealGit
from koharu.core.git.types import (
    CleanModeResult,
    CommitInfo,
    GitStatusInfo,
    MergeResult,
    StandardMergeResult,
)

__all__ = [
    "CleanModeResult",
    "CommitInfo",
    "ConflictSide",
    "DryRunGit",
    "Git",
    "GitStatusInfo",
    "MergeResult",
    "RealGit",
    "StandardMergeResult",
    "match_tag",
    "pathspec_matches",
]
