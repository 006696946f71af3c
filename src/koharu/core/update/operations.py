"""Git-side operations of the theme update workflow.

fetch_update_info() compares HEAD with the upstream target; perform_update()
moves HEAD there with the chosen strategy; restore_user_content() finishes a
clean-mode update and rolls it back if user content cannot be restored.
"""

import logging
import tarfile
from pathlib import Path

from packaging.version import InvalidVersion, Version

from koharu.constants import UNKNOWN_VERSION, USER_CONTENT_PATHS
from koharu.core.backup.abc import BackupStore
from koharu.core.backup.types import BackupFormatError
from koharu.core.config import LoadedConfig
from koharu.core.git.abc import Git, strip_version_prefix
from koharu.core.git.types import CleanModeResult, CommitInfo, MergeResult, StandardMergeResult
from koharu.core.project import read_package_version
from koharu.core.update.conflicts import USER_CONTENT_PATHSPECS, resolve_conflicts
from koharu.core.update.machine import rebase_downgrade_message
from koharu.core.update.types import UpdateInfo, UpdateOptions

logger = logging.getLogger(__name__)

MAX_LISTED_TAGS = 10


# ============================================================================
# Version resolution
# ============================================================================


def parse_version(text: str) -> Version | None:
    """Parse "2.1.0" or "v2.1.0"; None for anything that is not a version."""
    try:
        return Version(strip_version_prefix(text))
    except InvalidVersion:
        return None


def is_downgrade(latest_version: str, current_version: str) -> bool:
    """Check whether moving to latest_version goes back in version order.

    Unparsable versions ("unknown", branch names) never count as a downgrade.
    """
    latest = parse_version(latest_version)
    current = parse_version(current_version)
    if latest is None or current is None:
        return False
    return latest < current


def resolve_current_version(git: Git, repo_root: Path) -> str:
    """Version of HEAD: its nearest tag, else package.json, else "unknown"."""
    tag = git.get_current_version_tag(repo_root)
    if tag:
        return strip_version_prefix(tag)
    version = read_package_version(repo_root)
    if version:
        return strip_version_prefix(version)
    return UNKNOWN_VERSION


def recent_tags(tags: list[str], limit: int = MAX_LISTED_TAGS) -> list[str]:
    """Newest version tags first; tags that are not versions are dropped."""
    versioned = [(parse_version(tag), tag) for tag in tags]
    ordered = sorted(
        ((version, tag) for version, tag in versioned if version is not None),
        key=lambda pair: pair[0],
        reverse=True,
    )
    return [tag for _, tag in ordered[:limit]]


def ensure_upstream_remote(git: Git, repo_root: Path, config: LoadedConfig) -> None:
    """Add the upstream remote from the configured URL if it is missing."""
    if git.has_remote(repo_root, config.upstream_remote):
        return
    logger.debug("Adding remote %s -> %s", config.upstream_remote, config.upstream_url)
    git.add_remote(repo_root, config.upstream_remote, config.upstream_url)


def detect_needs_migration(
    git: Git, repo_root: Path, target_ref: str, local_commits: tuple[CommitInfo, ...]
) -> bool:
    """Guess whether the repository was created by squashing the template.

    Such repositories conflict on nearly every file during their first merge,
    so clean mode is recommended for that one update. The guess is true when
    HEAD and the target share no history at all, or when a local-only commit
    mentions a squash and no local-only commit is a merge.
    """
    if git.get_merge_base(repo_root, target_ref, "HEAD") is None:
        return True
    mentions_squash = any("squash" in commit.message.lower() for commit in local_commits)
    if not mentions_squash:
        return False
    return not git.list_merge_commits(repo_root, target_ref, "HEAD")


def fetch_update_info(
    git: Git, repo_root: Path, config: LoadedConfig, target_tag: str | None
) -> tuple[UpdateInfo, bool]:
    """Fetch upstream and compare HEAD with the update target.

    Args:
        git: Git implementation
        repo_root: Repository root
        config: Upstream remote, URL and branch
        target_tag: Version requested with --tag, or None for the latest

    Returns:
        Tuple of (UpdateInfo, needs_migration)

    Raises:
        RuntimeError: If fetching fails or target_tag matches no upstream tag
    """
    remote = config.upstream_remote
    ensure_upstream_remote(git, repo_root, config)
    git.fetch(repo_root, remote)

    current_version = resolve_current_version(git, repo_root)

    if target_tag is not None:
        tag = git.resolve_tag(repo_root, remote, target_tag)
        if tag is None:
            available = recent_tags(git.list_remote_tags(repo_root, remote))
            listing = ", ".join(available) if available else "(none)"
            raise RuntimeError(
                f"Version '{target_tag}' was not found on '{remote}'.\n"
                f"Available versions: {listing}"
            )
        target_ref = tag
        latest_version = strip_version_prefix(tag)
    else:
        target_ref = f"{remote}/{config.main_branch}"
        if not git.ref_exists(repo_root, target_ref):
            logger.debug("%s does not exist after fetch", target_ref)
            info = UpdateInfo(
                has_upstream=False,
                behind_count=0,
                ahead_count=0,
                commits=(),
                local_commits=(),
                current_version=current_version,
                latest_version=UNKNOWN_VERSION,
                is_downgrade=False,
                target_ref=target_ref,
            )
            return info, False
        latest_tag = git.get_latest_tag(repo_root, target_ref)
        latest_version = strip_version_prefix(latest_tag) if latest_tag else UNKNOWN_VERSION

    ahead, behind = git.get_ahead_behind(repo_root, target_ref)
    downgrade = is_downgrade(latest_version, current_version)
    local_commits = tuple(git.get_commit_range(repo_root, target_ref, "HEAD"))
    if downgrade:
        commits = local_commits
    else:
        commits = tuple(git.get_commit_range(repo_root, "HEAD", target_ref))

    info = UpdateInfo(
        has_upstream=True,
        behind_count=behind,
        ahead_count=ahead,
        commits=commits,
        local_commits=local_commits,
        current_version=current_version,
        latest_version=latest_version,
        is_downgrade=downgrade,
        target_ref=target_ref,
    )
    needs_migration = detect_needs_migration(git, repo_root, target_ref, local_commits)
    logger.debug("Update info: %s (needs_migration=%s)", info, needs_migration)
    return info, needs_migration


# ============================================================================
# Update strategies
# ============================================================================


def _roll_back(git: Git, repo_root: Path, pre_clean_sha: str, failure: str) -> None:
    logger.debug("Rolling back to %s", pre_clean_sha)
    try:
        git.reset_hard(repo_root, pre_clean_sha)
    except RuntimeError as reset_error:
        raise RuntimeError(
            f"{failure}\nRolling back also failed: {reset_error}\n"
            f"Run: git reset --hard {pre_clean_sha}"
        ) from reset_error


def _clean_commit_message(info: UpdateInfo) -> str:
    if info.latest_version == UNKNOWN_VERSION:
        return f"chore: update theme to {info.target_ref} (clean mode)"
    return f"chore: update theme to v{info.latest_version} (clean mode)"


def clean_replace(git: Git, repo_root: Path, info: UpdateInfo) -> CleanModeResult:
    """Replace every theme file with the target's version, keeping user content.

    The commit HEAD pointed at beforehand is returned as pre_clean_sha; a
    failed replacement is rolled back to it immediately.
    """
    pre_clean_sha = git.get_current_commit_sha(repo_root)
    try:
        git.replace_tree(
            repo_root, info.target_ref, USER_CONTENT_PATHSPECS, message=_clean_commit_message(info)
        )
    except RuntimeError as e:
        failure = f"Replacing theme files failed:\n{e}"
        try:
            _roll_back(git, repo_root, pre_clean_sha, failure)
        except RuntimeError as rollback_error:
            return CleanModeResult(
                success=False, pre_clean_sha=pre_clean_sha, error=str(rollback_error)
            )
        return CleanModeResult(
            success=False,
            pre_clean_sha=pre_clean_sha,
            error=f"{failure}\nThe repository was rolled back to {pre_clean_sha[:7]}.",
        )
    return CleanModeResult(success=True, pre_clean_sha=pre_clean_sha)


def perform_update(
    git: Git, repo_root: Path, info: UpdateInfo, options: UpdateOptions
) -> MergeResult:
    """Move HEAD to the update target with the strategy the options select.

    - clean: replace theme files (restore follows as a separate step)
    - rebase: replay local commits onto the target (never to an older version)
    - downgrade without a strategy: reset hard to the target tag
    - otherwise: merge the target

    Conflicts of merge and rebase go through the conflict policy.
    """
    if options.clean:
        return clean_replace(git, repo_root, info)

    if options.rebase:
        if info.is_downgrade:
            return StandardMergeResult(success=False, error=rebase_downgrade_message(info))
        result = git.rebase(repo_root, info.target_ref)
        if result.has_conflict:
            return resolve_conflicts(git, repo_root, result.conflict_files, is_rebase=True)
        return result

    if info.is_downgrade:
        try:
            git.reset_hard(repo_root, info.target_ref)
        except RuntimeError as e:
            return StandardMergeResult(success=False, error=str(e))
        return StandardMergeResult(success=True)

    result = git.merge(repo_root, info.target_ref)
    if result.has_conflict:
        return resolve_conflicts(git, repo_root, result.conflict_files, is_rebase=False)
    return result


def restore_user_content(
    git: Git,
    backups: BackupStore,
    repo_root: Path,
    backup_file: Path,
    pre_clean_sha: str,
) -> tuple[str, ...]:
    """Restore user content after a clean replacement, or roll the replacement back.

    Returns:
        Project paths that were restored

    Raises:
        RuntimeError: If the restore failed. The repository has been reset to
            pre_clean_sha, or the message names the reset command to run.
    """
    try:
        return tuple(backups.restore_backup(backup_file, only=USER_CONTENT_PATHS))
    except (OSError, tarfile.TarError, BackupFormatError) as e:
        failure = f"Restoring user content from {backup_file.name} failed: {e}"
        _roll_back(git, repo_root, pre_clean_sha, failure)
        raise RuntimeError(
            f"{failure}\nThe repository was rolled back to {pre_clean_sha[:7]}. "
            f"Your content is still in {backup_file}."
        ) from e
