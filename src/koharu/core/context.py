"""Application context with dependency injection."""

import tomllib
from dataclasses import dataclass
from pathlib import Path

import click

from koharu.cli.ensure import Ensure
from koharu.cli.output import user_output
from koharu.core.backup.abc import BackupStore
from koharu.core.backup.dry_run import DryRunBackupStore
from koharu.core.backup.real import RealBackupStore
from koharu.core.config import LoadedConfig, config_path, load_config
from koharu.core.git.abc import Git
from koharu.core.git.dry_run import DryRunGit
from koharu.core.git.real import RealGit
from koharu.core.releases.abc import ReleaseClient
from koharu.core.releases.real import RealReleaseClient
from koharu.core.shell import RealShell, Shell
from koharu.core.time.abc import Time
from koharu.core.time.real import RealTime


@dataclass(frozen=True)
class KoharuContext:
    """Immutable context holding all dependencies for koharu operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.

    repo_root is None when the CLI runs outside a git repository; commands
    that need a repository check it with Ensure.
    """

    git: Git
    backups: BackupStore
    releases: ReleaseClient
    shell: Shell
    time: Time
    cwd: Path
    repo_root: Path | None
    config: LoadedConfig
    dry_run: bool

    @property
    def project_root(self) -> Path:
        """Repository root, or cwd outside a repository."""
        return self.repo_root if self.repo_root is not None else self.cwd

    @property
    def backup_dir(self) -> Path:
        return self.project_root / self.config.backup_dir

    @staticmethod
    def for_test(
        git: Git | None = None,
        backups: BackupStore | None = None,
        releases: ReleaseClient | None = None,
        shell: Shell | None = None,
        time: Time | None = None,
        cwd: Path | None = None,
        repo_root: Path | None = None,
        config: LoadedConfig | None = None,
        dry_run: bool = False,
    ) -> "KoharuContext":
        """Create test context with optional pre-configured integration classes.

        Unspecified integrations default to empty fakes. cwd defaults to
        repo_root, or to a sentinel path when neither is given.

        Example:
            >>> git = FakeGit(repository_root=Path("/repo"))
            >>> ctx = KoharuContext.for_test(git=git, repo_root=Path("/repo"))
        """
        from tests.fakes.backup import FakeBackupStore
        from tests.fakes.git import FakeGit
        from tests.fakes.releases import FakeReleaseClient
        from tests.fakes.shell import FakeShell
        from tests.fakes.time import FakeTime

        if git is None:
            git = FakeGit()

        if backups is None:
            backups = FakeBackupStore()

        if releases is None:
            releases = FakeReleaseClient()

        if shell is None:
            shell = FakeShell()

        if time is None:
            time = FakeTime()

        if cwd is None:
            cwd = repo_root if repo_root is not None else Path("/test/default/cwd")

        if config is None:
            config = LoadedConfig()

        return KoharuContext(
            git=git,
            backups=backups,
            releases=releases,
            shell=shell,
            time=time,
            cwd=cwd,
            repo_root=repo_root,
            config=config,
            dry_run=dry_run,
        )


def safe_cwd() -> tuple[Path | None, str | None]:
    """Get current working directory, detecting if it no longer exists.

    Returns:
        (path, None) on success, or (None, error_message) if the directory
        was deleted
    """
    try:
        return (Path.cwd(), None)
    except (FileNotFoundError, OSError):
        return (None, "Current working directory no longer exists")


def safe_load_config(repo_root: Path | None) -> tuple[LoadedConfig | None, str | None]:
    """Load the repository's configuration, detecting a malformed file.

    Returns:
        (config, None) on success, or (None, error_message) if the config
        file is not valid TOML
    """
    if repo_root is None:
        return (LoadedConfig(), None)
    try:
        return (load_config(repo_root), None)
    except tomllib.TOMLDecodeError as e:
        return (None, f"Invalid configuration file {config_path(repo_root)}: {e}")


def with_dry_run(ctx: KoharuContext) -> KoharuContext:
    """Wrap the context's writing integrations in dry-run wrappers.

    Git history, the working tree and backup archives are left untouched;
    every write is printed instead.
    """
    if ctx.dry_run:
        return ctx
    return KoharuContext(
        git=DryRunGit(ctx.git),
        backups=DryRunBackupStore(ctx.backups, ctx.backup_dir, ctx.time),
        releases=ctx.releases,
        shell=ctx.shell,
        time=ctx.time,
        cwd=ctx.cwd,
        repo_root=ctx.repo_root,
        config=ctx.config,
        dry_run=True,
    )


def create_context(*, dry_run: bool) -> KoharuContext:
    """Create production context with real implementations.

    Called at CLI entry point to create the context for the entire
    command execution.

    Args:
        dry_run: If True, wrap writing integrations with dry-run wrappers
            that print intended actions without executing them
    """
    cwd_result, error_msg = safe_cwd()
    if cwd_result is None:
        user_output(click.style("Error: ", fg="red") + str(error_msg))
        user_output("Please change to a valid directory and try again.")
        raise SystemExit(1)
    cwd = cwd_result

    git: Git = RealGit()
    repo_root = git.get_repository_root(cwd)
    config_result, config_error = safe_load_config(repo_root)
    config = Ensure.not_none(config_result, str(config_error))

    time = RealTime()
    project_root = repo_root if repo_root is not None else cwd
    ctx = KoharuContext(
        git=git,
        backups=RealBackupStore(project_root, project_root / config.backup_dir, time),
        releases=RealReleaseClient(config.github_repo),
        shell=RealShell(),
        time=time,
        cwd=cwd,
        repo_root=repo_root,
        config=config,
        dry_run=False,
    )
    if dry_run:
        return with_dry_run(ctx)
    return ctx
