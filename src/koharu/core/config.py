"""Per-repository settings stored in `.koharu/config.toml`."""

import shlex
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

import tomlkit

from koharu.constants import (
    BACKUP_DIR_NAME,
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    GITHUB_REPO,
    INSTALL_COMMAND,
    MAIN_BRANCH,
    UPSTREAM_REMOTE,
    UPSTREAM_URL,
)

CONFIG_KEYS = (
    "upstream.remote",
    "upstream.url",
    "upstream.repo",
    "upstream.branch",
    "install.command",
    "backup.dir",
)


class ConfigKeyError(KeyError):
    """Raised for a configuration key koharu does not know."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown configuration key: {self.key} (known keys: {', '.join(CONFIG_KEYS)})"


@dataclass(frozen=True)
class LoadedConfig:
    """In-memory representation of `.koharu/config.toml`."""

    upstream_remote: str = UPSTREAM_REMOTE
    upstream_url: str = UPSTREAM_URL
    github_repo: str = GITHUB_REPO
    main_branch: str = MAIN_BRANCH
    install_command: tuple[str, ...] = INSTALL_COMMAND
    backup_dir: str = BACKUP_DIR_NAME

    def get(self, key: str) -> str:
        """Get a setting by its dotted key, formatted for display."""
        match key:
            case "upstream.remote":
                return self.upstream_remote
            case "upstream.url":
                return self.upstream_url
            case "upstream.repo":
                return self.github_repo
            case "upstream.branch":
                return self.main_branch
            case "install.command":
                return shlex.join(self.install_command)
            case "backup.dir":
                return self.backup_dir
            case _:
                raise ConfigKeyError(key)

    def with_value(self, key: str, value: str) -> "LoadedConfig":
        """Return a copy with one setting changed.

        install.command is split like a shell command line.
        """
        match key:
            case "upstream.remote":
                return replace(self, upstream_remote=value)
            case "upstream.url":
                return replace(self, upstream_url=value)
            case "upstream.repo":
                return replace(self, github_repo=value)
            case "upstream.branch":
                return replace(self, main_branch=value)
            case "install.command":
                command = tuple(shlex.split(value))
                if not command:
                    raise ValueError("install.command must not be empty")
                return replace(self, install_command=command)
            case "backup.dir":
                return replace(self, backup_dir=value)
            case _:
                raise ConfigKeyError(key)


def config_path(repo_root: Path) -> Path:
    return repo_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_config(repo_root: Path) -> LoadedConfig:
    """Load .koharu/config.toml if present; otherwise return defaults.

    Example config:
      [upstream]
      remote = "upstream"
      url = "https://github.com/cosZone/astro-koharu.git"
      branch = "main"

      [install]
      command = ["pnpm", "install"]

      [backup]
      dir = "backups"
    """
    cfg_path = config_path(repo_root)
    if not cfg_path.exists():
        return LoadedConfig()

    data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    upstream = data.get("upstream", {})
    install = data.get("install", {})
    backup = data.get("backup", {})

    command = install.get("command")
    if command is None:
        install_command = INSTALL_COMMAND
    elif isinstance(command, str):
        install_command = tuple(shlex.split(command))
    else:
        install_command = tuple(str(part) for part in command)

    return LoadedConfig(
        upstream_remote=str(upstream.get("remote", UPSTREAM_REMOTE)),
        upstream_url=str(upstream.get("url", UPSTREAM_URL)),
        github_repo=str(upstream.get("repo", GITHUB_REPO)),
        main_branch=str(upstream.get("branch", MAIN_BRANCH)),
        install_command=install_command or INSTALL_COMMAND,
        backup_dir=str(backup.get("dir", BACKUP_DIR_NAME)),
    )


def save_config(repo_root: Path, config: LoadedConfig) -> None:
    """Save LoadedConfig to .koharu/config.toml, preserving formatting.

    Existing comments and unrelated tables survive; only koharu's own keys
    are rewritten. Creates the config directory if it doesn't exist.
    """
    cfg_path = config_path(repo_root)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)

    if cfg_path.exists():
        doc = tomlkit.parse(cfg_path.read_text(encoding="utf-8"))
    else:
        doc = tomlkit.document()

    upstream = doc.setdefault("upstream", tomlkit.table())
    upstream["remote"] = config.upstream_remote
    upstream["url"] = config.upstream_url
    upstream["repo"] = config.github_repo
    upstream["branch"] = config.main_branch

    install = doc.setdefault("install", tomlkit.table())
    install["command"] = list(config.install_command)

    backup = doc.setdefault("backup", tomlkit.table())
    backup["dir"] = config.backup_dir

    cfg_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
