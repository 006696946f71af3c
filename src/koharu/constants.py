"""Project-wide constants for the koharu CLI."""

from dataclasses import dataclass

UPSTREAM_REMOTE = "upstream"
UPSTREAM_URL = "https://github.com/cosZone/astro-koharu.git"
GITHUB_REPO = "cosZone/astro-koharu"
MAIN_BRANCH = "main"

INSTALL_COMMAND = ("pnpm", "install")

CONFIG_DIR_NAME = ".koharu"
CONFIG_FILE_NAME = "config.toml"

BACKUP_DIR_NAME = "backups"
MANIFEST_NAME = "astro-koharu-backup"
MANIFEST_FILENAME = "manifest.json"
MANIFEST_FORMAT_VERSION = 1
BACKUP_FILE_EXTENSION = ".tar.gz"
BACKUP_FILE_PREFIX = "backup-"
TEMP_DIR_PREFIX = ".tmp-backup-"

UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class BackupItem:
    """One file or directory captured by a backup.

    Attributes:
        src: Path relative to the project root
        dest: Path inside the backup archive
        label: Human-readable name
        required: Included in basic backups (and therefore user-owned content)
        pattern: For directories, only files matching this glob are captured
    """

    src: str
    dest: str
    label: str
    required: bool
    pattern: str | None = None


BACKUP_ITEMS: tuple[BackupItem, ...] = (
    BackupItem("src/content/blog", "content/blog", "Blog posts", required=True),
    BackupItem("config/site.yaml", "config/site.yaml", "Site configuration", required=True),
    BackupItem("src/pages", "pages", "Standalone pages", required=True, pattern="*.md"),
    BackupItem("public/img", "img", "User images", required=True),
    BackupItem(".env", "env", "Environment variables", required=True),
    BackupItem("public/favicon.ico", "favicon.ico", "Favicon", required=False),
    BackupItem("src/assets/lqips.json", "assets/lqips.json", "LQIP data", required=False),
    BackupItem(
        "src/assets/similarities.json",
        "assets/similarities.json",
        "Similarity data",
        required=False,
    ),
    BackupItem(
        "src/assets/summaries.json", "assets/summaries.json", "AI summary data", required=False
    ),
)

# Paths the update process must never silently overwrite with upstream content
USER_CONTENT_ITEMS: tuple[BackupItem, ...] = tuple(item for item in BACKUP_ITEMS if item.required)
USER_CONTENT_PATHS: tuple[str, ...] = tuple(item.src for item in USER_CONTENT_ITEMS)
