"""Facts read from the blog project's own files."""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def read_package_version(project_root: Path) -> str | None:
    """Read the "version" field of package.json.

    The theme bumps this field on every release, so it stands in for a
    version tag when the repository has none.

    Returns:
        The version string, or None if package.json is missing, unreadable,
        or has no string version
    """
    package_json = project_root / "package.json"
    if not package_json.exists():
        return None
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("Cannot read %s: %s", package_json, e)
        return None
    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version.strip():
        return None
    return version.strip()
