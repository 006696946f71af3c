from koharu.core.releases.abc import ReleaseClient
from koharu.core.releases.parsing import build_release_url, extract_release_summary
from koharu.core.releases.real import RealReleaseClient
from koharu.core.releases.types import ReleaseInfo

__all__ = [
    "RealReleaseClient",
    "ReleaseClient",
    "ReleaseInfo",
    "build_release_url",
    "extract_release_summary",
]
