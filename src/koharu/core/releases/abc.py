"""Release metadata client interface.

Release notes only decorate the update preview. Callers treat every
failure as "no release notes available".
"""

from abc import ABC, abstractmethod

from koharu.core.releases.types import ReleaseInfo


class ReleaseClient(ABC):
    """Abstract interface for fetching release notes."""

    @abstractmethod
    def fetch_release_info(self, version: str) -> ReleaseInfo:
        """Fetch the release published for a version.

        Args:
            version: Bare version without the "v" prefix (e.g. "2.1.0")

        Raises:
            httpx.HTTPError: If the request fails or the release does not exist
            ValueError: If the response is not a release object
        """
        ...
