"""GitHub REST API implementation of ReleaseClient."""

import logging

import httpx

from koharu.core.releases.abc import ReleaseClient
from koharu.core.releases.parsing import build_release_url
from koharu.core.releases.types import ReleaseInfo

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
REQUEST_TIMEOUT_SECONDS = 10.0


class RealReleaseClient(ReleaseClient):
    """Fetches releases from api.github.com.

    Args:
        repo: GitHub repository in format "owner/repo"
        transport: Optional httpx transport; tests pass an httpx.MockTransport
    """

    def __init__(self, repo: str, transport: httpx.BaseTransport | None = None) -> None:
        self._repo = repo
        self._transport = transport

    def fetch_release_info(self, version: str) -> ReleaseInfo:
        api_url = f"{GITHUB_API_URL}/repos/{self._repo}/releases/tags/v{version}"
        logger.debug("Fetching release info from %s", api_url)

        with httpx.Client(
            timeout=REQUEST_TIMEOUT_SECONDS,
            transport=self._transport,
            headers={"Accept": "application/vnd.github+json"},
        ) as client:
            response = client.get(api_url)
            response.raise_for_status()
            release_data = response.json()

        if not isinstance(release_data, dict):
            raise ValueError(f"Unexpected release payload for v{version}")

        body = release_data.get("body")
        return ReleaseInfo(
            tag_name=str(release_data.get("tag_name", f"v{version}")),
            url=str(release_data.get("html_url") or build_release_url(version, self._repo)),
            body=body if isinstance(body, str) and body.strip() else None,
        )
