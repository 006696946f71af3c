"""Release metadata types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReleaseInfo:
    """A published release of the upstream theme.

    Attributes:
        tag_name: Tag the release was cut from (e.g. "v2.1.0")
        url: Release page on GitHub
        body: Markdown release notes, if the release has any
    """

    tag_name: str
    url: str
    body: str | None = None
