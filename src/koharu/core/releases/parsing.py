"""Helpers that turn release metadata into preview text."""

import re

from koharu.constants import GITHUB_REPO

MAX_SUMMARY_LINES = 8

_HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_HEADING = re.compile(r"^#{1,6}\s+(?P<text>.+?)\s*#*$")
_BULLET = re.compile(r"^(?:[-*+]|\d+[.)])\s+(?P<text>.+)$")


def build_release_url(version: str, repo: str = GITHUB_REPO) -> str:
    """Build the GitHub release page URL for a version ("2.1.0" or "v2.1.0")."""
    tag = version if version.startswith("v") else f"v{version}"
    return f"https://github.com/{repo}/releases/tag/{tag}"


def extract_release_summary(body: str, max_lines: int = MAX_SUMMARY_LINES) -> list[str]:
    """Pick the lines of a release body worth showing in an update preview.

    Headings and list items are kept (headings without their "#" marks,
    list items normalized to "- "); HTML comments and prose are dropped.
    A body with neither headings nor list items falls back to its first
    non-empty lines.

    Example:
        >>> extract_release_summary("## Features\\n\\n* Dark mode\\n<!-- hidden -->")
        ['Features', '- Dark mode']
    """
    text = _HTML_COMMENT.sub("", body.replace("\r\n", "\n"))
    lines = [line.strip() for line in text.split("\n") if line.strip()]

    summary: list[str] = []
    for line in lines:
        heading = _HEADING.match(line)
        if heading:
            summary.append(heading.group("text"))
            continue
        bullet = _BULLET.match(line)
        if bullet:
            summary.append(f"- {bullet.group('text')}")

    if not summary:
        summary = lines
    return summary[:max_lines]
