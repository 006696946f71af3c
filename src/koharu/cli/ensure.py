"""CLI error handling utilities with styled output.

This module provides the Ensure class for asserting preconditions in CLI
commands with consistent, user-friendly error messages. All errors use a red
"Error:" prefix for visual consistency and exit with status 1.
"""

from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click

from koharu.cli.output import user_output

if TYPE_CHECKING:
    from koharu.core.context import KoharuContext


def _fail(error_message: str) -> NoReturn:
    user_output(click.style("Error: ", fg="red") + error_message)
    raise SystemExit(1)


class Ensure:
    """Helper class for asserting preconditions with consistent error handling."""

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Args:
            condition: Boolean condition to check
            error_message: Error message to display if condition is false.
                          "Error: " prefix will be added automatically in red.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            _fail(error_message)

    @staticmethod
    def not_none[T](value: T | None, error_message: str) -> T:
        """Ensure value is not None, otherwise output styled error and exit.

        Returns:
            The value unchanged, narrowed to T

        Raises:
            SystemExit: If value is None (with exit code 1)
        """
        if value is None:
            _fail(error_message)
        return value

    @staticmethod
    def in_repository(ctx: "KoharuContext") -> Path:
        """Ensure the CLI runs inside a git repository and return its root.

        Raises:
            SystemExit: If cwd is not inside a git repository
        """
        return Ensure.not_none(
            ctx.repo_root,
            "Not inside a git repository. Run koharu from your blog's project directory.",
        )

    @staticmethod
    def file_exists(path: Path, error_message: str | None = None) -> None:
        """Ensure path is an existing file, otherwise output styled error and exit."""
        if not path.is_file():
            _fail(error_message if error_message is not None else f"File not found: {path}")
