"""Output utilities for CLI commands with clear intent.

user_output is for messages meant for a person and goes to stderr, so stdout
stays free for machine_output (paths, versions) that scripts may capture.
"""

from typing import Any

import click


def user_output(message: Any = "", nl: bool = True) -> None:
    """Write a human-facing message to stderr."""
    click.echo(message, nl=nl, err=True)


def machine_output(message: Any = "", nl: bool = True) -> None:
    """Write a machine-readable result to stdout."""
    click.echo(message, nl=nl)


def format_size(num_bytes: int) -> str:
    """Format a byte count as a short human-readable size ("1.5 MB")."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
