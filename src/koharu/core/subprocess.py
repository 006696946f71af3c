"""Subprocess execution with rich error context.

Every integration that shells out (git, the package manager) goes through
run_subprocess_with_context so that failures surface as RuntimeError with the
operation, the command line, the exit code and whatever the tool printed.
"""

import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path


def _decode(stream: str | bytes | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace").strip()
    return stream.strip()


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    check: bool = True,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute a command, re-raising failures as RuntimeError with context.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description of the operation,
            phrased to follow "Failed to" (e.g. "fetch from remote 'upstream'")
        cwd: Working directory for command execution
        check: Whether a non-zero exit status raises
        env: Full environment for the child process (inherits when None)

    Returns:
        CompletedProcess with text stdout/stderr

    Raises:
        RuntimeError: If the command fails or its binary is not installed
    """
    try:
        return subprocess.run(
            list(cmd),
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=check,
            env=None if env is None else dict(env),
        )

    except subprocess.CalledProcessError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Failed to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        error_msg += f"\nExit code: {e.returncode}"

        stdout_text = _decode(e.stdout)
        if stdout_text:
            error_msg += f"\nstdout: {stdout_text}"

        stderr_text = _decode(e.stderr)
        if stderr_text:
            error_msg += f"\nstderr: {stderr_text}"

        raise RuntimeError(error_msg) from e

    except FileNotFoundError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
        error_msg += f"\nFull command: {cmd_str}"
        raise RuntimeError(error_msg) from e
