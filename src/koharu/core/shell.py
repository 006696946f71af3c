"""Shell command execution abstraction.

The update workflow finishes by installing dependencies with the project's
package manager. Routing that through Shell keeps tests from spawning it.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from koharu.core.subprocess import run_subprocess_with_context

logger = logging.getLogger(__name__)


class Shell(ABC):
    """Abstract interface for running external commands."""

    @abstractmethod
    def run_command(self, command: Sequence[str], cwd: Path) -> None:
        """Run a command to completion in cwd.

        Raises:
            RuntimeError: If the command is missing or exits non-zero
        """
        ...


class RealShell(Shell):
    """Production implementation using subprocess."""

    def run_command(self, command: Sequence[str], cwd: Path) -> None:
        logger.debug("Running %s in %s", " ".join(command), cwd)
        run_subprocess_with_context(command, f"run '{' '.join(command)}'", cwd=cwd)
