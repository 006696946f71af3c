"""User-facing side of the update workflow.

The runner never prints or prompts itself. It hands every state to an
UpdatePresenter and asks it for the decisions only a person can make.
"""

from abc import ABC, abstractmethod
from typing import Literal

from koharu.core.update.types import Command, UpdateState

BackupChoice = Literal["backup", "skip", "cancel"]


class UpdatePresenter(ABC):
    """Renders workflow states and answers the workflow's questions."""

    @abstractmethod
    def show_progress(self, state: UpdateState, command: Command) -> None:
        """Announce a command the runner is about to execute."""
        ...

    @abstractmethod
    def render(self, state: UpdateState) -> None:
        """Show a state the workflow settled in (preview, conflict, done, ...)."""
        ...

    @abstractmethod
    def choose_backup(self, state: UpdateState) -> BackupChoice:
        """Ask whether to back up before updating.

        When state.options.requires_backup is set, "skip" is not a valid
        answer; the workflow ignores it.
        """
        ...

    @abstractmethod
    def confirm_update(self, state: UpdateState) -> bool:
        """Ask for confirmation of the previewed update."""
        ...

    @abstractmethod
    def confirm_abort(self, state: UpdateState) -> bool:
        """Ask whether to abort the conflicted merge or rebase."""
        ...
