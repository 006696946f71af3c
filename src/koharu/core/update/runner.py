"""Drives the update state machine to completion.

Commands emitted by a transition are executed strictly one after another;
the action each one reports is applied before the next command runs. When
no command is pending the workflow either takes its automatic action or
asks the presenter.
"""

import logging
from collections import deque

from koharu.core.context import KoharuContext
from koharu.core.update.effects import execute_command
from koharu.core.update.machine import FINAL_STATUSES, auto_action, start, transition
from koharu.core.update.presenter import UpdatePresenter
from koharu.core.update.types import (
    AbortRequested,
    Action,
    BackupConfirm,
    BackupSkip,
    Command,
    UpdateCancel,
    UpdateConfirm,
    UpdateOptions,
    UpdateState,
    UpdateStatus,
)

logger = logging.getLogger(__name__)


def _ask(presenter: UpdatePresenter, state: UpdateState) -> Action | None:
    match state.status:
        case UpdateStatus.BACKUP_CONFIRM:
            choice = presenter.choose_backup(state)
            if choice == "backup":
                return BackupConfirm()
            if choice == "skip":
                return BackupSkip()
            return UpdateCancel()
        case UpdateStatus.PREVIEW:
            return UpdateConfirm() if presenter.confirm_update(state) else UpdateCancel()
        case UpdateStatus.CONFLICT:
            if state.options.force:
                return None
            return AbortRequested() if presenter.confirm_abort(state) else None
        case _:
            return None


def run_update(
    ctx: KoharuContext, options: UpdateOptions, presenter: UpdatePresenter
) -> UpdateState:
    """Run the update workflow until it ends or waits on a choice nobody makes.

    Returns:
        The state the workflow stopped in. Its status is final, or conflict
        when the user left the conflicted operation in place.
    """
    initial = start(options, ctx.config.main_branch)
    state = initial.state
    pending: deque[Command] = deque(initial.commands)
    rendered: UpdateState | None = None

    while True:
        if pending:
            command = pending.popleft()
            presenter.show_progress(state, command)
            action = execute_command(ctx, state, command)
            if action is None:
                continue
            result = transition(state, action)
            state = result.state
            pending.extend(result.commands)
            continue

        if state is not rendered:
            presenter.render(state)
            rendered = state

        if state.status in FINAL_STATUSES:
            return state

        action = auto_action(state) or _ask(presenter, state)
        if action is None:
            return state

        result = transition(state, action)
        if result.state is state and not result.commands:
            logger.debug("%s changed nothing in %s; stopping", action, state.status.value)
            return state
        state = result.state
        pending.extend(result.commands)
