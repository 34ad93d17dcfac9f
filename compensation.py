#!/usr/bin/env python3
"""Operator-confirmed rollback of a partially completed phase."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

from repo_state import CommandResult, RepoState, RunState

logger = logging.getLogger(__name__)

UNDO_QUESTION = "Do you want to undo?"


class DecisionPort(Protocol):
    def confirm(self, title: str, message: str) -> bool:
        ...


class ConsoleDecision:
    """Ask yes/no questions on the terminal."""

    def __init__(self, input_fn: Callable[[str], str] = input, print_fn: Callable[[str], None] = print) -> None:
        self._input = input_fn
        self._print = print_fn

    def confirm(self, title: str, message: str) -> bool:
        self._print(f"\n❌ {title}\n{message}")
        try:
            answer = self._input("Undo? [y/N]: ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}


class CompensationController:
    """Decide whether to undo, and run the undo over the repositories that need it."""

    def __init__(self, decider: Optional[DecisionPort]) -> None:
        self.decider = decider

    def on_failure(
        self,
        title: str,
        failure: CommandResult,
        run_state: RunState,
        undo: Callable[[List[RepoState]], object],
    ) -> bool:
        """Return True when the undo action was run."""
        to_undo = list(run_state.succeeded)
        if not to_undo:
            logger.info("%s: nothing to undo", title)
            return False
        if self.decider is None:
            logger.warning("%s: no one to ask, leaving %d repositories as they are", title, len(to_undo))
            return False

        message = f"{failure.error_text}\n\n{UNDO_QUESTION}" if failure.error_text else UNDO_QUESTION
        if not self.decider.confirm(title, message):
            logger.info("%s: rollback declined", title)
            return False

        logger.info("%s: rolling back %s", title, ", ".join(repo.name for repo in to_undo))
        undo(to_undo)
        return True
