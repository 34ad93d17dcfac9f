#!/usr/bin/env python3
"""Temporary branch naming."""
from __future__ import annotations

import logging
from typing import Sequence

from branch_manager import BranchManager
from repo_state import RepoState

logger = logging.getLogger(__name__)

TEMP_BRANCH_BASE = "multi-merge"


class TempBranchNamer:
    """Pick one branch name that is free in every repository of the fleet."""

    def __init__(self, commands=BranchManager, base_name: str = TEMP_BRANCH_BASE) -> None:
        self.commands = commands
        self.base_name = base_name

    def _taken_in(self, fleet: Sequence[RepoState], candidate: str) -> list[str]:
        return [repo.name for repo in fleet if self.commands.find_branch(repo, candidate)]

    def reserve(self, fleet: Sequence[RepoState]) -> str:
        index = 0
        candidate = self.base_name
        taken_in = self._taken_in(fleet, candidate)
        while taken_in:
            logger.debug("Branch %s already exists in %s", candidate, ", ".join(taken_in))
            index += 1
            candidate = f"{self.base_name}{index}"
            taken_in = self._taken_in(fleet, candidate)
        logger.info("Reserved temporary branch %s", candidate)
        return candidate
