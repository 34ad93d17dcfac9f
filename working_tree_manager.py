#!/usr/bin/env python3
"""Working tree utilities."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

from git_operations import GitManagerError, GitOperations
from repo_state import RepoState

logger = logging.getLogger(__name__)


class WorkingTreeManager:
    """Helpers for stashing and cleanliness checks."""

    @staticmethod
    def is_clean(repo: Path) -> bool:
        return GitOperations.git_ok(["diff", "--quiet"], cwd=repo) and GitOperations.git_ok(["diff", "--cached", "--quiet"], cwd=repo)

    @staticmethod
    def stash(repo: Path, message: str) -> None:
        GitOperations.run_git(["stash", "push", "-u", "-m", message], cwd=repo)

    @staticmethod
    def pop_stash(repo: Path) -> None:
        GitOperations.run_git(["stash", "pop"], cwd=repo)

    def preserve(self, fleet: Iterable[RepoState], label: str) -> List[RepoState]:
        """Stash local changes in every dirty repository; return the ones stashed.

        If a stash fails, the ones already taken are popped again before raising.
        """
        stashed: List[RepoState] = []
        for repo in fleet:
            if self.is_clean(repo.path):
                continue
            try:
                self.stash(repo.path, label)
            except GitManagerError:
                self.restore(stashed)
                raise
            logger.info("Stashed local changes in %s", repo.name)
            stashed.append(repo)
        return stashed

    def restore(self, stashed: Iterable[RepoState]) -> List[str]:
        """Pop the stashes taken by preserve(); return a warning per repository that failed."""
        warnings: List[str] = []
        for repo in stashed:
            try:
                self.pop_stash(repo.path)
            except GitManagerError as exc:
                logger.warning("Could not restore local changes in %s: %s", repo.name, exc)
                warnings.append(f"{repo.name}: stash pop had conflicts or failed, resolve manually ({exc})")
            else:
                logger.info("Restored local changes in %s", repo.name)
        return warnings
