#!/usr/bin/env python3
"""Repository discovery and branch snapshots."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Set

from branch_manager import BranchManager
from git_operations import GitManagerError
from repo_state import RepoState

logger = logging.getLogger(__name__)


def _current_branch(repo: Path) -> str:
    branch = BranchManager.current_branch(RepoState(path=repo, name=repo.name, current_branch=""))
    return branch or "HEAD"


class RepoScanner:
    """Scan a base directory for git repositories and record their branches."""

    @staticmethod
    def scan(base_dir: Path) -> List[RepoState]:
        base_dir = base_dir.expanduser()
        if not base_dir.is_dir():
            raise GitManagerError(f"Base directory '{base_dir}' not found")

        states: List[RepoState] = []
        for child in sorted(base_dir.iterdir()):
            if not child.is_dir() or not (child / ".git").is_dir():
                continue
            states.append(RepoState(path=child, name=child.name, current_branch=_current_branch(child)))
        logger.info("Found %d repositories under %s", len(states), base_dir)
        return states

    @staticmethod
    def snapshot_branches(fleet: Iterable[RepoState], commands=BranchManager) -> Dict[RepoState, str]:
        """Record the branch each repository is on before anything is touched."""
        originals: Dict[RepoState, str] = {}
        for repo in fleet:
            branch = commands.current_branch(repo)
            if not branch:
                raise GitManagerError(f"{repo.name} is not on a branch (detached HEAD); check out a branch first")
            originals[repo] = branch
        return originals

    @staticmethod
    def all_branch_names(fleet: Iterable[RepoState], commands=BranchManager) -> Set[str]:
        """Union of local and remote branch names across the fleet."""
        names: Set[str] = set()
        for repo in fleet:
            names.update(commands.list_local_branches(repo))
            names.update(commands.list_remote_branches(repo))
        return names
