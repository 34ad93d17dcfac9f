"""Git configuration management."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable

from git_operations import GitOperations, GitManagerError
from repo_state import RepoState


class GitConfig:
    """Handles git configuration operations."""

    @staticmethod
    def identity(repo: Path) -> tuple[str, str]:
        """Return (name, email); empty strings when unset."""
        name = GitOperations.run_command(["config", "user.name"], cwd=repo).output.strip()
        email = GitOperations.run_command(["config", "user.email"], cwd=repo).output.strip()
        return name, email

    @staticmethod
    def ensure_fleet_identity(fleet: Iterable[RepoState]) -> None:
        """Merge commits need an author; fail before touching anything if one is missing."""
        missing = [repo.name for repo in fleet if not all(GitConfig.identity(repo.path))]
        if missing:
            raise GitManagerError(
                "Git user not configured in " + ", ".join(missing) + ". Set user.name and user.email first."
            )
