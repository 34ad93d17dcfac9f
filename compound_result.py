#!/usr/bin/env python3
"""Combine per-repository results of one action into a single verdict."""
from __future__ import annotations

from typing import List, Tuple

from repo_state import CommandResult, RepoState


class CompoundResult:
    """Every appended result is kept; nothing short-circuits."""

    def __init__(self) -> None:
        self.results: List[Tuple[RepoState, CommandResult]] = []

    def append(self, repo: RepoState, result: CommandResult) -> None:
        self.results.append((repo, result))

    def total_success(self) -> bool:
        return all(result.success for _, result in self.results)

    def failed(self) -> List[Tuple[RepoState, CommandResult]]:
        return [(repo, result) for repo, result in self.results if not result.success]

    def error_report(self) -> str:
        """One line per failure: the repository name and git's error text."""
        lines = []
        for repo, result in self.failed():
            text = result.error_text or f"exit code {result.exit_code}"
            lines.append(f"{repo.name}: {text}")
        return "\n".join(lines)
