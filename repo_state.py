#!/usr/bin/env python3
"""Shared repository and run state models."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List


@dataclass(frozen=True)
class RepoState:
    path: Path
    name: str
    current_branch: str


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one git action against one repository.

    ``skip`` marks a reference git could not resolve. It is not a failure:
    the repository simply has nothing to do for this action.
    """

    success: bool
    exit_code: int = 0
    output: str = ""
    error_text: str = ""
    skip: bool = False

    @classmethod
    def ok(cls, output: str = "") -> "CommandResult":
        return cls(success=True, output=output)

    @classmethod
    def failure(cls, error_text: str, exit_code: int = 1) -> "CommandResult":
        return cls(success=False, exit_code=exit_code, error_text=error_text)


class MergePhase(str, Enum):
    CHECKOUT = "checkout"
    MERGE = "merge"
    AWAIT_BUILD = "await_build"
    ROLLBACK_CHECKOUT = "rollback_checkout"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunState:
    """Repositories that completed the current phase so far, in order."""

    succeeded: List[RepoState] = field(default_factory=list)
    skipped: List[RepoState] = field(default_factory=list)

    def mark_succeeded(self, repo: RepoState) -> None:
        self.succeeded.append(repo)

    def mark_skipped(self, repo: RepoState) -> None:
        # Skipped repositories still sit on the temp branch and need restoring.
        self.skipped.append(repo)
        self.succeeded.append(repo)
