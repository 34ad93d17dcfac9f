#!/usr/bin/env python3
"""Git command helpers for the multi-merge GUI and CLI tools."""
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Sequence

from repo_state import CommandResult

logger = logging.getLogger(__name__)

# Ctrl-C goes to the terminal's process group; git runs in its own session so a
# cancelled run finishes the command in flight instead of killing it halfway.
DETACH = os.name == "posix"


class GitManagerError(Exception):
    """Raised for recoverable multi-merge errors."""


class GitOperations:
    """Thin wrappers around git invocations."""

    @staticmethod
    def run_git(args: Sequence[str], *, cwd: Path) -> str:
        """Run a git command and return stdout; raise on failure."""
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            check=False,
            text=True,
            capture_output=True,
            start_new_session=DETACH,
        )
        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip()
            raise GitManagerError(f"git {' '.join(args)} failed in {cwd}: {stderr}")
        return result.stdout

    @staticmethod
    def run_command(args: Sequence[str], *, cwd: Path) -> CommandResult:
        """Run a git command and describe the outcome instead of raising."""
        logger.debug("git %s (in %s)", " ".join(args), cwd)
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=str(cwd),
                check=False,
                text=True,
                capture_output=True,
                start_new_session=DETACH,
            )
        except OSError as exc:
            return CommandResult.failure(str(exc))
        error_text = ""
        if result.returncode != 0:
            error_text = result.stderr.strip() or result.stdout.strip()
            logger.debug("git %s exited with %d: %s", args[0], result.returncode, error_text)
        return CommandResult(
            success=result.returncode == 0,
            exit_code=result.returncode,
            output=result.stdout,
            error_text=error_text,
        )

    @staticmethod
    def git_ok(args: Sequence[str], *, cwd: Path) -> bool:
        """Return True when git exits with status 0."""
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=DETACH,
        )
        return result.returncode == 0
