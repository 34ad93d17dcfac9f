from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, List

import pytest

from repo_state import RepoState


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=str(repo), check=True, text=True, capture_output=True)
    return result.stdout


@pytest.fixture
def fleet(tmp_path: Path) -> Callable[..., List[RepoState]]:
    """Repository handles for the fake command port; the paths are never touched."""

    def make(*names: str) -> List[RepoState]:
        return [RepoState(path=tmp_path / name, name=name, current_branch="main") for name in names]

    return make


@pytest.fixture
def git_repo(tmp_path: Path) -> Callable[..., Path]:
    """Create a real repository on ``main`` with one commit and the given extra branches."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    def make(name: str, branches: tuple[str, ...] = ()) -> Path:
        repo = tmp_path / "fleet" / name
        repo.mkdir(parents=True)
        git(repo, "init", "-q")
        git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
        git(repo, "config", "user.name", "Test User")
        git(repo, "config", "user.email", "test@example.com")
        git(repo, "config", "commit.gpgsign", "false")
        (repo / "README.md").write_text(f"# {name}\n", encoding="utf-8")
        git(repo, "add", "README.md")
        git(repo, "commit", "-q", "-m", "initial")
        for branch in branches:
            git(repo, "checkout", "-q", "-b", branch)
            (repo / f"{branch}.txt").write_text(f"{branch}\n", encoding="utf-8")
            git(repo, "add", f"{branch}.txt")
            git(repo, "commit", "-q", "-m", f"add {branch}")
            git(repo, "checkout", "-q", "main")
        return repo

    return make
