from __future__ import annotations

from pathlib import Path

from conftest import git
from repo_state import RepoState
from working_tree_manager import WorkingTreeManager


def handle(path: Path) -> RepoState:
    return RepoState(path=path, name=path.name, current_branch="main")


def test_preserve_stashes_only_dirty_repositories(git_repo) -> None:
    dirty = git_repo("dirty")
    clean = git_repo("clean")
    (dirty / "README.md").write_text("edited\n", encoding="utf-8")
    manager = WorkingTreeManager()

    stashed = manager.preserve([handle(dirty), handle(clean)], "multi-merge")

    assert [repo.name for repo in stashed] == ["dirty"]
    assert manager.is_clean(dirty)
    assert "multi-merge" in git(dirty, "stash", "list")

    assert manager.restore(stashed) == []
    assert (dirty / "README.md").read_text(encoding="utf-8") == "edited\n"
    assert git(dirty, "stash", "list") == ""


def test_restore_reports_conflicting_pop(git_repo) -> None:
    path = git_repo("app")
    (path / "README.md").write_text("local edit\n", encoding="utf-8")
    manager = WorkingTreeManager()
    stashed = manager.preserve([handle(path)], "multi-merge")

    # Something else changes the same lines while the changes are stashed.
    (path / "README.md").write_text("merged edit\n", encoding="utf-8")
    git(path, "commit", "-q", "-am", "merged")

    warnings = manager.restore(stashed)

    assert len(warnings) == 1
    assert warnings[0].startswith("app:")
