from __future__ import annotations

from pathlib import Path

from branch_manager import BranchManager
from conftest import git
from repo_state import RepoState


def handle(path: Path) -> RepoState:
    return RepoState(path=path, name=path.name, current_branch="main")


def make_conflict(repo: Path) -> None:
    """Give main and ``conflict`` incompatible edits of README.md."""
    git(repo, "checkout", "-q", "-b", "conflict")
    (repo / "README.md").write_text("theirs\n", encoding="utf-8")
    git(repo, "commit", "-q", "-am", "theirs")
    git(repo, "checkout", "-q", "main")
    (repo / "README.md").write_text("ours\n", encoding="utf-8")
    git(repo, "commit", "-q", "-am", "ours")


def test_queries(git_repo) -> None:
    repo = handle(git_repo("app", branches=("feature",)))

    assert BranchManager.find_branch(repo, "feature")
    assert not BranchManager.find_branch(repo, "missing")
    assert BranchManager.current_branch(repo) == "main"
    assert BranchManager.list_local_branches(repo) == ["feature", "main"]
    assert BranchManager.list_remote_branches(repo) == []


def test_current_branch_on_detached_head(git_repo) -> None:
    path = git_repo("app")
    git(path, "checkout", "-q", "--detach")

    assert BranchManager.current_branch(handle(path)) is None


def test_checkout_new_branch_reports_collision(git_repo) -> None:
    repo = handle(git_repo("app", branches=("taken",)))

    result = BranchManager.checkout_new_branch(repo, "taken")

    assert not result.success
    assert result.exit_code != 0
    assert "taken" in result.error_text
    assert not result.skip


def test_checkout_back_and_delete(git_repo) -> None:
    repo = handle(git_repo("app"))
    assert BranchManager.checkout_new_branch(repo, "tmp").success

    assert BranchManager.checkout(repo, "main", force=True).success
    assert BranchManager.delete_branch(repo, "tmp", force=True).success
    assert BranchManager.current_branch(repo) == "main"
    assert not BranchManager.find_branch(repo, "tmp")


def test_merge_brings_in_branch(git_repo) -> None:
    repo = handle(git_repo("app", branches=("feature",)))

    result = BranchManager.merge(repo, ["feature"])

    assert result.success
    assert (repo.path / "feature.txt").exists()


def test_merge_of_unknown_reference_is_a_skip(git_repo) -> None:
    repo = handle(git_repo("app"))

    result = BranchManager.merge(repo, ["nope"])

    assert not result.success
    assert result.skip


def test_conflict_is_a_failure_and_can_be_reset(git_repo) -> None:
    path = git_repo("app")
    make_conflict(path)
    repo = handle(path)

    result = BranchManager.merge(repo, ["conflict"])

    assert not result.success
    assert not result.skip
    assert (path / ".git" / "MERGE_HEAD").exists()

    assert BranchManager.reset_merge(repo).success
    assert not (path / ".git" / "MERGE_HEAD").exists()
    assert (path / "README.md").read_text(encoding="utf-8") == "ours\n"
