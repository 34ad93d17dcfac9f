#!/usr/bin/env python3
"""Branch management helpers."""
from __future__ import annotations

from typing import List, Optional, Sequence

from git_operations import GitOperations
from repo_state import CommandResult, RepoState

# git's wording when a merge argument does not name any known commit
UNKNOWN_REFERENCE_MARKERS = ("not something we can merge",)


class BranchManager:
    """Git actions the multi-merge run performs against one repository."""

    @staticmethod
    def checkout_new_branch(repo: RepoState, branch: str) -> CommandResult:
        return GitOperations.run_command(["checkout", "-b", branch], cwd=repo.path)

    @staticmethod
    def checkout(repo: RepoState, branch: str, *, force: bool = False) -> CommandResult:
        args = ["checkout"]
        if force:
            args.append("--force")
        args.append(branch)
        return GitOperations.run_command(args, cwd=repo.path)

    @staticmethod
    def delete_branch(repo: RepoState, branch: str, *, force: bool = False) -> CommandResult:
        return GitOperations.run_command(["branch", "-D" if force else "-d", branch], cwd=repo.path)

    @staticmethod
    def merge(repo: RepoState, branches: Sequence[str]) -> CommandResult:
        """Merge the given branches into the current branch.

        A reference git cannot resolve comes back as a skip rather than a failure.
        """
        result = GitOperations.run_command(["merge", "--no-edit", *branches], cwd=repo.path)
        if not result.success and any(marker in result.error_text for marker in UNKNOWN_REFERENCE_MARKERS):
            return CommandResult(
                success=False,
                exit_code=result.exit_code,
                output=result.output,
                error_text=result.error_text,
                skip=True,
            )
        return result

    @staticmethod
    def reset_merge(repo: RepoState) -> CommandResult:
        """Abort an in-progress merge, falling back to resetting the merge state."""
        if (repo.path / ".git" / "MERGE_HEAD").exists():
            result = GitOperations.run_command(["merge", "--abort"], cwd=repo.path)
            if result.success:
                return result
        return GitOperations.run_command(["reset", "--merge"], cwd=repo.path)

    @staticmethod
    def list_local_branches(repo: RepoState) -> List[str]:
        out = GitOperations.run_git(["for-each-ref", "--format=%(refname:short)", "refs/heads"], cwd=repo.path)
        return [line.strip() for line in out.splitlines() if line.strip()]

    @staticmethod
    def list_remote_branches(repo: RepoState) -> List[str]:
        out = GitOperations.run_git(["for-each-ref", "--format=%(refname:short)", "refs/remotes"], cwd=repo.path)
        # origin/HEAD is a symbolic pointer, not a branch
        return [line.strip() for line in out.splitlines() if line.strip() and not line.strip().endswith("/HEAD")]

    @staticmethod
    def find_branch(repo: RepoState, name: str) -> bool:
        """Return True when ``name`` is a local branch or a remote-tracking branch."""
        if GitOperations.git_ok(["show-ref", "--verify", "--quiet", f"refs/heads/{name}"], cwd=repo.path):
            return True
        return GitOperations.git_ok(["show-ref", "--verify", "--quiet", f"refs/remotes/{name}"], cwd=repo.path)

    @staticmethod
    def current_branch(repo: RepoState) -> Optional[str]:
        """Return the checked-out branch, or None on a detached HEAD."""
        result = GitOperations.run_command(["symbolic-ref", "--short", "-q", "HEAD"], cwd=repo.path)
        branch = result.output.strip()
        return branch or None
