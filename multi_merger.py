#!/usr/bin/env python3
"""Merge a set of branches into every repository of a fleet, with rollback on failure."""
from __future__ import annotations

import functools
import logging
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from branch_manager import BranchManager
from build_runner import BuildCompletion, BuildPort, MergeCancelled, ProgressMonitor
from compensation import CompensationController, DecisionPort
from compound_result import CompoundResult
from git_operations import GitManagerError
from merge_plan import MergePlan
from repo_scanner import RepoScanner
from repo_state import CommandResult, MergePhase, RepoState, RunState
from temp_branch import TempBranchNamer
from working_tree_manager import WorkingTreeManager

logger = logging.getLogger(__name__)

PRESERVE_LABEL = "multi-merge"


class Notifier(Protocol):
    def notify_success(self, title: str, body: str = "") -> None:
        ...

    def notify_error(self, title: str, body: str) -> None:
        ...


class LogNotifier:
    """Notifier that only writes to the log."""

    def notify_success(self, title: str, body: str = "") -> None:
        logger.info("%s%s", title, f": {body}" if body else "")

    def notify_error(self, title: str, body: str) -> None:
        logger.error("%s: %s", title, body)


class MultiMerger:
    """Runs one multi-merge: temp branch checkout, merge, build, checkout back.

    The fleet is processed strictly in the given order, one repository at a
    time. When a git action fails the operator is asked whether to undo the
    repositories that already completed the phase; nothing is retried.
    """

    def __init__(
        self,
        fleet: Sequence[RepoState],
        temp_branch: str,
        original_branches: Mapping[RepoState, str],
        plan: MergePlan,
        *,
        commands=BranchManager,
        decider: Optional[DecisionPort] = None,
        notifier: Optional[Notifier] = None,
        build: Optional[BuildPort] = None,
        quit_fn: Optional[Callable[[], None]] = None,
        preserver: Optional[WorkingTreeManager] = None,
    ) -> None:
        missing = [repo.name for repo in fleet if repo not in original_branches]
        if missing:
            raise GitManagerError(f"No original branch recorded for {', '.join(missing)}")
        if plan.make and build is None:
            raise GitManagerError("Building after the merge was requested but no build is configured")

        self.fleet: List[RepoState] = list(fleet)
        self.temp_branch = temp_branch
        self.original_branches: Dict[RepoState, str] = dict(original_branches)
        self.plan = plan
        self.commands = commands
        self.notifier: Notifier = notifier or LogNotifier()
        self.build = build
        self.quit_fn = quit_fn
        self.preserver = preserver
        self.compensation = CompensationController(decider)
        self.phase = MergePhase.CHECKOUT
        self.history: List[MergePhase] = [MergePhase.CHECKOUT]

    @classmethod
    def for_fleet(cls, fleet: Sequence[RepoState], plan: MergePlan, *, commands=BranchManager, **ports) -> "MultiMerger":
        """Snapshot the original branches and reserve the temp branch, then build the merger."""
        original_branches = RepoScanner.snapshot_branches(fleet, commands)
        temp_branch = TempBranchNamer(commands).reserve(fleet)
        return cls(fleet, temp_branch, original_branches, plan, commands=commands, **ports)

    # --- state machine ---------------------------------------------------
    def _enter(self, phase: MergePhase) -> None:
        logger.info("Multi-merge: %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        self.history.append(phase)

    def run(self, monitor: Optional[ProgressMonitor] = None) -> MergePhase:
        """Run every phase and return the terminal state (DONE or ABORTED)."""
        if len(self.history) > 1:
            raise GitManagerError("A multi-merge run can only be started once")
        monitor = monitor or ProgressMonitor()

        stashed: List[RepoState] = []
        if self.preserver is not None:
            try:
                stashed = self.preserver.preserve(self.fleet, PRESERVE_LABEL)
            except GitManagerError as exc:
                logger.error("Could not preserve local changes: %s", exc)
                self.notifier.notify_error("Could not preserve local changes", f"{exc}\nNothing was changed.")
                self._enter(MergePhase.ABORTED)
                return self.phase
        try:
            self._run_phases(monitor)
        except MergeCancelled:
            self.notifier.notify_error(
                "Multi-merge cancelled",
                f"Stopped during {self.phase.value}; repositories were left as they are.",
            )
            self._enter(MergePhase.ABORTED)
        except Exception:
            logger.exception("Multi-merge stopped unexpectedly during %s", self.phase.value)
            self._enter(MergePhase.ABORTED)
            raise
        finally:
            if self.preserver is not None:
                warnings = self.preserver.restore(stashed)
                if warnings:
                    self.notifier.notify_error("Local changes not restored", "\n".join(warnings))

        if self.phase is MergePhase.DONE and self.plan.quit_after_make and self.quit_fn is not None:
            logger.info("Quitting after a successful build")
            self.quit_fn()
        return self.phase

    def _run_phases(self, monitor: ProgressMonitor) -> None:
        if not self._checkout_temp_branch(monitor):
            self._enter(MergePhase.ABORTED)
            return

        self._enter(MergePhase.MERGE)
        if not self._merge(monitor):
            self._enter(MergePhase.ABORTED)
            return
        if not self.plan.make:
            self._enter(MergePhase.DONE)
            return

        self._enter(MergePhase.AWAIT_BUILD)
        if not self._await_build(monitor):
            # The merge stays in place; a failed build is not a VCS failure.
            self._enter(MergePhase.ABORTED)
            return
        if not self.plan.checkout_back_after_make:
            self._enter(MergePhase.DONE)
            return

        self._enter(MergePhase.ROLLBACK_CHECKOUT)
        restored = self._checkout_originals(
            self.fleet,
            delete_temp_branch=self.plan.delete_temp_branch,
            success_title="Checked out original branches",
            monitor=monitor,
        )
        self._enter(MergePhase.DONE if restored else MergePhase.ABORTED)

    # --- phases ------------------------------------------------------------
    def _checkout_temp_branch(self, monitor: ProgressMonitor) -> bool:
        state = RunState()
        for repo in self.fleet:
            monitor.check_cancelled()
            monitor.set_text(f"Checking out {self.temp_branch} in {repo.name}")
            result = self.commands.checkout_new_branch(repo, self.temp_branch)
            self._check_interrupted(result, monitor)
            if not result.success:
                self._report_failure("Checkout Failed", repo, result)
                self.compensation.on_failure("Checkout Failed", result, state, self._undo_checkout)
                return False
            state.mark_succeeded(repo)
        return True

    def _merge(self, monitor: ProgressMonitor) -> bool:
        state = RunState()
        for repo in self.fleet:
            monitor.check_cancelled()
            existing = [branch for branch in self.plan.branches if self.commands.find_branch(repo, branch)]
            if not existing:
                logger.info("%s has none of %s, skipping", repo.name, ", ".join(self.plan.branches))
                state.mark_skipped(repo)
                continue

            monitor.set_text(f"Merging {', '.join(existing)} into {repo.name}")
            result = self.commands.merge(repo, existing)
            self._check_interrupted(result, monitor)
            if result.skip:
                # git disagreed with the existence check; treat it like a missing branch.
                logger.warning("%s: git could not resolve %s, skipping: %s", repo.name, ", ".join(existing), result.error_text)
                state.mark_skipped(repo)
                continue
            if not result.success:
                self._report_failure("Merge Failed", repo, result)
                self.compensation.on_failure(
                    "Merge Failed", result, state, functools.partial(self._undo_merge, repo)
                )
                return False
            state.mark_succeeded(repo)

        if state.skipped:
            self.notifier.notify_success("Merged successfully", "Skipped " + "\n".join(repo.name for repo in state.skipped))
        else:
            self.notifier.notify_success("Merged successfully")
        return True

    def _await_build(self, monitor: ProgressMonitor) -> bool:
        assert self.build is not None
        completion = BuildCompletion()
        monitor.set_text("Building...")
        self.build.build(completion)
        try:
            aborted, errors = completion.wait(monitor)
        except MergeCancelled:
            self.build.cancel()
            raise

        if completion.succeeded:
            self.notifier.notify_success("Build finished")
            return True
        if aborted:
            self.notifier.notify_error("Build Failed", f"The build was aborted; the merge is left on {self.temp_branch}.")
        else:
            self.notifier.notify_error(
                "Build Failed", f"The build reported {errors} error(s); the merge is left on {self.temp_branch}."
            )
        return False

    @staticmethod
    def _check_interrupted(result: CommandResult, monitor: ProgressMonitor) -> None:
        """A git process killed by a signal after cancellation is the cancellation, not a failure."""
        if not result.success and result.exit_code < 0 and monitor.is_cancelled:
            raise MergeCancelled()

    # --- undo --------------------------------------------------------------
    def _report_failure(self, title: str, repo: RepoState, result: CommandResult) -> None:
        text = result.error_text or f"exit code {result.exit_code}"
        logger.error("%s in %s: %s", title, repo.name, text)
        self.notifier.notify_error(title, f"{repo.name}: {text}")

    def _checkout_originals(
        self,
        repos: Sequence[RepoState],
        *,
        delete_temp_branch: bool,
        success_title: str,
        monitor: Optional[ProgressMonitor] = None,
    ) -> bool:
        result = CompoundResult()
        for repo in repos:
            if monitor is not None:
                monitor.check_cancelled()
            checkout = self.commands.checkout(repo, self.original_branches[repo], force=True)
            result.append(repo, checkout)
            if delete_temp_branch and checkout.success:
                result.append(repo, self.commands.delete_branch(repo, self.temp_branch, force=True))

        if result.total_success():
            self.notifier.notify_success(success_title)
            return True
        self.notifier.notify_error("Rollback Failed", result.error_report())
        return False

    def _undo_checkout(self, repos: Sequence[RepoState]) -> bool:
        return self._checkout_originals(repos, delete_temp_branch=True, success_title="Rolled back the checkout")

    def _undo_merge(self, failed_repo: RepoState, repos: Sequence[RepoState]) -> bool:
        reset = self.commands.reset_merge(failed_repo)
        if not reset.success:
            self.notifier.notify_error("Rollback Failed", f"{failed_repo.name}: {reset.error_text}")
        else:
            logger.info("Reset the merge in %s", failed_repo.name)
        restored = self._undo_checkout(repos)
        return reset.success and restored
