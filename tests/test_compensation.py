from __future__ import annotations

from compensation import CompensationController, ConsoleDecision
from fakes import FakeDecision
from repo_state import CommandResult, RunState


def test_nothing_to_undo_means_no_question(fleet) -> None:
    decision = FakeDecision(True)
    undone = []

    ran = CompensationController(decision).on_failure("Merge Failed", CommandResult.failure("x"), RunState(), undone.append)

    assert not ran
    assert decision.asked == []
    assert undone == []


def test_accepted_undo_gets_exactly_the_succeeded_repositories(fleet) -> None:
    repo1, repo2, repo3 = fleet("repo1", "repo2", "repo3")
    state = RunState()
    state.mark_succeeded(repo1)
    state.mark_skipped(repo2)
    decision = FakeDecision(True)
    undone = []

    ran = CompensationController(decision).on_failure(
        "Checkout Failed", CommandResult.failure("fatal: oops"), state, undone.append
    )

    assert ran
    assert undone == [[repo1, repo2]]
    assert decision.asked == [("Checkout Failed", "fatal: oops\n\nDo you want to undo?")]


def test_declined_undo_runs_nothing(fleet) -> None:
    (repo1,) = fleet("repo1")
    state = RunState()
    state.mark_succeeded(repo1)
    undone = []

    ran = CompensationController(FakeDecision(False)).on_failure("Merge Failed", CommandResult.failure("x"), state, undone.append)

    assert not ran
    assert undone == []


def test_no_decider_runs_nothing(fleet) -> None:
    (repo1,) = fleet("repo1")
    state = RunState()
    state.mark_succeeded(repo1)
    undone = []

    assert not CompensationController(None).on_failure("Merge Failed", CommandResult.failure("x"), state, undone.append)
    assert undone == []


def test_console_decision_reads_answer() -> None:
    printed = []
    decision = ConsoleDecision(input_fn=lambda prompt: " Yes ", print_fn=printed.append)

    assert decision.confirm("Merge Failed", "CONFLICT")
    assert "Merge Failed" in printed[0]


def test_console_decision_defaults_to_no() -> None:
    def closed_stdin(prompt: str) -> str:
        raise EOFError

    assert not ConsoleDecision(input_fn=lambda prompt: "", print_fn=lambda text: None).confirm("t", "m")
    assert not ConsoleDecision(input_fn=closed_stdin, print_fn=lambda text: None).confirm("t", "m")
