from __future__ import annotations

import sys
import threading
from pathlib import Path

import pytest

from build_runner import BuildCompletion, MergeCancelled, ProgressMonitor, ShellBuild


def test_completion_accepts_only_the_first_callback() -> None:
    completion = BuildCompletion()
    completion(False, 0)
    completion(True, 5)

    assert completion.wait(ProgressMonitor()) == (False, 0)
    assert completion.succeeded


def test_completion_from_another_thread() -> None:
    completion = BuildCompletion()
    timer = threading.Timer(0.05, completion, args=(False, 2))
    timer.start()

    assert completion.wait(ProgressMonitor(), interval=0.01) == (False, 2)
    assert not completion.succeeded


def test_wait_observes_cancellation_between_polls() -> None:
    completion = BuildCompletion()
    ticks = []

    def on_tick() -> None:
        ticks.append(1)
        if len(ticks) == 2:
            monitor.cancel()

    monitor = ProgressMonitor(on_tick=on_tick)

    with pytest.raises(MergeCancelled):
        completion.wait(monitor, interval=0.01)
    assert len(ticks) == 2


def run_build(command: str, cwd: Path) -> BuildCompletion:
    completion = BuildCompletion()
    ShellBuild(command, cwd).build(completion)
    completion.wait(ProgressMonitor(), interval=0.01)
    return completion


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")
def test_shell_build_success(tmp_path: Path) -> None:
    completion = run_build("echo building > built.txt", tmp_path)

    assert completion.succeeded
    assert (tmp_path / "built.txt").read_text().strip() == "building"


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")
def test_shell_build_failure(tmp_path: Path) -> None:
    completion = run_build("exit 3", tmp_path)

    assert not completion.aborted
    assert completion.error_count == 1


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")
def test_shell_build_cancel(tmp_path: Path) -> None:
    completion = BuildCompletion()
    build = ShellBuild("sleep 30", tmp_path)
    build.build(completion)
    ticks = []

    def on_tick() -> None:
        ticks.append(1)
        if len(ticks) == 3:
            build.cancel()

    completion.wait(ProgressMonitor(on_tick=on_tick), interval=0.05)

    assert completion.aborted


def test_shell_build_runs_once(tmp_path: Path) -> None:
    build = ShellBuild("true", tmp_path)
    completion = BuildCompletion()
    build.build(completion)

    with pytest.raises(RuntimeError):
        build.build(completion)
    completion.wait(ProgressMonitor(), interval=0.01)
