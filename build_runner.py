#!/usr/bin/env python3
"""Build step and cooperative cancellation for a multi-merge run."""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

BuildCallback = Callable[[bool, int], None]

POLL_INTERVAL = 0.1


class MergeCancelled(Exception):
    """Raised inside a run when the operator asked to stop."""


class ProgressMonitor:
    """Cancellation flag checked between repositories and while waiting for the build.

    ``on_tick`` runs on every check; a GUI uses it to keep its event loop alive.
    """

    def __init__(
        self,
        on_tick: Optional[Callable[[], None]] = None,
        on_text: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._cancelled = threading.Event()
        self._on_tick = on_tick
        self._on_text = on_text

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def set_text(self, text: str) -> None:
        logger.debug(text)
        if self._on_text:
            self._on_text(text)

    def check_cancelled(self) -> None:
        if self._on_tick:
            self._on_tick()
        if self._cancelled.is_set():
            raise MergeCancelled()


class BuildPort(Protocol):
    def build(self, on_complete: BuildCallback) -> None:
        ...

    def cancel(self) -> None:
        ...


class BuildCompletion:
    """Single-shot completion signal for the build callback."""

    def __init__(self) -> None:
        self._done = threading.Event()
        self._lock = threading.Lock()
        self.aborted = False
        self.error_count = 0

    def __call__(self, aborted: bool, error_count: int) -> None:
        with self._lock:
            if self._done.is_set():
                logger.warning("Ignoring repeated build completion (aborted=%s, errors=%d)", aborted, error_count)
                return
            self.aborted = aborted
            self.error_count = error_count
            self._done.set()

    @property
    def succeeded(self) -> bool:
        return not self.aborted and self.error_count == 0

    def wait(self, monitor: ProgressMonitor, interval: float = POLL_INTERVAL) -> Tuple[bool, int]:
        """Block until the build reports back, checking for cancellation every tick."""
        while not self._done.wait(interval):
            monitor.check_cancelled()
        return self.aborted, self.error_count


class ShellBuild:
    """Run a shell build command on a worker thread."""

    def __init__(self, command: str, cwd: Path) -> None:
        self.command = command
        self.cwd = cwd
        self._process: Optional[subprocess.Popen] = None
        self._cancelled = False
        self._started = False
        self._lock = threading.Lock()

    def build(self, on_complete: BuildCallback) -> None:
        if self._started:
            raise RuntimeError("ShellBuild runs only once")
        self._started = True
        thread = threading.Thread(target=self._run, args=(on_complete,), name="multi-merge-build", daemon=True)
        thread.start()

    def _run(self, on_complete: BuildCallback) -> None:
        logger.info("Building with %r in %s", self.command, self.cwd)
        with self._lock:
            if self._cancelled:
                on_complete(True, 0)
                return
            try:
                # Own process group, so cancel() also stops whatever the shell started.
                self._process = subprocess.Popen(
                    self.command,
                    shell=True,
                    cwd=str(self.cwd),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    start_new_session=os.name == "posix",
                )
            except OSError as exc:
                logger.error("Build could not start: %s", exc)
                on_complete(False, 1)
                return

        output, _ = self._process.communicate()
        returncode = self._process.returncode
        if output:
            logger.debug("Build output:\n%s", output.rstrip())
        aborted = self._cancelled or returncode < 0
        errors = 0 if returncode == 0 else 1
        logger.info("Build finished with exit code %d", returncode)
        on_complete(aborted, errors)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            process = self._process
        if process is None or process.poll() is not None:
            return
        logger.info("Terminating build")
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGTERM)
            else:
                process.terminate()
        except ProcessLookupError:
            pass
