#!/usr/bin/env python3
"""Merge the same branches into every repository under a base directory."""
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from build_runner import ProgressMonitor, ShellBuild
from compensation import ConsoleDecision
from git_config import GitConfig
from git_operations import GitManagerError
from merge_plan import MergePlan
from multi_merger import MultiMerger
from repo_scanner import RepoScanner
from repo_state import MergePhase, RepoState
from settings_db import MergeSettings, SettingsDB
from working_tree_manager import WorkingTreeManager

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging for the multi-merge tools."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
    )


class ConsoleNotifier:
    def __init__(self, print_fn: Callable[[str], None] = print) -> None:
        self._print = print_fn

    def notify_success(self, title: str, body: str = "") -> None:
        self._print(f"✅ {title}")
        if body:
            self._print(body)

    def notify_error(self, title: str, body: str) -> None:
        self._print(f"❌ {title}")
        if body:
            self._print(body)


def print_repo_table(base_dir: Path, states: Iterable[RepoState]) -> None:
    print(f"\n🔍 Scanning repositories in: {base_dir}")
    print("📋 Repository summary:")
    print(f"{'No.':<4} {'Repository':<36} {'branch':<24}")
    print(f"{'----':<4} {'-'*36:<36} {'-'*24:<24}")
    for idx, state in enumerate(states, start=1):
        print(f"[{idx:<2}] {state.name:<36} {state.current_branch:<24}")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create a temporary branch in every repository under a base directory and merge branches into it."
    )
    parser.add_argument(
        "base_dir",
        nargs="?",
        default=os.environ.get("BASE_DIR"),
        help="Base directory containing git repositories (default: $BASE_DIR or the last one used)",
    )
    parser.add_argument(
        "-b",
        "--branch",
        action="append",
        dest="branches",
        help="Branch to merge; repeat for several (default: the branches used last time)",
    )
    parser.add_argument("--make", action=argparse.BooleanOptionalAction, default=None, help="Build after the merge")
    parser.add_argument("--build-command", help="Shell command used to build, run in the base directory")
    parser.add_argument("--quit", action=argparse.BooleanOptionalAction, default=None, help="Exit after a successful build")
    parser.add_argument(
        "--checkout-back",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Check out the original branches after a successful build",
    )
    parser.add_argument(
        "--delete-temp-branch",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Delete the temporary branch when checking out the original branches",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; failures are reported and nothing is rolled back",
    )
    parser.add_argument("--settings", type=Path, help="Settings database (default: ~/.git-manager/settings.db)")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser.parse_args(argv)


def resolve_base_dir(arg_base: str | None) -> Path:
    if not arg_base:
        raise GitManagerError("No base directory given; pass one or set $BASE_DIR")
    base_dir = Path(arg_base).expanduser().resolve()
    if not base_dir.is_dir():
        raise GitManagerError(f"Base directory '{base_dir}' not found")
    return base_dir


def _pick(value: Optional[bool], stored: bool) -> bool:
    return stored if value is None else value


def build_plan(args: argparse.Namespace, stored: MergeSettings, ask: Optional[Callable[[str], str]] = None) -> MergePlan:
    """Combine command line flags with the stored settings; prompt for branches if none are known."""
    flags = dict(
        make=_pick(args.make, stored.make),
        quit=_pick(args.quit, stored.quit),
        rollback_after_make=_pick(args.checkout_back, stored.checkout_back),
        delete_temp_branch=_pick(args.delete_temp_branch, stored.delete_temp_branch),
        build_command=args.build_command or stored.build_command,
    )
    if args.branches:
        return MergePlan.from_branches(args.branches, **flags)

    text = stored.branches_text
    if ask is not None:
        shown = text.replace("\n", ", ")
        answer = ask(f"👉 Branches to merge (comma separated){f' [{shown}]' if shown else ''}: ").strip()
        if answer:
            text = answer
    return MergePlan.from_text(text, **flags)


def quit_app() -> None:
    print("👋 Bye")
    sys.exit(0)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    interactive = not args.non_interactive

    settings = SettingsDB(args.settings)
    base_dir = resolve_base_dir(args.base_dir or settings.get_base_directory())
    fleet: List[RepoState] = RepoScanner.scan(base_dir)
    if not fleet:
        raise GitManagerError(f"No git repositories found in '{base_dir}'")
    print_repo_table(base_dir, fleet)

    plan = build_plan(args, settings.load_merge_settings(), input if interactive else None)
    settings.save_merge_settings(plan)
    settings.set_base_directory(str(base_dir))
    GitConfig.ensure_fleet_identity(fleet)

    merger = MultiMerger.for_fleet(
        fleet,
        plan,
        decider=ConsoleDecision() if interactive else None,
        notifier=ConsoleNotifier(),
        build=ShellBuild(plan.build_command, base_dir) if plan.make else None,
        quit_fn=quit_app,
        preserver=WorkingTreeManager(),
    )
    print(f"\n🔀 Merging {', '.join(plan.branches)} on temporary branch {merger.temp_branch}")

    monitor = ProgressMonitor(on_text=lambda text: print(f"   {text}"))
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: monitor.cancel())
    try:
        phase = merger.run(monitor)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    return 0 if phase is MergePhase.DONE else 1


def cli() -> None:
    try:
        code = main()
    except GitManagerError as exc:
        print(f"Error: {exc}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    cli()
