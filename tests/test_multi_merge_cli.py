from __future__ import annotations

from pathlib import Path

import pytest

from conftest import git
from git_operations import GitManagerError
from multi_merge import build_plan, main, parse_args
from settings_db import MergeSettings, SettingsDB


def test_flags_override_stored_settings() -> None:
    args = parse_args(["/fleet", "-b", "feature", "-b", "bugfix", "--no-make", "--quit"])
    stored = MergeSettings(branches_text="old", make=True, quit=False, build_command="make all")

    plan = build_plan(args, stored)

    assert plan.branches == ("feature", "bugfix")
    assert not plan.make
    assert plan.quit
    assert plan.build_command == "make all"


def test_prompt_falls_back_to_stored_branches() -> None:
    args = parse_args(["/fleet"])
    stored = MergeSettings(branches_text="feature\nbugfix")
    prompts = []

    def ask(prompt: str) -> str:
        prompts.append(prompt)
        return ""

    plan = build_plan(args, stored, ask)

    assert plan.branches == ("feature", "bugfix")
    assert "[feature, bugfix]" in prompts[0]


def test_prompt_answer_replaces_stored_branches() -> None:
    plan = build_plan(parse_args(["/fleet"]), MergeSettings(branches_text="old"), lambda prompt: "new, newer")

    assert plan.branches == ("new", "newer")


def test_missing_base_directory(tmp_path: Path) -> None:
    with pytest.raises(GitManagerError):
        main([str(tmp_path / "missing"), "--non-interactive", "--settings", str(tmp_path / "s.db")])


def test_non_interactive_run(git_repo, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo1 = git_repo("repo1", branches=("feature",))
    git_repo("repo2")
    settings_path = tmp_path / "settings.db"

    code = main([str(tmp_path / "fleet"), "-b", "feature", "--no-make", "--non-interactive", "--settings", str(settings_path)])

    out = capsys.readouterr().out
    assert code == 0
    assert "✅ Merged successfully" in out
    assert "Skipped repo2" in out
    assert (repo1 / "feature.txt").exists()
    saved = SettingsDB(settings_path)
    assert saved.load_merge_settings().branches_text == "feature"
    assert saved.get_base_directory() == str((tmp_path / "fleet").resolve())
