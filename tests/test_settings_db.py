from __future__ import annotations

from pathlib import Path

from merge_plan import MergePlan
from settings_db import MergeSettings, SettingsDB


def test_defaults_when_nothing_stored(tmp_path: Path) -> None:
    db = SettingsDB(tmp_path / "nested" / "settings.db")

    assert db.load_merge_settings() == MergeSettings()
    assert db.get_base_directory() is None


def test_confirmed_plan_is_remembered(tmp_path: Path) -> None:
    db = SettingsDB(tmp_path / "settings.db")
    plan = MergePlan.from_branches(
        ["feature", "bugfix"], make=True, quit=True, rollback_after_make=True, delete_temp_branch=False, build_command="make all"
    )

    db.save_merge_settings(plan)
    db.set_base_directory("/work/fleet")
    reopened = SettingsDB(tmp_path / "settings.db")

    assert reopened.load_merge_settings() == MergeSettings(
        branches_text="feature\nbugfix",
        make=True,
        quit=True,
        checkout_back=True,
        delete_temp_branch=False,
        build_command="make all",
    )
    assert reopened.get_base_directory() == "/work/fleet"
