"""Settings database for persisting user preferences."""
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from merge_plan import DEFAULT_BUILD_COMMAND, MergePlan

BRANCHES_KEY = "multimerge.branches"
MAKE_KEY = "multimerge.make"
QUIT_KEY = "multimerge.quit"
CHECKOUT_BACK_KEY = "multimerge.checkout_back"
DELETE_TEMP_BRANCH_KEY = "multimerge.delete_temp_branch"
BUILD_COMMAND_KEY = "multimerge.build_command"


@dataclass(frozen=True)
class MergeSettings:
    """Last confirmed multi-merge choices, used to prefill the next run."""

    branches_text: str = ""
    make: bool = True
    quit: bool = False
    checkout_back: bool = False
    delete_temp_branch: bool = True
    build_command: str = DEFAULT_BUILD_COMMAND


class SettingsDB:
    """Manage application settings using SQLite."""

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize settings database.

        Args:
            db_path: Path to database file. Defaults to ~/.git-manager/settings.db
        """
        if db_path is None:
            db_path = Path.home() / ".git-manager" / "settings.db"

        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a setting value.

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row[0] if row else default

    def set(self, key: str, value: str) -> None:
        """Set a setting value.

        Args:
            key: Setting key
            value: Setting value
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """, (key, value))
            conn.commit()

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value == "1"

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, "1" if value else "0")

    def get_base_directory(self) -> Optional[str]:
        """Get the saved base directory."""
        return self.get("base_directory")

    def set_base_directory(self, path: str) -> None:
        """Save the base directory."""
        self.set("base_directory", path)

    def load_merge_settings(self) -> MergeSettings:
        """Read the stored multi-merge choices, falling back to defaults."""
        defaults = MergeSettings()
        return MergeSettings(
            branches_text=self.get(BRANCHES_KEY, defaults.branches_text) or "",
            make=self.get_bool(MAKE_KEY, defaults.make),
            quit=self.get_bool(QUIT_KEY, defaults.quit),
            checkout_back=self.get_bool(CHECKOUT_BACK_KEY, defaults.checkout_back),
            delete_temp_branch=self.get_bool(DELETE_TEMP_BRANCH_KEY, defaults.delete_temp_branch),
            build_command=self.get(BUILD_COMMAND_KEY, defaults.build_command) or defaults.build_command,
        )

    def save_merge_settings(self, plan: MergePlan) -> None:
        """Remember a confirmed plan for the next run."""
        self.set(BRANCHES_KEY, plan.branches_text())
        self.set_bool(MAKE_KEY, plan.make)
        self.set_bool(QUIT_KEY, plan.quit)
        self.set_bool(CHECKOUT_BACK_KEY, plan.rollback_after_make)
        self.set_bool(DELETE_TEMP_BRANCH_KEY, plan.delete_temp_branch)
        if plan.build_command:
            self.set(BUILD_COMMAND_KEY, plan.build_command)
