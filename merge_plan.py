#!/usr/bin/env python3
"""The operator's choices for one multi-merge run."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Tuple

from git_operations import GitManagerError

DEFAULT_BUILD_COMMAND = "make"

_SEPARATORS = re.compile(r"[\n,|]+")


@dataclass(frozen=True)
class MergePlan:
    branches: Tuple[str, ...]
    make: bool = True
    quit: bool = False
    rollback_after_make: bool = False
    delete_temp_branch: bool = True
    build_command: str = DEFAULT_BUILD_COMMAND

    @property
    def quit_after_make(self) -> bool:
        return self.make and self.quit

    @property
    def checkout_back_after_make(self) -> bool:
        return self.make and self.rollback_after_make

    @classmethod
    def from_branches(cls, branches: Iterable[str], **flags: object) -> "MergePlan":
        """Validate and normalize a branch list into a plan."""
        names: list[str] = []
        for raw in branches:
            name = raw.strip()
            if name and name not in names:
                names.append(name)
        if not names:
            raise GitManagerError("No branches selected to merge")

        build_command = str(flags.pop("build_command", DEFAULT_BUILD_COMMAND) or "").strip()
        if flags.get("make", True) and not build_command:
            raise GitManagerError("A build command is required when building after the merge")
        return cls(branches=tuple(names), build_command=build_command, **flags)  # type: ignore[arg-type]

    @classmethod
    def from_text(cls, text: str, **flags: object) -> "MergePlan":
        """Accept branches separated with commas, | or new lines."""
        return cls.from_branches(_SEPARATORS.split(text), **flags)

    def branches_text(self) -> str:
        return "\n".join(self.branches)
