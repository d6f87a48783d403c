"""
Invocation context passed to hook tasks.

A HookContext is built once at the start of a hook run and never mutated.
Tasks receive the same snapshot (or a copy with a narrower fix mode), so
concurrently running tasks share no mutable state through it.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from hookstage.core.hooks.models import FixMode, FixSafety, HookScope, HookType


class FileStatus(str, Enum):
    """Git status letter of a staged file."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    UNTRACKED = "?"


@dataclass(frozen=True)
class StagedFile:
    """
    A file in the git staging area.

    The staged content can differ from the working tree, so checks running
    with ``scope=staged`` should read through :meth:`read_staged`.
    """

    path: str
    status: FileStatus = FileStatus.MODIFIED
    reader: Callable[[str], Awaitable[str]] | None = field(
        default=None, compare=False, repr=False
    )

    async def read_staged(self) -> str:
        """Read the indexed (staged) content of this file."""
        if self.reader is None:
            raise RuntimeError(f"No git index available to read '{self.path}'")
        return await self.reader(self.path)


@dataclass(frozen=True)
class HookContext:
    """
    Everything a task needs to know about the current invocation.

    Attributes:
        project_root: Absolute path of the tree being checked
        scope: Which files the run considers
        hook_type: Lifecycle point being executed
        staged_files: Files in the index (scope=staged)
        all_files: Candidate files for the other scopes
        fix_mode: Global permission level for automatic fixes
        verbose: Stream subprocess output while capturing it
        is_ci: Running in a CI environment
    """

    project_root: Path
    scope: HookScope = HookScope.ALL
    hook_type: HookType = HookType.PRE_COMMIT
    staged_files: tuple[StagedFile, ...] = ()
    all_files: tuple[str, ...] = ()
    fix_mode: FixMode = FixMode.SAFE
    verbose: bool = False
    is_ci: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "project_root", Path(self.project_root).resolve())
        object.__setattr__(self, "staged_files", tuple(self.staged_files))
        object.__setattr__(self, "all_files", tuple(self.all_files))

    @property
    def files_to_check(self) -> list[str]:
        """Paths relevant to the current scope, relative to the project root."""
        if self.scope is HookScope.STAGED:
            return [f.path for f in self.staged_files if f.status is not FileStatus.DELETED]
        return list(self.all_files)

    def can_fix(self, safety: FixSafety) -> bool:
        """Check if the global fix mode allows a fix of this safety level."""
        return self.fix_mode.includes(safety)

    def with_fix_mode(self, fix_mode: FixMode) -> HookContext:
        """Return a copy of this context with a different fix mode."""
        return dataclasses.replace(self, fix_mode=fix_mode)
