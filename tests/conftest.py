"""
Pytest configuration and shared fixtures.

Provides a scriptable FakeTask, hook contexts rooted in temporary
directories, and an isolated configuration environment.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.models import (
    FixMode,
    FixResult,
    FixSafety,
    HookDiagnostic,
    HookScope,
    HookSeverity,
    HookType,
    TaskResult,
)
from hookstage.core.hooks.tasks.base import HookTask
from hookstage.core.hooks.tasks.registry import TaskRegistry

# ==============================================================================
# Fake tasks
# ==============================================================================


class FakeTask(HookTask):
    """
    A task whose behaviour is scripted by the test.

    Every call is appended to the shared ``log`` as (event, task id):
    ("run", id) and ("done", id) around ``run``, ("fix", id) for ``fix``.
    """

    def __init__(
        self,
        task_id: str,
        *,
        log: list[tuple[str, str]],
        result: TaskResult | None = None,
        fix_result: FixResult | None = None,
        delay: float = 0.0,
        supports_fix: bool = False,
        fix_safety: FixSafety = FixSafety.SAFE,
        is_blocking: bool = True,
        raises: Exception | None = None,
        file_patterns: tuple[str, ...] = ("**/*.swift",),
    ) -> None:
        super().__init__(is_blocking=is_blocking, fix_safety=fix_safety)
        self.id = task_id
        self.name = task_id.capitalize()
        self.supports_fix = supports_fix
        self.file_patterns = file_patterns
        self.result = result or TaskResult.passed()
        self.fix_result = fix_result or FixResult()
        self.delay = delay
        self.raises = raises
        self.log = log
        self.contexts: list[HookContext] = []

    async def run(self, context: HookContext) -> TaskResult:
        self.log.append(("run", self.id))
        self.contexts.append(context)
        await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        self.log.append(("done", self.id))
        return self.result

    async def fix(self, context: HookContext) -> FixResult:
        self.log.append(("fix", self.id))
        return self.fix_result


def error(message: str, file: str | None = None, line: int | None = None) -> HookDiagnostic:
    return HookDiagnostic(message=message, severity=HookSeverity.ERROR, file=file, line=line)


@pytest.fixture
def task_log() -> list[tuple[str, str]]:
    """Shared call log for FakeTasks created by ``fake_task``."""
    return []


@pytest.fixture
def fake_task(task_log) -> Callable[..., FakeTask]:
    """Factory for FakeTasks that record into ``task_log``."""

    def factory(task_id: str, **kwargs: Any) -> FakeTask:
        return FakeTask(task_id, log=task_log, **kwargs)

    return factory


@pytest.fixture
def failing_result() -> Callable[..., TaskResult]:
    """Factory for a failed TaskResult with one error diagnostic."""

    def factory(message: str = "broken", file: str | None = None, line: int | None = None):
        return TaskResult.failed([error(message, file, line)])

    return factory


@pytest.fixture
def registry_of() -> Callable[..., TaskRegistry]:
    def factory(*tasks: HookTask) -> TaskRegistry:
        return TaskRegistry(tasks)

    return factory


# ==============================================================================
# Context and environment fixtures
# ==============================================================================


@pytest.fixture
def project_root(tmp_path) -> Path:
    """An empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def context(project_root) -> HookContext:
    """A CI-style context over the whole (empty) project."""
    return HookContext(
        project_root=project_root,
        scope=HookScope.ALL,
        hook_type=HookType.CI,
        fix_mode=FixMode.SAFE,
    )


@pytest.fixture
def git_index() -> Mock:
    """A GitIndex double whose async methods return empty results."""
    index = Mock()
    index.staged_files = AsyncMock(return_value=[])
    index.changed_files_vs_origin = AsyncMock(return_value=[])
    index.restage = AsyncMock(return_value=None)
    index.is_repository = AsyncMock(return_value=True)
    return index


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config and HOOKSTAGE_* overrides out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("HOOKSTAGE_FIX_MODE", raising=False)
    monkeypatch.delenv("HOOKSTAGE_RESTAGE_FIXED", raising=False)
