"""
Task registry: the map from task id to HookTask used by the stage runner.

The registry is an explicit value built once per invocation from
configuration, never a module-level singleton, so independent runners
(and tests) never share tasks.

Example:
    >>> registry = build_tasks(load_config(project_root))
    >>> registry.resolve("format")
    FormatTask(id='format')
    >>> registry.resolve("doesNotExist") is None
    True
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from hookstage.core.config.models import HooksConfig, TaskConfig
from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.errors import DuplicateTaskError, UnknownTaskError
from hookstage.core.hooks.models import TaskResult
from hookstage.core.hooks.tasks.analysis import DuplicatesTask, UnusedTask
from hookstage.core.hooks.tasks.base import HookTask
from hookstage.core.hooks.tasks.build import BuildTask, TestTask
from hookstage.core.hooks.tasks.format import FormatTask
from hookstage.core.hooks.tasks.shell import ShellTask
from hookstage.core.hooks.tasks.version_sync import SyncTarget, VersionSource, VersionSyncTask
from hookstage.core.tools.resolver import ExecutableResolver

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Tasks by id, in registration order."""

    def __init__(self, tasks: Iterable[HookTask] = ()) -> None:
        self._tasks: dict[str, HookTask] = {}
        for task in tasks:
            self.register(task)

    def register(self, task: HookTask) -> None:
        """
        Add a task.

        Raises:
            DuplicateTaskError: If a task with the same id is registered
        """
        if task.id in self._tasks:
            raise DuplicateTaskError(task.id)
        self._tasks[task.id] = task

    def resolve(self, task_id: str) -> HookTask | None:
        """Return the task registered under ``task_id``, if any."""
        return self._tasks.get(task_id)

    def filter_only(self, task_ids: Iterable[str]) -> TaskRegistry:
        """
        Return a registry restricted to the given ids.

        Raises:
            UnknownTaskError: If an id is not registered
        """
        wanted = list(dict.fromkeys(task_ids))
        for task_id in wanted:
            if task_id not in self._tasks:
                raise UnknownTaskError(task_id)
        return TaskRegistry(t for t in self._tasks.values() if t.id in wanted)

    @property
    def ids(self) -> list[str]:
        return list(self._tasks)

    def __iter__(self) -> Iterator[HookTask]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks


class DisabledTask(HookTask):
    """Stand-in for a task switched off with ``enabled: false``."""

    def __init__(self, task: HookTask) -> None:
        super().__init__(is_blocking=task.is_blocking)
        self.id = task.id
        self.name = task.name
        self.hooks = task.hooks

    async def run(self, context: HookContext) -> TaskResult:
        return TaskResult.skipped("disabled in configuration")


def _common_kwargs(config: TaskConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "required": config.required,
        "timeout_seconds": config.timeout_seconds,
    }
    if config.blocking is not None:
        kwargs["is_blocking"] = config.blocking
    if config.fix_safety is not None:
        kwargs["fix_safety"] = config.fix_safety
    return kwargs


def _format(config: TaskConfig, resolver: ExecutableResolver | None) -> HookTask:
    kwargs = _common_kwargs(config)
    if config.paths is not None:
        kwargs["paths"] = config.paths
    if config.exclude_paths is not None:
        kwargs["exclude_paths"] = config.exclude_paths
    if executable := config.option("executable"):
        kwargs["executable"] = executable
    return FormatTask(**kwargs)


def _build(config: TaskConfig, resolver: ExecutableResolver | None) -> HookTask:
    return BuildTask(
        configuration=config.option("configuration", "debug"),
        **_common_kwargs(config),
    )


def _test(config: TaskConfig, resolver: ExecutableResolver | None) -> HookTask:
    return TestTask(
        parallel=bool(config.option("parallel", True)),
        test_filter=config.option("filter"),
        coverage=bool(config.option("coverage", False)),
        **_common_kwargs(config),
    )


def _version_sync(config: TaskConfig, resolver: ExecutableResolver | None) -> HookTask:
    kwargs = _common_kwargs(config)
    kwargs.pop("timeout_seconds")
    return VersionSyncTask(
        source=VersionSource.from_options(config.options),
        sync_targets=SyncTarget.list_from_options(config.options),
        **kwargs,
    )


def _analyzer_kwargs(config: TaskConfig, resolver: ExecutableResolver | None) -> dict[str, Any]:
    kwargs = _common_kwargs(config)
    kwargs["resolver"] = resolver
    if config.paths is not None:
        kwargs["paths"] = config.paths
    if config.exclude_paths is not None:
        kwargs["exclude_paths"] = config.exclude_paths
    return kwargs


def _unused(config: TaskConfig, resolver: ExecutableResolver | None) -> HookTask:
    return UnusedTask(
        mode=config.option("mode", "reachability"),
        sensible_defaults=bool(config.option("sensibleDefaults", True)),
        **_analyzer_kwargs(config, resolver),
    )


def _duplicates(config: TaskConfig, resolver: ExecutableResolver | None) -> HookTask:
    return DuplicatesTask(
        min_tokens=int(config.option("minTokens", 100)),
        **_analyzer_kwargs(config, resolver),
    )


BUILTIN_TASKS: dict[str, Callable[[TaskConfig, ExecutableResolver | None], HookTask]] = {
    "format": _format,
    "build": _build,
    "test": _test,
    "versionSync": _version_sync,
    "unused": _unused,
    "duplicates": _duplicates,
}


def shell_task_from_config(task_id: str, config: TaskConfig) -> ShellTask:
    """Create a custom shell task from a ``tasks.<id>`` entry with a command."""
    if config.command is None:
        raise ValueError(f"Task '{task_id}' has no command")
    return ShellTask(
        id=task_id,
        name=config.name,
        command=config.command,
        fix_command=config.fix_command,
        hooks=config.hooks,
        file_patterns=config.file_patterns,
        parse_output=config.parse_output,
        success_exit_codes=config.success_exit_codes,
        **_common_kwargs(config),
    )


def build_tasks(
    config: HooksConfig,
    *,
    resolver: ExecutableResolver | None = None,
) -> TaskRegistry:
    """
    Create the built-in tasks plus custom shell tasks from configuration.

    A ``tasks.<id>`` entry with a ``command`` defines a shell task; if the
    id is a built-in, the shell task replaces it. Entries with
    ``enabled: false`` stay registered but report ``skipped``.

    Args:
        config: Loaded hooks configuration
        resolver: Resolver for analyzer binaries (defaults to PATH search)

    Returns:
        Registry with built-ins first, then custom tasks in config order
    """
    tasks: list[HookTask] = []
    for task_id, factory in BUILTIN_TASKS.items():
        task_config = config.task_config(task_id)
        if task_config.is_shell_task:
            continue
        tasks.append(factory(task_config, resolver))

    for task_id, task_config in config.tasks.items():
        if task_config.is_shell_task:
            tasks.append(shell_task_from_config(task_id, task_config))
        elif task_id not in BUILTIN_TASKS:
            logger.warning(
                f"Unknown task '{task_id}' in configuration; add 'command' to make it a shell task"
            )

    registry = TaskRegistry()
    for task in tasks:
        if not config.task_config(task.id).enabled:
            logger.debug(f"Task '{task.id}' is disabled")
            task = DisabledTask(task)
        registry.register(task)
    return registry
