"""
Hook task implementations.

Built-in tasks:
- format: source formatting (check and fix)
- build: compile the project
- test: run the test suite
- versionSync: keep version strings consistent
- unused / duplicates: static analysis (advisory by default)

Custom commands are ShellTask instances created from configuration.
"""

from hookstage.core.hooks.tasks.analysis import DuplicatesTask, UnusedTask
from hookstage.core.hooks.tasks.base import HookTask, Invocation, SubprocessTask
from hookstage.core.hooks.tasks.build import BuildTask, TestTask
from hookstage.core.hooks.tasks.format import FormatTask
from hookstage.core.hooks.tasks.registry import TaskRegistry, build_tasks
from hookstage.core.hooks.tasks.shell import ShellTask
from hookstage.core.hooks.tasks.version_sync import SyncTarget, VersionSource, VersionSyncTask

__all__ = [
    "BuildTask",
    "DuplicatesTask",
    "FormatTask",
    "HookTask",
    "Invocation",
    "ShellTask",
    "SubprocessTask",
    "SyncTarget",
    "TaskRegistry",
    "TestTask",
    "UnusedTask",
    "VersionSource",
    "VersionSyncTask",
    "build_tasks",
]
