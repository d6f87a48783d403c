"""
Exceptions raised by the hooks system.

Only configuration problems are raised. Check failures, missing tools,
fix errors and stages blocked at runtime are reported as result values.
"""

from __future__ import annotations


class HookError(Exception):
    """Base class for all hookstage errors."""


class ConfigError(HookError):
    """The configuration file is unreadable or does not match the schema."""


class StageConfigurationError(HookError):
    """The stage graph is invalid; raised before any task runs."""


class DuplicateStageError(StageConfigurationError):
    """Two stages in one run share a name."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Stage '{stage}' is defined more than once")


class UnknownDependencyError(StageConfigurationError):
    """A stage names a dependency that is not part of the run."""

    def __init__(self, stage: str, dependency: str) -> None:
        self.stage = stage
        self.dependency = dependency
        super().__init__(f"Stage '{stage}' depends on '{dependency}' which does not exist")


class CircularDependencyError(StageConfigurationError):
    """The dependency relation among stages contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")


class UnknownTaskError(HookError):
    """A task id was requested that no registered task has."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Unknown task '{task_id}' referenced in configuration")


class DuplicateTaskError(HookError):
    """Two tasks were registered under the same id."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' is registered more than once")


class GitError(HookError):
    """A git command needed to build the hook context failed."""

    def __init__(self, command: list[str], output: str, exit_code: int | None) -> None:
        self.command = command
        self.output = output
        self.exit_code = exit_code
        detail = output.strip().splitlines()[-1] if output.strip() else "no output"
        super().__init__(f"git {' '.join(command)} failed ({detail})")
