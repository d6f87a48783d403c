"""
Configuration data models for hookstage.

These models define the structure of the ``hooks`` section of
.hookstage.json and ~/.config/hookstage/config.json, with validation and
type safety via Pydantic. JSON keys are camelCase; Python attributes are
snake_case (both spellings are accepted on input).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hookstage.core.hooks.models import FixMode, FixSafety, HookScope, HookType
from hookstage.core.hooks.stage import Stage, StageTask, default_stages, implicit_stage


class TaskConfig(BaseModel):
    """
    Per-task configuration under ``hooks.tasks.<id>``.

    Built-in tasks read the common fields and their ``options``. A task
    entry with a ``command`` defines a custom shell task.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = Field(default=True, description="Register this task at all")
    blocking: bool | None = Field(
        default=None, description="Override whether failures block the stage"
    )
    required: bool = Field(
        default=False, description="Treat a missing tool as a failure instead of a skip"
    )
    fix_safety: FixSafety | None = Field(
        default=None, alias="fixSafety", description="Override the task's fix safety"
    )
    paths: list[str] | None = Field(default=None, description="Paths the task inspects")
    exclude_paths: list[str] | None = Field(
        default=None, alias="excludePaths", description="Glob patterns to exclude"
    )
    timeout_seconds: float | None = Field(
        default=None, alias="timeoutSeconds", gt=0, description="Process timeout per run"
    )
    options: dict[str, Any] = Field(default_factory=dict)

    # Shell task fields
    command: str | None = Field(default=None, description="Shell command for custom tasks")
    fix_command: str | None = Field(default=None, alias="fixCommand")
    name: str | None = Field(default=None, description="Display name for custom tasks")
    hooks: list[HookType] | None = Field(
        default=None, description="Lifecycle points a custom task applies to"
    )
    file_patterns: list[str] | None = Field(default=None, alias="filePatterns")
    parse_output: bool = Field(default=True, alias="parseOutput")
    success_exit_codes: list[int] = Field(default_factory=lambda: [0], alias="successExitCodes")

    @field_validator("hooks", mode="before")
    @classmethod
    def _parse_hooks(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, str):
            v = [v]
        return [HookType.parse(h) if isinstance(h, str) else h for h in v]

    @field_validator("success_exit_codes")
    @classmethod
    def _non_empty_exit_codes(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("successExitCodes must not be empty")
        return v

    @property
    def is_shell_task(self) -> bool:
        return self.command is not None

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


class LifecycleConfig(BaseModel):
    """
    Configuration of one lifecycle point (preCommit, prePush, ci).

    Either ``stages`` (canonical) or the legacy flat ``tasks`` + ``parallel``
    may be given, never both. With neither, the built-in default stages
    for the lifecycle point are used.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    scope: HookScope | None = Field(
        default=None, description="File scope (defaults depend on the hook)"
    )
    base_branch: str | None = Field(default=None, alias="baseBranch")
    parallel: bool = Field(default=True, description="Legacy flat list: run in parallel")
    tasks: list[StageTask] | None = Field(default=None, description="Legacy flat task list")
    stages: list[Stage] | None = None

    @model_validator(mode="after")
    def _one_shape_only(self) -> LifecycleConfig:
        if self.tasks is not None and self.stages is not None:
            raise ValueError("a lifecycle cannot define both 'tasks' and 'stages'")
        return self

    def resolved_scope(self, hook: HookType) -> HookScope:
        """Return the configured scope, or the default for the hook."""
        if self.scope is not None:
            return self.scope
        return DEFAULT_SCOPES[hook]

    def resolved_stages(self, hook: HookType) -> list[Stage]:
        """
        Normalize this lifecycle into the canonical stage list.

        Args:
            hook: Lifecycle point this configuration belongs to

        Returns:
            Explicit stages, one implicit stage wrapping the legacy flat
            list, or the built-in defaults, in that order of preference
        """
        if self.stages is not None:
            return list(self.stages)
        if self.tasks is not None:
            if not self.tasks:
                return []
            return [implicit_stage(hook, list(self.tasks), parallel=self.parallel)]
        return default_stages(hook)


DEFAULT_SCOPES: dict[HookType, HookScope] = {
    HookType.PRE_COMMIT: HookScope.STAGED,
    HookType.PRE_PUSH: HookScope.CHANGED,
    HookType.CI: HookScope.ALL,
}


class HooksConfig(BaseModel):
    """
    Root of the ``hooks`` configuration section.

    Example:
        {
            "fixMode": "safe",
            "restageFixed": true,
            "ci": {"stages": [{"name": "quality", "tasks": ["format:check"]}]},
            "tasks": {"lint": {"command": "ruff check ${root}"}}
        }
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fix_mode: FixMode = Field(default=FixMode.SAFE, alias="fixMode")
    restage_fixed: bool = Field(default=True, alias="restageFixed")
    pre_commit: LifecycleConfig = Field(default_factory=LifecycleConfig, alias="preCommit")
    pre_push: LifecycleConfig = Field(default_factory=LifecycleConfig, alias="prePush")
    ci: LifecycleConfig = Field(default_factory=LifecycleConfig)
    tasks: dict[str, TaskConfig] = Field(default_factory=dict)

    @field_validator("fix_mode", mode="before")
    @classmethod
    def _parse_fix_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return FixMode.parse(v)
        return v

    def lifecycle(self, hook: HookType) -> LifecycleConfig:
        """Return the configuration for one lifecycle point."""
        if hook is HookType.PRE_COMMIT:
            return self.pre_commit
        if hook is HookType.PRE_PUSH:
            return self.pre_push
        return self.ci

    def task_config(self, task_id: str) -> TaskConfig:
        """Return the config for a task id (an empty default if unset)."""
        return self.tasks.get(task_id) or TaskConfig()
