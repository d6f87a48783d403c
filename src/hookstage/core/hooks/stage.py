"""
Stage model for hook runs.

A stage is a named group of task references that runs as a unit. Stages
declare dependencies on other stages by name; together the stages of one
run form a DAG that the StageRunner executes wave by wave.

Task references accept a shorthand string form in configuration:

    "format"          -> StageTask(id="format", mode=TaskMode.FIX)
    "format:check"    -> StageTask(id="format", mode=TaskMode.CHECK)
    {"id": "test", "mode": "check", "options": {"parallel": true}}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hookstage.core.hooks.models import HookType, TaskMode


class StageTask(BaseModel):
    """A task reference within a stage, with its per-stage execution mode."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Task identifier (matches HookTask.id)")
    mode: TaskMode = Field(default=TaskMode.FIX, description="Execution mode in this stage")
    options: dict[str, Any] | None = Field(
        default=None, description="Stage-specific options"
    )

    @model_validator(mode="before")
    @classmethod
    def _parse_shorthand(cls, data: Any) -> Any:
        if not isinstance(data, str):
            return data
        task_id, _, mode = data.partition(":")
        if not task_id:
            raise ValueError("Invalid task string format: empty task id")
        if not mode:
            return {"id": task_id}
        try:
            return {"id": task_id, "mode": TaskMode(mode)}
        except ValueError as e:
            raise ValueError(f"Invalid task mode '{mode}' for task '{task_id}'") from e

    @classmethod
    def parse(cls, value: str | dict[str, Any]) -> StageTask:
        """Build a StageTask from its shorthand or object form."""
        return cls.model_validate(value)


class Stage(BaseModel):
    """
    A named set of task references with dependencies on other stages.

    Attributes:
        name: Unique name within a run
        tasks: Task references in declaration order
        parallel: Run the tasks concurrently (default) or one after another
        dependencies: Names of stages that must complete first
        continue_on_error: Let dependents run even if this stage fails
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    tasks: list[StageTask] = Field(default_factory=list)
    parallel: bool = True
    dependencies: frozenset[str] = Field(default_factory=frozenset)
    continue_on_error: bool = Field(default=False, alias="continueOnError")

    @model_validator(mode="before")
    @classmethod
    def _merge_legacy_dependency(cls, data: Any) -> Any:
        # `dependsOn` is the older single-parent form of `dependencies`
        if not isinstance(data, dict) or "dependsOn" not in data:
            return data
        data = dict(data)
        legacy = data.pop("dependsOn")
        if "dependencies" in data:
            raise ValueError(
                f"Stage '{data.get('name', '?')}' sets both 'dependsOn' and "
                "'dependencies'; use 'dependencies' only"
            )
        if legacy is None:
            return data
        if not isinstance(legacy, str):
            raise ValueError("'dependsOn' must be a single stage name")
        data["dependencies"] = [legacy]
        return data

    @field_validator("dependencies", mode="before")
    @classmethod
    def _coerce_dependencies(cls, v: Any) -> Any:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            return frozenset([v])
        return v

    @property
    def task_ids(self) -> list[str]:
        return [t.id for t in self.tasks]

    def to_config(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in configuration files."""
        return {
            "name": self.name,
            "tasks": [
                t.model_dump(mode="json", exclude_none=True) for t in self.tasks
            ],
            "parallel": self.parallel,
            "dependencies": sorted(self.dependencies),
            "continueOnError": self.continue_on_error,
        }


def implicit_stage(
    hook: HookType,
    tasks: list[StageTask],
    *,
    parallel: bool = True,
) -> Stage:
    """
    Wrap a legacy flat task list into a single stage without dependencies.

    Args:
        hook: Lifecycle point the list was configured for (names the stage)
        tasks: Task references from the flat list
        parallel: The flat list's parallel flag

    Returns:
        One stage carrying all the tasks
    """
    return Stage(name=hook.value, tasks=tasks, parallel=parallel)


def default_stages(hook: HookType) -> list[Stage]:
    """Return the built-in stage graph for a lifecycle point."""
    if hook is HookType.PRE_COMMIT:
        return [
            Stage(
                name="autofix",
                tasks=[StageTask.parse("versionSync:fix"), StageTask.parse("format:fix")],
                parallel=True,
            ),
            Stage(
                name="analysis",
                tasks=[StageTask.parse("unused:check"), StageTask.parse("duplicates:check")],
                parallel=True,
                dependencies=frozenset({"autofix"}),
                continue_on_error=True,
            ),
            Stage(
                name="validation",
                tasks=[StageTask.parse("test:check")],
                parallel=False,
                dependencies=frozenset({"analysis"}),
            ),
        ]
    if hook is HookType.PRE_PUSH:
        return [
            Stage(
                name="verify",
                tasks=[StageTask.parse("versionSync:check"), StageTask.parse("format:check")],
                parallel=True,
            ),
        ]
    return [
        Stage(
            name="quality",
            tasks=[
                StageTask.parse("format:check"),
                StageTask.parse("unused:check"),
                StageTask.parse("duplicates:check"),
            ],
            parallel=True,
        ),
        Stage(
            name="test",
            tasks=[
                StageTask(
                    id="test",
                    mode=TaskMode.CHECK,
                    options={"coverage": True, "parallel": True},
                )
            ],
            parallel=False,
            dependencies=frozenset({"quality"}),
        ),
    ]
