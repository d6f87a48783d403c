"""
Result models produced by the stage runner and hook runner.

Ordering matters here: task results inside a stage follow the stage's
declaration order, and stage results follow wave order (then declaration
order within a wave), so reports are deterministic even though tasks and
stages run concurrently.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hookstage.core.hooks.models import (
    FixResult,
    HookDiagnostic,
    HookType,
    TaskMode,
    TaskResult,
    TaskStatus,
)

CONFIGURATION_TASK_ID = "configuration"
"""Pseudo task id used for stage-level configuration failures."""


class TaskRunResult(BaseModel):
    """Outcome of one task reference inside a stage."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    task_name: str
    mode: TaskMode = TaskMode.CHECK
    task_result: TaskResult
    fix_result: FixResult | None = None
    is_blocking: bool = True

    @property
    def status(self) -> TaskStatus:
        return self.task_result.status

    @property
    def blocks(self) -> bool:
        """True when this result fails its stage."""
        return self.task_result.status is TaskStatus.FAILED and self.is_blocking


class StageResult(BaseModel):
    """Outcome of one stage."""

    model_config = ConfigDict(frozen=True)

    stage_name: str
    task_results: list[TaskRunResult] = Field(default_factory=list)
    success: bool
    continue_on_error: bool = False
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def diagnostics(self) -> list[HookDiagnostic]:
        """All diagnostics of the stage, in task declaration order."""
        return [d for r in self.task_results for d in r.task_result.diagnostics]

    @property
    def blocks_dependents(self) -> bool:
        """True when this stage failed and did not opt into continuing."""
        return not self.success and not self.continue_on_error


class BlockedStage(BaseModel):
    """A stage that never ran, and why."""

    model_config = ConfigDict(frozen=True)

    name: str
    blocked_by: list[str] = Field(
        default_factory=list, description="Failed stages this one (transitively) depends on"
    )
    reason: str

    def __str__(self) -> str:
        return f"{self.name}: {self.reason}"


class StageRunOutcome(BaseModel):
    """Everything the StageRunner learned while executing a stage graph."""

    model_config = ConfigDict(frozen=True)

    results: list[StageResult] = Field(default_factory=list)
    blocked: list[BlockedStage] = Field(default_factory=list)
    aborted: bool = False

    @property
    def success(self) -> bool:
        """True when no stage blocks and nothing was left unrun."""
        if self.aborted or self.blocked:
            return False
        return all(r.success or r.continue_on_error for r in self.results)

    @property
    def task_results(self) -> list[TaskRunResult]:
        return [t for r in self.results for t in r.task_results]

    @property
    def fixed_files(self) -> list[str]:
        """Files modified by fixes across all stages, first occurrence order."""
        files: list[str] = []
        for result in self.task_results:
            if result.fix_result is not None:
                files.extend(result.fix_result.files_modified)
        return list(dict.fromkeys(files))

    def result_for(self, stage_name: str) -> StageResult | None:
        return next((r for r in self.results if r.stage_name == stage_name), None)


class HookRunResult(BaseModel):
    """Result of running all stages for a lifecycle point."""

    model_config = ConfigDict(frozen=True)

    hook: HookType
    outcome: StageRunOutcome = Field(default_factory=StageRunOutcome)
    enabled: bool = True

    @property
    def success(self) -> bool:
        return self.outcome.success

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1
