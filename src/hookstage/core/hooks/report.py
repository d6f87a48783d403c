"""
Plain-text report of a stage run.

The report lists every stage in execution order with its tasks and their
diagnostics, then the stages that never ran and why, then a summary:

    quality: failed (1 diagnostic)
      format [check]: failed (0.42s)
        Sources/Foo.swift:10:5: error: missing trailing comma
      unused [check]: passed (0.10s)
    test: skipped (blocked by quality)
    1 stage failed, 1 blocked | tasks: 1 passed, 1 failed

Rendering with colour is left to HookOutput implementations; these
functions only build strings.
"""

from __future__ import annotations

from hookstage.core.hooks.models import HookDiagnostic, TaskStatus
from hookstage.core.hooks.results import BlockedStage, StageResult, StageRunOutcome, TaskRunResult


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def stage_line(result: StageResult) -> str:
    status = "passed" if result.success else "failed"
    details: list[str] = []
    if result.diagnostics:
        details.append(_plural(len(result.diagnostics), "diagnostic"))
    if not result.success and result.continue_on_error:
        details.append("continuing")
    suffix = f" ({', '.join(details)})" if details else ""
    return f"{result.stage_name}: {status}{suffix}"


def blocked_line(blocked: BlockedStage) -> str:
    return f"{blocked.name}: skipped ({blocked.reason})"


def task_line(result: TaskRunResult) -> str:
    task_result = result.task_result
    details: list[str] = []
    if task_result.status is TaskStatus.SKIPPED and task_result.skip_reason:
        details.append(task_result.skip_reason)
    if result.fix_result is not None and result.fix_result.files_modified:
        details.append(f"fixed {_plural(len(result.fix_result.files_modified), 'file')}")
    if task_result.status is TaskStatus.FAILED and not result.is_blocking:
        details.append("non-blocking")
    details.append(f"{task_result.duration_seconds:.2f}s")
    status = task_result.status.value
    return f"{result.task_id} [{result.mode.value}]: {status} ({', '.join(details)})"


def diagnostic_line(diagnostic: HookDiagnostic) -> str:
    return str(diagnostic)


def summary_line(outcome: StageRunOutcome) -> str:
    failed_stages = sum(1 for r in outcome.results if not r.success)
    counts = {status: 0 for status in TaskStatus}
    for task in outcome.task_results:
        counts[task.status] += 1

    if failed_stages or outcome.blocked:
        stage_part = f"{_plural(failed_stages, 'stage')} failed"
        if outcome.blocked:
            stage_part += f", {len(outcome.blocked)} blocked"
    else:
        stage_part = f"all {_plural(len(outcome.results), 'stage')} passed"

    task_parts = [f"{counts[s]} {s.value}" for s in TaskStatus if counts[s]]
    if not task_parts:
        return stage_part
    return f"{stage_part} | tasks: {', '.join(task_parts)}"


def format_report(outcome: StageRunOutcome) -> list[str]:
    """
    Build the report lines for a stage run.

    Args:
        outcome: Result of StageRunner.run_stages

    Returns:
        Lines without trailing newlines; task and diagnostic lines are
        indented under their stage
    """
    lines: list[str] = []
    for result in outcome.results:
        lines.append(stage_line(result))
        for task in result.task_results:
            lines.append(f"  {task_line(task)}")
            for diagnostic in task.task_result.diagnostics:
                lines.append(f"    {diagnostic_line(diagnostic)}")
    for blocked in outcome.blocked:
        lines.append(blocked_line(blocked))
    lines.append(summary_line(outcome))
    return lines
