"""
Stage runner: executes a stage graph wave by wave.

Algorithm:
1. Validate the graph before running anything: unique names, known
   dependencies, no cycles.
2. A stage is ready when every dependency has completed and either
   succeeded or declared ``continue_on_error``.
3. All ready stages run concurrently; the runner waits for the whole wave
   (the barrier) before looking for the next one.
4. If any stage of a wave failed without ``continue_on_error``, nothing
   else is started and every stage still pending is reported as blocked.

Within a stage, tasks run concurrently (``parallel``) or one by one, in
which case a blocking failure skips the rest unless the stage continues on
error. Results are always reported in declaration order.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.errors import (
    CircularDependencyError,
    DuplicateStageError,
    UnknownDependencyError,
)
from hookstage.core.hooks.models import (
    FixResult,
    HookDiagnostic,
    HookSeverity,
    TaskMode,
    TaskResult,
    TaskStatus,
)
from hookstage.core.hooks.output import HookOutput, NullHookOutput
from hookstage.core.hooks.results import (
    CONFIGURATION_TASK_ID,
    BlockedStage,
    StageResult,
    StageRunOutcome,
    TaskRunResult,
)
from hookstage.core.hooks.stage import Stage, StageTask
from hookstage.core.hooks.tasks.base import HookTask
from hookstage.core.hooks.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)

PRIOR_FAILURE_REASON = "blocked by prior task failure"


def validate_stages(stages: Sequence[Stage]) -> None:
    """
    Check a stage graph before execution.

    Raises:
        DuplicateStageError: If two stages share a name
        UnknownDependencyError: If a dependency names no stage in the graph
        CircularDependencyError: If the dependencies contain a cycle; the
            error carries the cycle path, e.g. ["a", "b", "a"]
    """
    by_name: dict[str, Stage] = {}
    for stage in stages:
        if stage.name in by_name:
            raise DuplicateStageError(stage.name)
        by_name[stage.name] = stage

    order = {name: index for index, name in enumerate(by_name)}
    for stage in stages:
        for dependency in sorted(stage.dependencies, key=lambda d: order.get(d, len(order))):
            if dependency not in by_name:
                raise UnknownDependencyError(stage.name, dependency)

    # Recursive DFS; stage graphs are small
    visiting: list[str] = []
    done: set[str] = set()

    def visit(name: str) -> None:
        if name in done:
            return
        if name in visiting:
            start = visiting.index(name)
            raise CircularDependencyError([*visiting[start:], name])
        visiting.append(name)
        for dependency in sorted(by_name[name].dependencies, key=order.__getitem__):
            visit(dependency)
        visiting.pop()
        done.add(name)

    for name in by_name:
        visit(name)


class StageRunner:
    """
    Executes stages against a task registry.

    The runner holds no state between calls; one instance may run several
    graphs, and independent instances never share anything.

    Example:
        >>> runner = StageRunner(registry)
        >>> outcome = await runner.run_stages(stages, context)
        >>> outcome.success
        True
    """

    def __init__(self, registry: TaskRegistry, *, output: HookOutput | None = None) -> None:
        self.registry = registry
        self.output = output or NullHookOutput()

    validate_stages = staticmethod(validate_stages)

    async def run_stages(self, stages: Sequence[Stage], context: HookContext) -> StageRunOutcome:
        """
        Run a stage graph.

        Args:
            stages: Stages in declaration order
            context: Invocation context shared by every task

        Returns:
            Stage results in wave order (declaration order within a wave),
            plus any stages that never ran and why

        Raises:
            StageConfigurationError: If the graph is invalid; no task runs
        """
        validate_stages(stages)

        pending = list(stages)
        completed: dict[str, StageResult] = {}
        results: list[StageResult] = []

        while pending:
            ready = [s for s in pending if self._is_ready(s, completed)]
            if not ready:
                # Unreachable for a validated graph without fail-fast; kept as a guard
                blocked = self._blocked(pending, stages, completed)
                logger.warning(f"No runnable stages left: {', '.join(b.name for b in blocked)}")
                return self._finish(results, blocked, aborted=True)

            logger.info(f"Running wave: {', '.join(s.name for s in ready)}")
            wave = await asyncio.gather(*(self.run_stage(s, context) for s in ready))

            for result in wave:
                completed[result.stage_name] = result
                results.append(result)
            pending = [s for s in pending if s.name not in completed]

            failed = [r.stage_name for r in wave if r.blocks_dependents]
            if failed and pending:
                logger.info(f"Stopping after failed stage(s): {', '.join(failed)}")
                blocked = self._blocked(pending, stages, completed)
                return self._finish(results, blocked, aborted=True)

        return self._finish(results, [], aborted=False)

    def _finish(
        self, results: list[StageResult], blocked: list[BlockedStage], *, aborted: bool
    ) -> StageRunOutcome:
        for stage in blocked:
            self.output.stage_blocked(stage)
        return StageRunOutcome(results=results, blocked=blocked, aborted=aborted)

    @staticmethod
    def _is_ready(stage: Stage, completed: dict[str, StageResult]) -> bool:
        for dependency in stage.dependencies:
            result = completed.get(dependency)
            if result is None:
                return False
            if not (result.success or result.continue_on_error):
                return False
        return True

    @staticmethod
    def _blocked(
        pending: list[Stage],
        stages: Sequence[Stage],
        completed: dict[str, StageResult],
    ) -> list[BlockedStage]:
        by_name = {s.name: s for s in stages}
        order = {s.name: i for i, s in enumerate(stages)}
        failed = [name for name, r in completed.items() if r.blocks_dependents]

        def ancestors(stage: Stage) -> set[str]:
            seen: set[str] = set()
            frontier = list(stage.dependencies)
            while frontier:
                name = frontier.pop()
                if name in seen:
                    continue
                seen.add(name)
                frontier.extend(by_name[name].dependencies)
            return seen

        blocked: list[BlockedStage] = []
        for stage in pending:
            culprits = sorted(ancestors(stage) & set(failed), key=order.__getitem__)
            if culprits:
                reason = f"blocked by {', '.join(culprits)}"
            elif failed:
                reason = f"aborted after {', '.join(sorted(failed, key=order.__getitem__))} failed"
            else:
                reason = "dependencies never completed"
            blocked.append(BlockedStage(name=stage.name, blocked_by=culprits, reason=reason))
        return blocked

    # Per-stage execution

    async def run_stage(self, stage: Stage, context: HookContext) -> StageResult:
        """Run one stage's tasks and aggregate their results."""
        started = time.monotonic()
        self.output.stage_start(stage)

        missing = [t.id for t in stage.tasks if self.registry.resolve(t.id) is None]
        if missing:
            logger.warning(f"Stage '{stage.name}' references unknown task(s): {missing}")
            task_results = [self._unknown_tasks_result(missing)]
        elif stage.parallel:
            task_results = list(
                await asyncio.gather(*(self._run_reference(ref, context) for ref in stage.tasks))
            )
        else:
            task_results = await self._run_sequential(stage, context)

        result = StageResult(
            stage_name=stage.name,
            task_results=task_results,
            success=not any(r.blocks for r in task_results),
            continue_on_error=stage.continue_on_error,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            f"Stage '{stage.name}' {'passed' if result.success else 'failed'} "
            f"in {result.duration_seconds:.2f}s"
        )
        self.output.stage_complete(result)
        return result

    async def _run_sequential(self, stage: Stage, context: HookContext) -> list[TaskRunResult]:
        results: list[TaskRunResult] = []
        stopped = False
        for reference in stage.tasks:
            if stopped:
                task = self._resolve(reference.id)
                results.append(
                    TaskRunResult(
                        task_id=task.id,
                        task_name=task.name,
                        mode=reference.mode,
                        task_result=TaskResult.skipped(PRIOR_FAILURE_REASON),
                        is_blocking=task.is_blocking,
                    )
                )
                continue
            result = await self._run_reference(reference, context)
            results.append(result)
            if result.blocks and not stage.continue_on_error:
                logger.debug(f"Stage '{stage.name}': '{result.task_id}' failed, skipping the rest")
                stopped = True
        return results

    def _resolve(self, task_id: str) -> HookTask:
        task = self.registry.resolve(task_id)
        if task is None:
            raise KeyError(task_id)
        return task

    @staticmethod
    def _unknown_tasks_result(missing: list[str]) -> TaskRunResult:
        diagnostics = [
            HookDiagnostic(
                message=f"Unknown task '{task_id}' referenced by stage",
                severity=HookSeverity.ERROR,
                rule_id=CONFIGURATION_TASK_ID,
            )
            for task_id in missing
        ]
        return TaskRunResult(
            task_id=CONFIGURATION_TASK_ID,
            task_name="Configuration",
            mode=TaskMode.CHECK,
            task_result=TaskResult.failed(diagnostics),
            is_blocking=True,
        )

    async def _run_reference(self, reference: StageTask, context: HookContext) -> TaskRunResult:
        task = self._resolve(reference.id).configured(reference.options or {})
        self.output.task_start(task.name)
        started = time.monotonic()

        can_fix = task.supports_fix and context.can_fix(task.fix_safety)
        mode = reference.mode
        if mode is TaskMode.FIX and not can_fix:
            logger.debug(f"'{task.id}' cannot fix under {context.fix_mode.value}; checking")
            mode = TaskMode.CHECK

        fix_result: FixResult | None = None
        try:
            if mode is TaskMode.CHECK:
                task_result = await task.run(context)
            elif mode is TaskMode.FIX:
                fix_result = await task.fix(context)
                if fix_result.errors:
                    logger.info(f"'{task.id}' fix reported errors: {fix_result.errors}")
                task_result = await task.run(context)
            elif not can_fix:
                task_result = TaskResult.skipped(self._cannot_fix_reason(task, context))
            else:
                fix_result = await task.fix(context)
                task_result = self.fix_only_result(task, fix_result)
        except Exception as e:
            logger.exception(f"Task '{task.id}' raised")
            task_result = TaskResult.failed(
                [
                    HookDiagnostic(
                        message=f"{type(e).__name__}: {e}",
                        severity=HookSeverity.ERROR,
                        rule_id=task.id,
                    )
                ]
            )

        task_result = task_result.model_copy(
            update={"duration_seconds": time.monotonic() - started}
        )
        run_result = TaskRunResult(
            task_id=task.id,
            task_name=task.name,
            mode=mode,
            task_result=task_result,
            fix_result=fix_result,
            is_blocking=task.is_blocking,
        )
        self.output.task_complete(run_result)
        return run_result

    @staticmethod
    def _cannot_fix_reason(task: HookTask, context: HookContext) -> str:
        if not task.supports_fix:
            return f"{task.name} does not support fixes"
        return (
            f"fix mode '{context.fix_mode.value}' does not allow "
            f"{task.fix_safety.value} fixes"
        )

    @staticmethod
    def fix_only_result(task: HookTask, fix_result: FixResult) -> TaskResult:
        if fix_result.success:
            return TaskResult(
                status=TaskStatus.PASSED, files_checked=len(fix_result.files_modified)
            )
        return TaskResult.failed(
            [
                HookDiagnostic(message=error, severity=HookSeverity.ERROR, rule_id=task.id)
                for error in fix_result.errors
            ]
        )
