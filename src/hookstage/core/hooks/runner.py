"""
Hook runner: turns a lifecycle configuration into a stage run.

The HookRunner resolves the stage list for a lifecycle point, builds the
invocation context from the git index, hands both to the StageRunner and
restages fixed files afterwards. It also owns the standalone fix pass used
by ``hookstage fix``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Collection
from pathlib import Path

from hookstage.core.config.models import HooksConfig
from hookstage.core.hooks.context import HookContext, StagedFile
from hookstage.core.hooks.models import (
    FixMode,
    FixResult,
    HookScope,
    HookType,
    TaskMode,
)
from hookstage.core.hooks.output import HookOutput, NullHookOutput
from hookstage.core.hooks.results import HookRunResult, TaskRunResult
from hookstage.core.hooks.stage import Stage
from hookstage.core.hooks.stage_runner import StageRunner, validate_stages
from hookstage.core.hooks.tasks.base import matches_any
from hookstage.core.hooks.tasks.registry import TaskRegistry
from hookstage.utils.git import GitIndex
from hookstage.utils.project import list_project_files

logger = logging.getLogger(__name__)


class HookRunner:
    """
    Runs the configured stages for a lifecycle point.

    Example:
        >>> runner = HookRunner(project_root, config, build_tasks(config))
        >>> result = await runner.run(HookType.PRE_COMMIT)
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        project_root: Path,
        config: HooksConfig,
        registry: TaskRegistry,
        *,
        output: HookOutput | None = None,
        verbose: bool = False,
        git_index: GitIndex | None = None,
        only: Collection[str] | None = None,
    ) -> None:
        """
        Args:
            project_root: Root of the tree being checked
            config: Validated hooks configuration
            registry: Tasks available to stages
            output: Progress and report sink (silent by default)
            verbose: Stream tool output while capturing it
            git_index: Git access (defaults to one rooted at project_root)
            only: Restrict every stage to these task ids
        """
        self.project_root = Path(project_root).resolve()
        self.config = config
        self.registry = registry
        self.output = output or NullHookOutput()
        self.verbose = verbose
        self.git_index = git_index or GitIndex(self.project_root)
        self.only = frozenset(only) if only is not None else None

    def resolve_stages(self, hook: HookType) -> list[Stage]:
        """
        Canonical stage list for a lifecycle point.

        With ``only`` set, each stage keeps its place in the graph but
        references just the selected tasks.
        """
        stages = self.config.lifecycle(hook).resolved_stages(hook)
        if self.only is None:
            return stages
        return [
            stage.model_copy(update={"tasks": [t for t in stage.tasks if t.id in self.only]})
            for stage in stages
        ]

    async def run(self, hook: HookType, fix_mode: FixMode | None = None) -> HookRunResult:
        """
        Run every stage configured for ``hook``.

        Args:
            hook: Lifecycle point to run
            fix_mode: Override of the configured fix mode

        Returns:
            HookRunResult; its exit code is 1 when a blocking stage failed

        Raises:
            StageConfigurationError: If the stage graph is invalid
            GitError: If the git index cannot be read or restaged
        """
        lifecycle = self.config.lifecycle(hook)
        if not lifecycle.enabled:
            self.output.info(f"Hook '{hook.value}' is disabled")
            return HookRunResult(hook=hook, enabled=False)

        stages = self.resolve_stages(hook)
        validate_stages(stages)
        if not stages:
            self.output.warning(f"No tasks configured for {hook.value}")
            return HookRunResult(hook=hook)

        self.output.header(f"Running {hook.value} hooks...")
        context = await self.build_context(
            hook,
            scope=lifecycle.resolved_scope(hook),
            base_branch=lifecycle.base_branch,
            fix_mode=fix_mode or self.config.fix_mode,
        )
        logger.info(
            f"Running {len(stages)} stage(s) for {hook.value} "
            f"(scope={context.scope.value}, fix_mode={context.fix_mode.value})"
        )

        outcome = await StageRunner(self.registry, output=self.output).run_stages(stages, context)

        fixed = outcome.fixed_files
        if hook is HookType.PRE_COMMIT and self.config.restage_fixed and fixed:
            await self.git_index.restage(fixed)
            self.output.info(f"Restaged {len(fixed)} fixed file(s)")

        self.output.report(outcome)
        return HookRunResult(hook=hook, outcome=outcome)

    async def fix(self, fix_mode: FixMode = FixMode.SAFE) -> list[FixResult]:
        """
        Apply every fix the registry offers and ``fix_mode`` allows.

        Fixes run one after another over the whole project. Modified files
        are restaged when ``restageFixed`` is set and the project is a git
        repository.

        Returns:
            One FixResult per task that was allowed to fix, in registry order
        """
        self.output.header("Applying fixes...")
        context = HookContext(
            project_root=self.project_root,
            scope=HookScope.ALL,
            hook_type=HookType.PRE_COMMIT,
            all_files=self.project_files(),
            fix_mode=fix_mode,
            verbose=self.verbose,
        )

        results: list[FixResult] = []
        for task in self.registry:
            if not task.supports_fix or not context.can_fix(task.fix_safety):
                logger.debug(f"Skipping fix for '{task.id}'")
                continue

            self.output.task_start(task.name)
            started = time.monotonic()
            try:
                fix_result = await task.fix(context)
            except Exception as e:
                logger.exception(f"Fix for '{task.id}' raised")
                fix_result = FixResult(errors=[f"{type(e).__name__}: {e}"])
            results.append(fix_result)

            task_result = StageRunner.fix_only_result(task, fix_result).model_copy(
                update={"duration_seconds": time.monotonic() - started}
            )
            self.output.task_complete(
                TaskRunResult(
                    task_id=task.id,
                    task_name=task.name,
                    mode=TaskMode.FIX_ONLY,
                    task_result=task_result,
                    fix_result=fix_result,
                    is_blocking=task.is_blocking,
                )
            )

        fixed = list(dict.fromkeys(f for r in results for f in r.files_modified))
        if fixed and self.config.restage_fixed and await self.git_index.is_repository():
            await self.git_index.restage(fixed)
            self.output.info(f"Restaged {len(fixed)} file(s)")
        return results

    async def build_context(
        self,
        hook: HookType,
        *,
        scope: HookScope,
        base_branch: str | None = None,
        fix_mode: FixMode = FixMode.SAFE,
    ) -> HookContext:
        """
        Snapshot the files a run considers.

        ``staged`` reads the git index; ``changed`` and ``diff`` diff
        against ``origin/<base_branch>`` (the remote default branch when
        unset); ``all`` lists project files any registered task cares about.
        """
        staged: list[StagedFile] = []
        files: list[str] = []
        if scope is HookScope.STAGED:
            staged = await self.git_index.staged_files()
        elif scope in (HookScope.CHANGED, HookScope.DIFF):
            files = await self.git_index.changed_files_vs_origin(base_branch)
        else:
            files = self.project_files()

        logger.debug(f"Context for {hook.value}: {len(staged) or len(files)} file(s)")
        return HookContext(
            project_root=self.project_root,
            scope=scope,
            hook_type=hook,
            staged_files=tuple(staged),
            all_files=tuple(files),
            fix_mode=fix_mode,
            verbose=self.verbose,
            is_ci=hook is HookType.CI,
        )

    def project_files(self) -> list[str]:
        """Project files matching the file patterns of any registered task."""
        patterns = {pattern for task in self.registry for pattern in task.file_patterns}
        return [
            path for path in list_project_files(self.project_root) if matches_any(path, patterns)
        ]
