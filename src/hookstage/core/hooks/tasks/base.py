"""
Base classes for hook tasks.

HookTask is the contract every task implements: metadata describing where
and how it runs, an async ``run`` that checks, and an optional async
``fix``. SubprocessTask adds the shared plumbing for tasks backed by an
external tool: executable resolution, process invocation (streaming when
verbose), output parsing and the tool-unavailable policy.

A task's ``run`` may be called concurrently with other tasks and must only
read the working tree. Only ``fix`` writes.
"""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.diagnostics import parse_diagnostics
from hookstage.core.hooks.models import (
    FixResult,
    FixSafety,
    HookDiagnostic,
    HookScope,
    HookSeverity,
    HookType,
    TaskResult,
)
from hookstage.core.tools.process import OutputStream, ProcessResult, run_process
from hookstage.core.tools.resolver import ExecutableResolver

logger = logging.getLogger(__name__)

_stream_console = Console(stderr=True, highlight=False)

ALL_HOOKS: frozenset[HookType] = frozenset(HookType)


def print_stream_line(stream: OutputStream, line: str) -> None:
    """Echo one subprocess line, tagged with its stream, for verbose runs."""
    _stream_console.print(f"[dim]{stream.prefix}[/dim] {escape(line)}")


def matches_pattern(path: str, pattern: str) -> bool:
    """
    Glob-match a relative path.

    ``**/`` at the start of a pattern also matches zero directories, so
    "**/*.swift" matches both "Package.swift" and "Sources/App/main.swift".
    """
    if fnmatch.fnmatch(path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatch(path, pattern[3:])


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(matches_pattern(path, p) for p in patterns)


def file_digests(root: Path, files: Iterable[str]) -> dict[str, str]:
    """Map each file to a SHA-256 of its content ("" when missing)."""
    digests: dict[str, str] = {}
    for relative in files:
        path = root / relative
        try:
            digests[relative] = hashlib.sha256(path.read_bytes()).hexdigest()
        except OSError:
            digests[relative] = ""
    return digests


def changed_files(before: dict[str, str], after: dict[str, str]) -> list[str]:
    """Files whose digest differs between two snapshots, in snapshot order."""
    return [f for f, digest in after.items() if before.get(f) != digest]


class HookTask(ABC):
    """
    A single checkable (and optionally fixable) project property.

    Subclasses set the class-level metadata and implement :meth:`run`.
    Blocking, required and fix safety can be overridden per instance from
    configuration.

    Attributes:
        id: Unique identifier used in configuration
        name: Human-readable name for output
        hooks: Lifecycle points the task applies to by default
        supports_fix: Whether :meth:`fix` does anything
        fix_safety: How safe the automatic fix is
        is_blocking: Whether a failure fails the stage
        required: Whether an unavailable tool is a failure rather than a skip
        file_patterns: Globs of the files this task looks at
    """

    id: str
    name: str
    hooks: frozenset[HookType] = ALL_HOOKS
    supports_fix: bool = False
    fix_safety: FixSafety = FixSafety.SAFE
    is_blocking: bool = True
    required: bool = False
    file_patterns: tuple[str, ...] = ("**/*.swift",)

    def __init__(
        self,
        *,
        is_blocking: bool | None = None,
        required: bool | None = None,
        fix_safety: FixSafety | None = None,
    ) -> None:
        if is_blocking is not None:
            self.is_blocking = is_blocking
        if required is not None:
            self.required = required
        if fix_safety is not None:
            self.fix_safety = fix_safety

    @abstractmethod
    async def run(self, context: HookContext) -> TaskResult:
        """
        Run the check.

        Args:
            context: The hook execution context

        Returns:
            Result of the check
        """

    async def fix(self, context: HookContext) -> FixResult:
        """
        Apply automatic fixes.

        Only called when ``supports_fix`` is true and the context's fix
        mode allows ``fix_safety``.
        """
        return FixResult()

    def applies_to(self, hook: HookType) -> bool:
        return hook in self.hooks

    def configured(self, options: Mapping[str, Any]) -> HookTask:
        """
        Return this task adjusted by stage-specific options.

        The default ignores options. Tasks that understand some return a
        modified copy; the registered instance is never mutated.
        """
        return self

    def tool_unavailable(self, reason: str, *, duration_seconds: float = 0.0) -> TaskResult:
        """Result for a check whose tool could not be run."""
        if self.required and self.is_blocking:
            return TaskResult.failed(
                [HookDiagnostic(message=reason, severity=HookSeverity.ERROR, rule_id=self.id)],
                duration_seconds=duration_seconds,
            )
        return TaskResult.skipped(reason, duration_seconds=duration_seconds)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


@dataclass
class Invocation:
    """Arguments for one tool run, plus the files it covers."""

    arguments: list[str]
    files: list[str] = field(default_factory=list)
    executable: str | None = None  # overrides the task default


class SubprocessTask(HookTask):
    """
    A task backed by an external executable.

    Subclasses provide :meth:`check_invocation` (and, when fixable,
    :meth:`fix_invocation`) and may override :meth:`parse_output`. The
    default parser is strict: only "path:line:col: severity: message"
    lines become diagnostics.
    """

    executable: str = ""
    empty_reason: str = "No files to check"
    tolerant_parsing: bool = False

    def __init__(
        self,
        *,
        executable: str | None = None,
        resolver: ExecutableResolver | None = None,
        timeout_seconds: float | None = None,
        success_exit_codes: Iterable[int] = (0,),
        is_blocking: bool | None = None,
        required: bool | None = None,
        fix_safety: FixSafety | None = None,
    ) -> None:
        super().__init__(is_blocking=is_blocking, required=required, fix_safety=fix_safety)
        if executable is not None:
            self.executable = executable
        self.resolver = resolver
        self.timeout_seconds = timeout_seconds
        self.success_exit_codes = frozenset(success_exit_codes)

    # Hooks for subclasses

    @abstractmethod
    def check_invocation(self, context: HookContext) -> Invocation | None:
        """Arguments for the check run, or None when there is nothing to check."""

    def fix_invocation(self, context: HookContext) -> Invocation | None:
        """Arguments for the fix run, or None when there is nothing to fix."""
        return None

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        return parse_diagnostics(
            output,
            keep_unmatched=self.tolerant_parsing,
            rule_id=self.id,
        )

    def failure_message(self, result: ProcessResult) -> str:
        return f"{self.name} failed with exit code {result.exit_code}"

    # Plumbing

    def resolve_executable(self, name: str) -> str | None:
        """Path of the tool, or None if the resolver cannot find it."""
        if self.resolver is None:
            return name
        resolved = self.resolver.resolve(name)
        return str(resolved) if resolved is not None else None

    def is_success(self, result: ProcessResult) -> bool:
        return result.exit_code is not None and result.exit_code in self.success_exit_codes

    async def execute(
        self, context: HookContext, executable: str, arguments: list[str]
    ) -> ProcessResult:
        logger.debug(f"[{self.id}] {executable} {' '.join(arguments)}")
        return await run_process(
            [executable, *arguments],
            cwd=context.project_root,
            timeout=self.timeout_seconds,
            on_line=print_stream_line if context.verbose else None,
        )

    async def run(self, context: HookContext) -> TaskResult:
        started = time.monotonic()
        invocation = self.check_invocation(context)
        if invocation is None:
            return TaskResult.skipped(self.empty_reason)

        tool = invocation.executable or self.executable
        executable = self.resolve_executable(tool)
        if executable is None:
            return self.tool_unavailable(f"{tool} binary not found")

        result = await self.execute(context, executable, invocation.arguments)
        duration = time.monotonic() - started

        if result.launch_failed:
            return self.tool_unavailable(
                result.error or f"{tool} could not be started",
                duration_seconds=duration,
            )
        if result.timed_out:
            return TaskResult.failed(
                [
                    HookDiagnostic(
                        message=result.error or f"{self.name} timed out",
                        severity=HookSeverity.ERROR,
                        rule_id=self.id,
                    )
                ],
                duration_seconds=duration,
                files_checked=len(invocation.files),
            )
        if self.is_success(result):
            return TaskResult.passed(
                duration_seconds=duration, files_checked=len(invocation.files)
            )

        diagnostics = self.parse_output(result.output)
        if not diagnostics:
            diagnostics = [
                HookDiagnostic(
                    message=self.failure_message(result),
                    severity=HookSeverity.ERROR,
                    rule_id=self.id,
                )
            ]
        return TaskResult.from_diagnostics(
            diagnostics,
            blocking=self.is_blocking,
            signalled_failure=True,
            duration_seconds=duration,
            files_checked=len(invocation.files),
            fixes_available=self.supports_fix,
        )

    async def fix(self, context: HookContext) -> FixResult:
        invocation = self.fix_invocation(context)
        if invocation is None:
            return FixResult()

        tool = invocation.executable or self.executable
        executable = self.resolve_executable(tool)
        if executable is None:
            return FixResult(errors=[f"{tool} binary not found"])

        before = file_digests(context.project_root, invocation.files)
        result = await self.execute(context, executable, invocation.arguments)
        after = file_digests(context.project_root, invocation.files)
        modified = changed_files(before, after)

        errors: list[str] = []
        if result.launch_failed or result.timed_out:
            errors.append(result.error or f"{tool} did not run")
        elif not self.is_success(result):
            detail = result.output.strip() or f"exit code {result.exit_code}"
            errors.append(f"{self.name} fix failed: {detail}")

        return FixResult(files_modified=modified, fixes_applied=len(modified), errors=errors)


def collect_files(
    context: HookContext,
    *,
    patterns: Iterable[str],
    exclude: Iterable[str] = (),
    search_paths: Iterable[str] = (),
) -> list[str]:
    """
    Files a file-based task should look at for the context's scope.

    For ``staged``, ``changed`` and ``diff`` the candidates come from the
    context. For ``all`` the search paths are walked (hidden entries are
    skipped); with no search paths the context's file list is used.

    Returns:
        Sorted, de-duplicated relative paths matching ``patterns`` and not
        matching ``exclude``
    """
    patterns = list(patterns)
    exclude = list(exclude)
    search_paths = list(search_paths)

    if context.scope is HookScope.ALL and search_paths:
        candidates = _walk(context.project_root, search_paths)
    else:
        candidates = context.files_to_check

    selected = {
        path
        for path in candidates
        if matches_any(path, patterns) and not matches_any(path, exclude)
    }
    return sorted(selected)


def _walk(root: Path, search_paths: list[str]) -> list[str]:
    files: list[str] = []
    for search_path in search_paths:
        base = root / search_path
        if base.is_file():
            files.append(base.relative_to(root).as_posix())
            continue
        if not base.is_dir():
            continue
        for path in base.rglob("*"):
            relative = path.relative_to(root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file():
                files.append(relative.as_posix())
    return files
