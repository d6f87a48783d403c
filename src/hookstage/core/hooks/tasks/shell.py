"""
User-defined shell command tasks.

Commands come from configuration (``hooks.tasks.<id>.command``) and may
reference a few variables:

    ${root}        absolute project root
    ${scope}       current scope (staged, changed, diff, all)
    ${bin:name}    path of a debug build product (.build/debug/name)

Commands are split with shell quoting rules but are not run through a
shell, so pipes and redirects are not available.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Iterable
from typing import Any

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.diagnostics import parse_diagnostics
from hookstage.core.hooks.models import (
    FixResult,
    FixSafety,
    HookDiagnostic,
    HookSeverity,
    HookType,
    TaskResult,
)
from hookstage.core.hooks.tasks.base import (
    ALL_HOOKS,
    Invocation,
    SubprocessTask,
    collect_files,
)
from hookstage.core.tools.process import ProcessResult

_BIN_VARIABLE = re.compile(r"\$\{bin:(\w+)\}")


def expand_variables(command: str, context: HookContext) -> str:
    """Substitute ${root}, ${scope} and ${bin:name} in a command string."""
    root = context.project_root
    expanded = _BIN_VARIABLE.sub(
        lambda m: shlex.quote(str(root / ".build" / "debug" / m.group(1))), command
    )
    expanded = expanded.replace("${root}", shlex.quote(str(root)))
    return expanded.replace("${scope}", context.scope.value)


class ShellTask(SubprocessTask):
    """A task that runs an arbitrary command line."""

    tolerant_parsing = True

    def __init__(
        self,
        *,
        id: str,
        command: str,
        name: str | None = None,
        fix_command: str | None = None,
        hooks: Iterable[HookType] | None = None,
        file_patterns: Iterable[str] | None = None,
        parse_output: bool = True,
        success_exit_codes: Iterable[int] = (0,),
        fix_safety: FixSafety | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            success_exit_codes=success_exit_codes, fix_safety=fix_safety, **kwargs
        )
        self.id = id
        self.name = name or id.capitalize()
        self.command = command
        self.fix_command = fix_command
        self.supports_fix = fix_command is not None
        self.hooks = frozenset(hooks) if hooks else ALL_HOOKS
        if file_patterns is not None:
            self.file_patterns = tuple(file_patterns)
        self.parse_output_enabled = parse_output

    def _split(self, command: str, context: HookContext) -> list[str]:
        try:
            return shlex.split(expand_variables(command, context))
        except ValueError:
            # Unbalanced quotes; run() reports it
            return []

    def check_invocation(self, context: HookContext) -> Invocation | None:
        parts = self._split(self.command, context)
        if not parts:
            return None
        return Invocation(parts[1:], executable=parts[0])

    def fix_invocation(self, context: HookContext) -> Invocation | None:
        if self.fix_command is None:
            return None
        parts = self._split(self.fix_command, context)
        if not parts:
            return None
        files = collect_files(context, patterns=self.file_patterns)
        return Invocation(parts[1:], files, executable=parts[0])

    async def run(self, context: HookContext) -> TaskResult:
        if self.check_invocation(context) is None:
            return TaskResult.failed(
                [
                    HookDiagnostic(
                        message=f"Empty or malformed command: {self.command!r}",
                        severity=HookSeverity.ERROR,
                        rule_id=self.id,
                    )
                ]
            )
        return await super().run(context)

    async def fix(self, context: HookContext) -> FixResult:
        if self.fix_command is None:
            return FixResult()
        if self.fix_invocation(context) is None:
            return FixResult(errors=[f"Empty or malformed fix command: {self.fix_command!r}"])
        return await super().fix(context)

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        if self.parse_output_enabled:
            return parse_diagnostics(output, keep_unmatched=True, rule_id=self.id)
        return []

    def failure_message(self, result: ProcessResult) -> str:
        output = result.output.strip()
        if output and not self.parse_output_enabled:
            return output
        return f"Command failed with exit code {result.exit_code}"
