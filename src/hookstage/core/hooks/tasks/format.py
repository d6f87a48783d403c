"""
Source formatting task backed by ``swift format``.

Check mode runs the linter in strict mode and reports one diagnostic per
finding. Fix mode rewrites files in place; only files whose content
actually changed are reported as modified, so fixing a clean tree is a
no-op.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.diagnostics import parse_diagnostics
from hookstage.core.hooks.models import FixSafety, HookDiagnostic, HookSeverity, HookType
from hookstage.core.hooks.tasks.base import Invocation, SubprocessTask, collect_files

DEFAULT_PATHS = ("Sources/", "Tests/")
DEFAULT_EXCLUDES = ("**/Fixtures/**",)


class FormatTask(SubprocessTask):
    """Check or apply source formatting."""

    id = "format"
    name = "Format"
    hooks = frozenset({HookType.PRE_COMMIT, HookType.PRE_PUSH, HookType.CI})
    supports_fix = True
    fix_safety = FixSafety.SAFE
    file_patterns = ("**/*.swift",)
    executable = "swift"
    empty_reason = "No Swift files to check"

    def __init__(
        self,
        *,
        paths: Iterable[str] = DEFAULT_PATHS,
        exclude_paths: Iterable[str] = DEFAULT_EXCLUDES,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.paths = list(paths)
        self.exclude_paths = list(exclude_paths)

    def files_to_format(self, context: HookContext) -> list[str]:
        return collect_files(
            context,
            patterns=self.file_patterns,
            exclude=self.exclude_paths,
            search_paths=self.paths,
        )

    def check_invocation(self, context: HookContext) -> Invocation | None:
        files = self.files_to_format(context)
        if not files:
            return None
        return Invocation(["format", "lint", "--strict", "--parallel", *files], files)

    def fix_invocation(self, context: HookContext) -> Invocation | None:
        files = self.files_to_format(context)
        if not files:
            return None
        return Invocation(["format", "format", "--in-place", "--parallel", *files], files)

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        # --strict turns lint warnings into failures
        return [
            d.model_copy(update={"severity": HookSeverity.ERROR})
            if d.severity is HookSeverity.WARNING
            else d
            for d in parse_diagnostics(output, rule_id=self.id, fixable=True)
        ]
