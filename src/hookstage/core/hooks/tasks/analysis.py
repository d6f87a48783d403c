"""
Static analysis tasks backed by the ``swa`` analyzer.

UnusedTask reports unreachable declarations, DuplicatesTask reports clone
groups. Both are advisory by default (non-blocking), and both degrade to
``skipped`` when the analyzer binary cannot be found.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.models import FixSafety, HookDiagnostic, HookSeverity, HookType
from hookstage.core.hooks.tasks.base import Invocation, SubprocessTask
from hookstage.core.tools.process import ProcessResult
from hookstage.core.tools.resolver import ExecutableResolver, PathExecutableResolver

DEFAULT_PATHS = ("Sources/",)
DEFAULT_EXCLUDES = (".build", "DerivedData")

_CONFIDENCE = {
    "high": HookSeverity.ERROR,
    "medium": HookSeverity.WARNING,
    "low": HookSeverity.INFO,
}

_FINDING = re.compile(r"^\[(?P<confidence>\w+)\]\s*(?P<rest>.*)$")
_LOCATED = re.compile(
    r"^(?P<path>[^:\s][^:]*):(?P<line>\d+)(?::(?P<column>\d+))?:\s*(?P<message>.*)$"
)
_CLONE_LOCATION = re.compile(r"^(?P<path>[^:\s][^:]*):(?P<line>\d+)")


class AnalyzerTask(SubprocessTask):
    """Shared setup for tasks running an ``swa`` subcommand."""

    hooks = frozenset({HookType.PRE_COMMIT, HookType.PRE_PUSH, HookType.CI})
    fix_safety = FixSafety.CAUTIOUS
    is_blocking = False
    executable = "swa"
    subcommand = ""

    def __init__(
        self,
        *,
        paths: Iterable[str] = DEFAULT_PATHS,
        exclude_paths: Iterable[str] = DEFAULT_EXCLUDES,
        resolver: ExecutableResolver | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(resolver=resolver or PathExecutableResolver(), **kwargs)
        self.paths = list(paths)
        self.exclude_paths = list(exclude_paths)

    def base_arguments(self, context: HookContext) -> list[str]:
        arguments = [self.subcommand]
        arguments += [str(context.project_root / p) for p in self.paths]
        for exclude in self.exclude_paths:
            arguments += ["--exclude-paths", exclude]
        return arguments


class UnusedTask(AnalyzerTask):
    """Detect unused code."""

    id = "unused"
    name = "Unused Code"
    subcommand = "unused"

    def __init__(
        self,
        *,
        mode: str = "reachability",
        sensible_defaults: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.mode = mode
        self.sensible_defaults = sensible_defaults

    def check_invocation(self, context: HookContext) -> Invocation | None:
        arguments = self.base_arguments(context)
        arguments += ["--mode", self.mode, "--format", "text"]
        if self.sensible_defaults:
            arguments.append("--sensible-defaults")
        return Invocation(arguments)

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        """Parse "[high] path:line:col: message" findings."""
        diagnostics: list[HookDiagnostic] = []
        for line in output.splitlines():
            finding = _FINDING.match(line.strip())
            if finding is None:
                continue
            severity = _CONFIDENCE.get(finding.group("confidence").lower(), HookSeverity.INFO)
            rest = finding.group("rest").strip()

            located = _LOCATED.match(rest)
            if located is not None:
                line_number = int(located.group("line")) or None
                column = located.group("column")
                diagnostics.append(
                    HookDiagnostic(
                        file=located.group("path"),
                        line=line_number,
                        column=(int(column) or None) if column and line_number else None,
                        message=located.group("message") or rest,
                        severity=severity,
                        rule_id=self.id,
                    )
                )
            elif ":" in rest:
                file, _, message = rest.partition(":")
                diagnostics.append(
                    HookDiagnostic(
                        file=file.strip(),
                        message=message.strip() or rest,
                        severity=severity,
                        rule_id=self.id,
                    )
                )
            elif rest:
                diagnostics.append(
                    HookDiagnostic(message=rest, severity=severity, rule_id=self.id)
                )
        return diagnostics


class DuplicatesTask(AnalyzerTask):
    """Detect duplicated code blocks."""

    id = "duplicates"
    name = "Duplicates"
    subcommand = "duplicates"

    def __init__(self, *, min_tokens: int = 100, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.min_tokens = min_tokens

    def check_invocation(self, context: HookContext) -> Invocation | None:
        arguments = self.base_arguments(context)
        arguments += ["--min-tokens", str(self.min_tokens), "--format", "text"]
        return Invocation(arguments)

    def is_success(self, result: ProcessResult) -> bool:
        # swa exits 0 even when it reports clones
        if result.exit_code != 0:
            return False
        return not result.output.strip() or "Found 0 clone" in result.output

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        """Turn each clone-group member into one warning."""
        diagnostics: list[HookDiagnostic] = []
        group: str | None = None
        for line in output.splitlines():
            if line.startswith("[") and "clone" in line:
                group = line.strip()
            elif line.startswith("  -") and group is not None:
                location = line[3:].strip()
                match = _CLONE_LOCATION.match(location)
                line_number = int(match.group("line")) if match else 0
                diagnostics.append(
                    HookDiagnostic(
                        file=match.group("path") if match else location,
                        line=line_number or None,
                        message=group,
                        severity=HookSeverity.WARNING,
                        rule_id=self.id,
                    )
                )
        return diagnostics
