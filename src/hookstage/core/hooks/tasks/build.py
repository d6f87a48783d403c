"""Build and test tasks backed by ``swift build`` / ``swift test``."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from hookstage.core.hooks.context import HookContext
from hookstage.core.hooks.diagnostics import parse_diagnostics
from hookstage.core.hooks.models import HookDiagnostic, HookSeverity, HookType
from hookstage.core.hooks.tasks.base import Invocation, SubprocessTask
from hookstage.core.tools.process import ProcessResult


class BuildTask(SubprocessTask):
    """Compile the project; compiler errors and warnings become diagnostics."""

    id = "build"
    name = "Build"
    hooks = frozenset({HookType.PRE_COMMIT, HookType.PRE_PUSH, HookType.CI})
    file_patterns = ("**/*.swift", "Package.swift")
    executable = "swift"

    def __init__(self, *, configuration: str = "debug", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.configuration = configuration

    def check_invocation(self, context: HookContext) -> Invocation | None:
        return Invocation(["build", "-c", self.configuration])

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        # Linker and package-resolution noise is dropped; only source locations count
        return parse_diagnostics(output, rule_id=self.id, path_suffix=".swift")


class TestTask(SubprocessTask):
    """Run the test suite; failing test lines become diagnostics."""

    __test__ = False  # not a pytest test class

    id = "test"
    name = "Test"
    hooks = frozenset({HookType.PRE_PUSH, HookType.CI})
    executable = "swift"

    def __init__(
        self,
        *,
        parallel: bool = True,
        test_filter: str | None = None,
        coverage: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.parallel = parallel
        self.test_filter = test_filter
        self.coverage = coverage

    def configured(self, options: Mapping[str, Any]) -> TestTask:
        if not options:
            return self
        task = copy.copy(self)
        task.parallel = bool(options.get("parallel", self.parallel))
        task.coverage = bool(options.get("coverage", self.coverage))
        task.test_filter = options.get("filter", self.test_filter)
        return task

    def check_invocation(self, context: HookContext) -> Invocation | None:
        arguments = ["test"]
        if self.parallel:
            arguments.append("--parallel")
        if self.coverage:
            arguments.append("--enable-code-coverage")
        if self.test_filter:
            arguments += ["--filter", self.test_filter]
        return Invocation(arguments)

    def parse_output(self, output: str) -> list[HookDiagnostic]:
        diagnostics: list[HookDiagnostic] = []
        for line in output.splitlines():
            if "failed" not in line and "FAILED" not in line:
                continue
            located = parse_diagnostics(line, rule_id=self.id)
            if located:
                diagnostics.extend(located)
            else:
                diagnostics.append(
                    HookDiagnostic(
                        message=line.strip(), severity=HookSeverity.ERROR, rule_id=self.id
                    )
                )
        return diagnostics

    def failure_message(self, result: ProcessResult) -> str:
        return "Tests failed. Run 'swift test' for details."
