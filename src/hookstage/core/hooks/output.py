"""
Progress and report output for hook runs.

The StageRunner and HookRunner talk to a HookOutput rather than printing,
so the CLI can render with Rich while tests and library callers stay
silent (NullHookOutput).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rich.console import Console
from rich.markup import escape

from hookstage.core.hooks.models import HookSeverity, TaskStatus
from hookstage.core.hooks.report import (
    blocked_line,
    diagnostic_line,
    stage_line,
    summary_line,
    task_line,
)

if TYPE_CHECKING:
    from hookstage.core.hooks.results import (
        BlockedStage,
        StageResult,
        StageRunOutcome,
        TaskRunResult,
    )
    from hookstage.core.hooks.stage import Stage


@runtime_checkable
class HookOutput(Protocol):
    """
    Protocol for hook run output.

    Task callbacks for a parallel stage arrive in completion order; the
    final :meth:`report` is always in declaration order.
    """

    def header(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def stage_start(self, stage: Stage) -> None: ...

    def task_start(self, name: str) -> None: ...

    def task_complete(self, result: TaskRunResult) -> None: ...

    def stage_complete(self, result: StageResult) -> None: ...

    def stage_blocked(self, blocked: BlockedStage) -> None: ...

    def report(self, outcome: StageRunOutcome) -> None: ...


class NullHookOutput:
    """Discards everything."""

    def header(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def stage_start(self, stage: Stage) -> None:
        pass

    def task_start(self, name: str) -> None:
        pass

    def task_complete(self, result: TaskRunResult) -> None:
        pass

    def stage_complete(self, result: StageResult) -> None:
        pass

    def stage_blocked(self, blocked: BlockedStage) -> None:
        pass

    def report(self, outcome: StageRunOutcome) -> None:
        pass


_STATUS_STYLES = {
    TaskStatus.PASSED: ("✓", "green"),
    TaskStatus.FAILED: ("✗", "red"),
    TaskStatus.WARNING: ("⚠", "yellow"),
    TaskStatus.SKIPPED: ("⊘", "dim"),
}

_SEVERITY_STYLES = {
    HookSeverity.ERROR: "red",
    HookSeverity.WARNING: "yellow",
    HookSeverity.INFO: "dim",
}


class ConsoleHookOutput:
    """Rich console output with status icons and colours."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def header(self, message: str) -> None:
        self.console.print()
        self.console.print(f"[bold yellow]{escape(message)}[/bold yellow]")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]{escape(message)}[/blue]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def stage_start(self, stage: Stage) -> None:
        mode = "parallel" if stage.parallel else "sequential"
        self.console.print(f"[bold cyan]▶ {escape(stage.name)}[/bold cyan] [dim]({mode})[/dim]")

    def task_start(self, name: str) -> None:
        self.console.print(f"  [cyan]Running {escape(name)}...[/cyan]")

    def task_complete(self, result: TaskRunResult) -> None:
        icon, style = _STATUS_STYLES[result.status]
        self.console.print(f"  [{style}]{icon} {escape(task_line(result))}[/{style}]")

    def stage_complete(self, result: StageResult) -> None:
        style = "green" if result.success else "red"
        self.console.print(f"[{style}]{escape(stage_line(result))}[/{style}]")

    def stage_blocked(self, blocked: BlockedStage) -> None:
        self.console.print(f"[dim]⊘ {escape(blocked_line(blocked))}[/dim]")

    def report(self, outcome: StageRunOutcome) -> None:
        self.console.print()
        for result in outcome.results:
            self.stage_complete(result)
            for task in result.task_results:
                self.task_complete(task)
                for diagnostic in task.task_result.diagnostics:
                    style = _SEVERITY_STYLES[diagnostic.severity]
                    self.console.print(
                        f"      [{style}]{escape(diagnostic_line(diagnostic))}[/{style}]"
                    )
        for blocked in outcome.blocked:
            self.stage_blocked(blocked)

        style = "green" if outcome.success else "red"
        self.console.print()
        self.console.print(f"[bold {style}]{escape(summary_line(outcome))}[/bold {style}]")
