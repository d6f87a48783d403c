"""
Standardized error handling and exit codes for the hookstage CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for hookstage operations."""

    SUCCESS = 0
    """All blocking stages passed."""

    GENERAL_ERROR = 1
    """A blocking stage failed, or git could not be used."""

    USER_ERROR = 2
    """Invalid configuration, stage graph or command-line input."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Invalid hooks configuration",
        ...     reason="ci.stages.0.name: String should have at least 1 character",
        ...     solution="Edit .hookstage.json",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}")

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}")


def print_not_git_repo_error() -> None:
    """Print error when git commands fail because there is no repository."""
    print_error(
        "Not a git repository",
        reason="The staged and changed scopes read files from git",
        solution="git init  # or run with a hook whose scope is 'all'",
    )
