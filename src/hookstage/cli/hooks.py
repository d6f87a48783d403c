"""
Hook commands: run a lifecycle point, apply fixes, list tasks.

Exit codes follow ExitCode: 0 when every blocking stage passed, 1 on a
blocking failure (or when git is unusable), 2 on configuration errors.
"""

import asyncio
import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from hookstage.cli.errors import ExitCode, print_error, print_not_git_repo_error
from hookstage.core.config import HooksConfig, load_config
from hookstage.core.hooks.errors import (
    CircularDependencyError,
    ConfigError,
    GitError,
    HookError,
    UnknownTaskError,
)
from hookstage.core.hooks.models import FixMode, HookType
from hookstage.core.hooks.output import ConsoleHookOutput
from hookstage.core.hooks.runner import HookRunner
from hookstage.core.hooks.tasks import TaskRegistry, build_tasks
from hookstage.utils.project import find_project_root

logger = logging.getLogger(__name__)

console = Console()


def _project_root(project_dir: str | None) -> Path:
    if project_dir is None:
        return find_project_root() or Path.cwd()

    project_path = Path(project_dir).resolve()
    if not project_path.is_dir():
        print_error(f"Not a directory: {project_path}")
        raise typer.Exit(ExitCode.USER_ERROR)
    return project_path


def _parse_only(only: str | None) -> list[str] | None:
    if only is None:
        return None
    ids = [part.strip() for part in only.split(",") if part.strip()]
    if not ids:
        print_error("--only needs at least one task id", solution="--only format,test")
        raise typer.Exit(ExitCode.USER_ERROR)
    return ids


def _parse_fix_mode(value: str) -> FixMode:
    try:
        return FixMode.parse(value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR) from e


def _load(project_root: Path, only: list[str] | None) -> tuple[HooksConfig, TaskRegistry]:
    config = load_config(project_root)
    registry = build_tasks(config)
    if only is not None:
        registry = registry.filter_only(only)
    return config, registry


def _handle_error(error: HookError) -> NoReturn:
    """Print a hook error and exit with the matching code."""
    if isinstance(error, GitError):
        if "not a git repository" in error.output.lower():
            print_not_git_repo_error()
        else:
            print_error("Git command failed", reason=str(error))
        raise typer.Exit(ExitCode.GENERAL_ERROR) from error

    if isinstance(error, ConfigError):
        print_error(
            "Invalid hooks configuration",
            reason=str(error),
            solution="Edit .hookstage.json",
        )
    elif isinstance(error, CircularDependencyError):
        print_error(
            "Invalid stage graph",
            reason=str(error),
            solution="Remove one of the dependencies in the cycle",
        )
    elif isinstance(error, UnknownTaskError):
        print_error(str(error), solution="hookstage list  # show available tasks")
    else:
        print_error(str(error))
    raise typer.Exit(ExitCode.USER_ERROR) from error


def run(
    hook: str = typer.Argument(
        "pre-commit",
        help="Hook to run: pre-commit, pre-push or ci",
    ),
    fix: str | None = typer.Option(
        None,
        "--fix",
        help="Fix mode: safe, cautious, all, none (default: from configuration)",
    ),
    only: str | None = typer.Option(
        None,
        "--only",
        help="Only run these tasks (comma-separated ids)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Stream tool output while tasks run",
    ),
    project_dir: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: nearest project root)",
    ),
) -> None:
    """
    Run the stages configured for a hook.

    Stages run in dependency order; a failed stage stops everything that
    depends on it unless it sets continueOnError.

    Examples:
        hookstage run                      # pre-commit on staged files
        hookstage run ci                   # all CI stages
        hookstage run pre-push --fix none  # check only, never fix
        hookstage run --only format,test   # just these tasks
    """
    try:
        hook_type = HookType.parse(hook)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR) from e

    fix_mode = _parse_fix_mode(fix) if fix is not None else None
    ids = _parse_only(only)
    project_root = _project_root(project_dir)

    try:
        config, registry = _load(project_root, ids)
        runner = HookRunner(
            project_root,
            config,
            registry,
            output=ConsoleHookOutput(console),
            verbose=verbose,
            only=ids,
        )
        result = asyncio.run(runner.run(hook_type, fix_mode))
    except HookError as e:
        _handle_error(e)

    logger.debug(f"{hook_type.value} finished with exit code {result.exit_code}")
    raise typer.Exit(result.exit_code)


def fix(
    mode: str = typer.Option(
        "safe",
        "--mode",
        "-m",
        help="Fix mode: safe, cautious, all",
    ),
    only: str | None = typer.Option(
        None,
        "--only",
        help="Only apply fixes from these tasks (comma-separated ids)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Stream tool output while fixes run",
    ),
    project_dir: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: nearest project root)",
    ),
) -> None:
    """
    Apply every available fix to the whole project.

    Exits with 1 when any fix reported an error.

    Examples:
        hookstage fix                     # safe fixes only
        hookstage fix --mode cautious     # also cautious fixes
        hookstage fix --only versionSync  # one task
    """
    fix_mode = _parse_fix_mode(mode)
    ids = _parse_only(only)
    project_root = _project_root(project_dir)

    try:
        config, registry = _load(project_root, ids)
        runner = HookRunner(
            project_root,
            config,
            registry,
            output=ConsoleHookOutput(console),
            verbose=verbose,
        )
        results = asyncio.run(runner.fix(fix_mode))
    except HookError as e:
        _handle_error(e)

    total = sum(r.fixes_applied for r in results)
    errors = [error for r in results for error in r.errors]

    console.print()
    if total:
        console.print(f"[green]✓ Applied {total} fix(es)[/green]")
    else:
        console.print("[green]✓ No fixes needed[/green]")
    if errors:
        console.print(f"[red]✗ {len(errors)} fix error(s)[/red]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    raise typer.Exit(ExitCode.SUCCESS)


def list_tasks(
    project_dir: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: nearest project root)",
    ),
) -> None:
    """
    List the tasks available to stages.

    Includes built-in tasks and shell tasks defined in .hookstage.json.
    """
    project_root = _project_root(project_dir)
    try:
        _, registry = _load(project_root, None)
    except HookError as e:
        _handle_error(e)

    table = Table(title="Available tasks", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Hooks", style="dim")
    table.add_column("Blocking")
    table.add_column("Fix")

    for task in registry:
        hooks = ", ".join(sorted(h.value for h in task.hooks))
        fix_label = task.fix_safety.value if task.supports_fix else "-"
        table.add_row(task.id, task.name, hooks, "yes" if task.is_blocking else "no", fix_label)

    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)
