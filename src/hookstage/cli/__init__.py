"""
hookstage CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from hookstage import __version__
from hookstage.cli import hooks

app = typer.Typer(
    name="hookstage",
    help="Run quality-gate checks in dependency-ordered stages",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    hookstage - staged quality gates for git hooks and CI.

    Quick Start:
        hookstage list               # Show available tasks
        hookstage run pre-commit     # Run the pre-commit stages
        hookstage fix                # Apply safe fixes everywhere
    """
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="run")(hooks.run)
app.command(name="fix")(hooks.fix)
app.command(name="list")(hooks.list_tasks)


@app.command()
def version() -> None:
    """Show hookstage version and exit."""
    console.print(f"hookstage version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
