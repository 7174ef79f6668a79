"""
chatsync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from chatsync import __version__
from chatsync.cli import backup, sync
from chatsync.core.config import load_env_files

# Create the main Typer app
app = typer.Typer(
    name="chatsync",
    help="Synchronize chat application state with remote storage providers",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for CLI commands.

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
    chatsync - keep chat sessions, presets and settings in sync.

    Quick Start:
        1. chatsync sync configure upstash -s endpoint=... -s apiKey=...
        2. chatsync sync check
        3. chatsync sync run

    Backups:
        chatsync backup export
        chatsync backup import "Backup-10_19_26 15_04_05.json"
    """
    setup_logging(debug)
    # Precedence: OS env > project .env.local > project .env > user .env
    load_env_files()

    ctx.obj = {"debug": debug}


app.add_typer(sync.app, name="sync")
app.add_typer(backup.app, name="backup")


@app.command()
def version() -> None:
    """Show chatsync version and exit."""
    console.print(f"chatsync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
