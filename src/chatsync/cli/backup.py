"""
chatsync CLI - Backup commands.

Exports the local snapshot to a dated JSON file and imports backup files
(one JSON document or newline-delimited fragments) into local state.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from chatsync.cli.context import load_context
from chatsync.cli.errors import ExitCode, print_error
from chatsync.core.exceptions import ImportAbortedError, ParseError
from chatsync.core.merge import MergePolicy
from chatsync.core.transfer import import_snapshot, write_backup

console = Console()
app = typer.Typer(
    name="backup",
    help="Export and import local state backups",
    no_args_is_help=True,
)


@app.command(name="export")
def export_cmd(
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory to write the backup into (default from settings)",
    ),
) -> None:
    """
    Export local state to Backup-<date> <time>.json.

    Examples:
        chatsync backup export
        chatsync backup export -o ~/backups
    """
    ctx = load_context()
    try:
        snapshot = ctx.state_store.read()
    except ParseError as e:
        print_error("Cannot read local state", reason=e.message)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    path = write_backup(snapshot, output_dir or ctx.settings.paths.backup_dir)
    if ctx.event_log:
        ctx.event_log.log_export(str(path), len(snapshot))
    console.print(f"[green]✓[/green] Exported {len(snapshot)} partitions to {path}")


@app.command(name="import")
def import_cmd(
    backup_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Backup file to import",
    ),
) -> None:
    """
    Merge a backup file into local state.

    Each fragment is merged in file order. If a fragment is malformed the
    import stops there, but fragments merged before it are kept.

    Examples:
        chatsync backup import "Backup-10_19_26 15_04_05.json"
    """
    ctx = load_context()
    try:
        local = ctx.state_store.read()
    except ParseError as e:
        print_error("Cannot read local state", reason=e.message)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    text = backup_file.read_text(encoding="utf-8")
    try:
        # A backup restores every partition it holds
        result = import_snapshot(local, text, MergePolicy())
    except ImportAbortedError as e:
        if e.fragments_applied:
            ctx.state_store.write(e.snapshot)
        if ctx.event_log:
            ctx.event_log.log_import(str(backup_file), e.fragments_applied, aborted=True)
        print_error(
            f"Import stopped after {e.fragments_applied} fragment(s)",
            reason=e.message,
            solution="Fix the malformed line and import the file again",
        )
        raise typer.Exit(ExitCode.PARTIAL)

    ctx.state_store.write(result.snapshot)
    if ctx.event_log:
        ctx.event_log.log_import(str(backup_file), result.fragments_applied)
    console.print(
        f"[green]✓[/green] Imported {result.fragments_applied} fragment(s) from {backup_file}"
    )
