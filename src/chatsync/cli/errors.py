"""
Standardized error handling and exit codes for the chatsync CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for chatsync CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, or a sync cycle that failed."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

    PARTIAL = 3
    """Sync completed in degraded mode, or an import stopped part-way."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


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
        ...     "Provider not configured",
        ...     reason="upstash is missing: endpoint, apiKey",
        ...     solution="chatsync sync configure upstash --set endpoint=https://...",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_not_configured_error(provider: str, missing: list[str]) -> None:
    """Print error when the active provider config has empty fields."""
    print_error(
        f"Provider '{provider}' is not configured",
        reason=f"Missing: {', '.join(missing)}",
        solution=f"chatsync sync configure {provider} --set {missing[0]}=<value>"
        if missing
        else None,
    )


def print_sync_config_error(path: str, message: str) -> None:
    """Print error when the sync config file cannot be loaded or upgraded."""
    print_error(
        f"Cannot load sync config: {path}",
        reason=message,
        solution=f"Fix or remove {path} and run chatsync sync configure again",
    )


def print_already_syncing_error() -> None:
    """Print error when a sync cycle is already running."""
    print_error(
        "A sync is already in progress",
        reason="Only one sync cycle can run at a time",
        solution="Wait for the running cycle to finish and try again",
    )
