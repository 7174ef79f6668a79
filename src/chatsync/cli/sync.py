"""
chatsync CLI - Sync commands.

Runs sync cycles against the configured provider, checks connectivity and
edits the persisted sync configuration.
"""

import asyncio
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from chatsync.cli.context import CliContext, load_context
from chatsync.cli.errors import (
    ExitCode,
    print_already_syncing_error,
    print_error,
    print_not_configured_error,
    print_sync_config_error,
)
from chatsync.core.exceptions import ConcurrencyError, MigrationError, ParseError
from chatsync.core.providers import ProviderType
from chatsync.core.providers.models import ProviderConfig
from chatsync.core.sync import (
    FetchFailurePolicy,
    SyncConfig,
    SyncController,
    SyncOutcome,
)

console = Console()
app = typer.Typer(
    name="sync",
    help="Synchronize local state with a remote provider",
    no_args_is_help=True,
)

OUTCOME_EXIT_CODES = {
    SyncOutcome.SUCCESS: ExitCode.SUCCESS,
    SyncOutcome.PARTIAL: ExitCode.PARTIAL,
    SyncOutcome.FAILED: ExitCode.GENERAL_ERROR,
}


def _load(ctx: CliContext) -> SyncConfig:
    try:
        return ctx.load_sync_config()
    except MigrationError as e:
        print_sync_config_error(str(ctx.config_store.path), e.message)
        raise typer.Exit(ExitCode.USER_ERROR)


def _require_configured(config: SyncConfig) -> None:
    if not config.could_sync():
        print_not_configured_error(
            ProviderType(config.provider).value,
            config.provider_config().missing_fields(),
        )
        raise typer.Exit(ExitCode.USER_ERROR)


def _format_ms(epoch_ms: int) -> str:
    if not epoch_ms:
        return "[dim]Never[/dim]"
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


@app.command()
def run(
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Deadline in seconds for the whole cycle (default from settings)",
    ),
    overwrite_remote: bool = typer.Option(
        False,
        "--overwrite-remote",
        help="Skip the fetch and upload local state as-is (this run only)",
    ),
    overwrite_local: bool = typer.Option(
        False,
        "--overwrite-local",
        help="Replace local state with the remote snapshot (this run only)",
    ),
) -> None:
    """
    Run one sync cycle: fetch, merge, upload.

    Exits 0 on success, 3 when the remote could not be read or written
    (local state was still uploaded or kept), 1 when the cycle failed.

    Examples:
        chatsync sync run                     # Merge with remote and upload
        chatsync sync run --timeout 30        # Give up after 30 seconds
        chatsync sync run --overwrite-remote  # Push local state as-is
    """
    if overwrite_remote and overwrite_local:
        print_error(
            "Cannot use --overwrite-remote with --overwrite-local",
            solution="Remove one of the flags",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    ctx = load_context()
    config = _load(ctx)
    _require_configured(config)

    # Per-run flags apply to a copy; only bookkeeping is persisted
    run_config = config.model_copy(
        update={
            "enable_overwrite_remote": config.enable_overwrite_remote or overwrite_remote,
            "enable_overwrite_local": config.enable_overwrite_local or overwrite_local,
        }
    )
    controller = SyncController(
        run_config,
        ctx.state_store,
        ctx.create_client(run_config),
        event_log=ctx.event_log,
    )

    console.print(f"[blue]Syncing with {ProviderType(config.provider).value}...[/blue]")
    try:
        result = asyncio.run(controller.sync(timeout=timeout or ctx.settings.network.timeout))
    except ConcurrencyError:
        print_already_syncing_error()
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except ParseError as e:
        print_error(
            "Cannot read local state",
            reason=e.message,
            solution="Restore the state file from a backup or remove it",
        )
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if run_config.last_sync_time != config.last_sync_time:
        config.mark_sync_time(run_config.last_sync_time)
        ctx.config_store.save(config)

    if result.outcome == SyncOutcome.SUCCESS:
        console.print(f"[green]✓[/green] {result.summary()}")
    elif result.outcome == SyncOutcome.PARTIAL:
        console.print(f"[yellow]⚠[/yellow]  {result.summary()}")
        for error in result.errors:
            console.print(f"  [dim]{error}[/dim]")
    else:
        console.print(f"[red]✗[/red] {result.summary()}")
        for error in result.errors:
            console.print(f"  [dim]{error}[/dim]")

    raise typer.Exit(OUTCOME_EXIT_CODES[result.outcome])


@app.command()
def check(
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for the provider",
    ),
) -> None:
    """
    Check that the active provider is reachable with the configured credentials.

    Examples:
        chatsync sync check
    """
    ctx = load_context()
    config = _load(ctx)
    _require_configured(config)

    controller = SyncController(config, ctx.state_store, ctx.create_client(config))
    provider = ProviderType(config.provider).value
    if asyncio.run(controller.check(timeout=timeout or ctx.settings.network.request_timeout)):
        console.print(f"[green]✓[/green] {provider} is reachable")
        return

    console.print(f"[red]✗[/red] {provider} is not reachable")
    raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command()
def status() -> None:
    """
    Show the sync configuration and bookkeeping.

    Examples:
        chatsync sync status
    """
    ctx = load_context()
    config = _load(ctx)
    provider = ProviderType(config.provider)

    table = Table(title="Sync Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Provider", provider.value)
    if config.could_sync():
        table.add_row("Configured", "[green]yes[/green]")
    else:
        missing = ", ".join(config.provider_config().missing_fields())
        table.add_row("Configured", f"[red]no[/red] (missing: {missing})")
    table.add_row("Proxy", config.effective_proxy_url() or "[dim]off[/dim]")
    table.add_row("Last synced", _format_ms(config.last_sync_time))
    table.add_row("Last provider", config.last_provider or "[dim]-[/dim]")
    table.add_row("Only user data", str(config.only_sync_user_data))
    table.add_row("Overwrite remote", str(config.enable_overwrite_remote))
    table.add_row("Overwrite local", str(config.enable_overwrite_local))
    table.add_row("On fetch failure", config.on_fetch_failure.value)
    table.add_row("Local state", str(ctx.state_store.path))

    console.print(table)


def _apply_assignments(record: ProviderConfig, assignments: list[str]) -> ProviderConfig:
    """Apply ``field=value`` assignments; field names or persisted names."""
    model = type(record)
    aliases = {name: field.alias or name for name, field in model.model_fields.items()}
    known = set(aliases.values())

    data = record.model_dump(by_alias=True)
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected FIELD=VALUE, got '{assignment}'")
        key = aliases.get(key, key)
        if key not in known:
            raise typer.BadParameter(
                f"Unknown field '{key}'. Valid fields: {', '.join(sorted(known))}"
            )
        data[key] = value
    return model.model_validate(data)


@app.command()
def configure(
    provider: ProviderType = typer.Argument(..., help="Provider to configure"),
    assignments: Optional[list[str]] = typer.Option(
        None,
        "--set",
        "-s",
        help="Provider field as FIELD=VALUE (repeatable)",
    ),
    activate: bool = typer.Option(
        True,
        "--activate/--no-activate",
        help="Make this the active provider",
    ),
    proxy_url: Optional[str] = typer.Option(
        None,
        "--proxy-url",
        help="CORS-relay origin (empty string to clear)",
    ),
    use_proxy: Optional[bool] = typer.Option(
        None,
        "--use-proxy/--no-proxy",
        help="Route requests through the CORS relay",
    ),
    only_user_data: Optional[bool] = typer.Option(
        None,
        "--only-user-data/--all-data",
        help="Never take access and config partitions from remote",
    ),
    on_fetch_failure: Optional[FetchFailurePolicy] = typer.Option(
        None,
        "--on-fetch-failure",
        help="Upload local state or abort when the remote cannot be read",
    ),
) -> None:
    """
    Update the sync configuration.

    Examples:
        chatsync sync configure upstash --set endpoint=https://x.upstash.io --set apiKey=...
        chatsync sync configure webdav -s endpoint=https://dav.example.com -s username=me
        chatsync sync configure CustomREST --no-activate --proxy-url https://relay.example.com
    """
    ctx = load_context()
    config = _load(ctx)

    try:
        record = _apply_assignments(config.provider_config(provider), assignments or [])
    except ValueError as e:
        print_error(f"Invalid {provider.value} configuration", reason=str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    config.set_provider_config(provider, record)
    if activate:
        config.provider = provider
    if proxy_url is not None:
        config.proxy_url = proxy_url
    if use_proxy is not None:
        config.use_proxy = use_proxy
    if only_user_data is not None:
        config.only_sync_user_data = only_user_data
    if on_fetch_failure is not None:
        config.on_fetch_failure = on_fetch_failure

    ctx.config_store.save(config)
    console.print(f"[green]✓[/green] Saved {provider.value} configuration")

    missing = record.missing_fields()
    if missing:
        console.print(f"[dim]Still missing: {', '.join(missing)}[/dim]")
