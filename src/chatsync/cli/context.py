"""
Shared wiring for CLI commands.

Resolves settings into the stores, sync config and event log each command
needs.
"""

from dataclasses import dataclass
from pathlib import Path

from chatsync.core.config import AppSettings, load_settings
from chatsync.core.providers import ProviderClient, RetryConfig, create_provider
from chatsync.core.snapshot import LocalStateStore
from chatsync.core.sync import SyncConfig, SyncConfigStore
from chatsync.utils.logging import SyncEventLog


@dataclass
class CliContext:
    """Everything a command needs, resolved from settings."""

    settings: AppSettings
    state_store: LocalStateStore
    config_store: SyncConfigStore
    event_log: SyncEventLog | None

    def load_sync_config(self) -> SyncConfig:
        """Load the sync config (raises MigrationError on a bad record)."""
        return self.config_store.load()

    def create_client(self, config: SyncConfig) -> ProviderClient:
        """Build the client for the active provider with the network settings."""
        network = self.settings.network
        return create_provider(
            config.provider,
            config.provider_config(),
            proxy_url=config.effective_proxy_url(),
            timeout=network.request_timeout,
            retry=RetryConfig(max_retries=network.max_retries, base_delay=network.base_delay),
        )


def load_context(project_dir: Path | None = None) -> CliContext:
    """Load settings and build the CLI context."""
    settings = load_settings(project_dir, use_cache=False)

    event_log = None
    if settings.logging.event_log:
        if settings.logging.log_dir:
            event_log = SyncEventLog(settings.logging.log_dir / f"{settings.logging.profile}.jsonl")
        else:
            event_log = SyncEventLog.init(settings.logging.profile)

    return CliContext(
        settings=settings,
        state_store=LocalStateStore(settings.paths.state_file),
        config_store=SyncConfigStore(settings.paths.sync_config_file),
        event_log=event_log,
    )
