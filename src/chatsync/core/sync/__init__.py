"""
Snapshot synchronization against a remote provider.

The controller runs one fetch -> merge -> upload cycle at a time, commits the
reconciled snapshot atomically and reports a success/partial/failed outcome
instead of swallowing provider failures.

Example:
    >>> from chatsync.core.sync import SyncConfigStore, SyncController
    >>> config = SyncConfigStore(Path("sync.json")).load()
    >>> controller = SyncController(config, LocalStateStore(Path("state.json")))
    >>> result = await controller.sync(timeout=60)
    >>> if result.outcome == SyncOutcome.PARTIAL:
    ...     print(result.errors)
"""

from chatsync.core.sync.controller import SyncController
from chatsync.core.sync.migrate import CURRENT_VERSION, migrate_sync_config
from chatsync.core.sync.models import (
    FetchFailurePolicy,
    SyncConfig,
    SyncOutcome,
    SyncPhase,
    SyncResult,
)
from chatsync.core.sync.store import SyncConfigStore

__all__ = [
    "CURRENT_VERSION",
    "FetchFailurePolicy",
    "SyncConfig",
    "SyncConfigStore",
    "SyncController",
    "SyncOutcome",
    "SyncPhase",
    "SyncResult",
    "migrate_sync_config",
]
