"""
chatsync - State synchronization for chat applications

Reconciles a local application snapshot (chat sessions, presets, settings)
with a remote copy held by WebDAV, a REST key-value service, a gist or a
managed key-value store.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from chatsync.core.sync.models import SyncConfig, SyncOutcome, SyncResult

__all__ = ["SyncConfig", "SyncOutcome", "SyncResult", "__version__"]
