"""
Application snapshot model and local storage.

Example:
    >>> from chatsync.core.snapshot import LocalStateStore, StoreKey
    >>> store = LocalStateStore(Path("state.json"))
    >>> chat = store.read().get(StoreKey.CHAT.value, {})
"""

from chatsync.core.snapshot.models import (
    DEFAULT_TOPIC,
    STORAGE_KEY,
    AppSnapshot,
    ChatMessage,
    ChatSession,
    ChatState,
    StoreKey,
    validate_snapshot,
)
from chatsync.core.snapshot.store import LocalStateStore

__all__ = [
    "AppSnapshot",
    "ChatMessage",
    "ChatSession",
    "ChatState",
    "DEFAULT_TOPIC",
    "LocalStateStore",
    "STORAGE_KEY",
    "StoreKey",
    "validate_snapshot",
]
