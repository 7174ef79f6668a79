"""
Data models for the application snapshot.

A snapshot is the whole persisted local state synchronized as one unit. It is
kept as a plain ``dict`` keyed by partition name so that every partition keeps
its own shape (and unknown partitions pass through untouched). The Pydantic
models below are used to validate the parts the sync engine actually reads.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from chatsync.core.exceptions import ParseError

# Topic given to a freshly created, untouched chat session
DEFAULT_TOPIC = "New Conversation"

# Default remote object key when a provider config leaves it blank
STORAGE_KEY = "chatgpt-next-web"

AppSnapshot = dict[str, Any]


class StoreKey(str, Enum):
    """Partition identifiers, matching the persisted store names."""

    CHAT = "chat-next-web-store"
    MASK = "mask-store"
    PROMPT = "prompt-store"
    CONFIG = "app-config"
    ACCESS = "access-control"


class ChatMessage(BaseModel):
    """A single chat message. Only ``id`` is interpreted by the merge."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    role: str | None = None
    content: Any = None


class ChatSession(BaseModel):
    """
    A chat session: ordered messages, a topic and the preset it was created from.

    ``mask`` is the preset (mask) attached to the session; its ``name`` is the
    display name shown for the conversation.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    topic: str = DEFAULT_TOPIC
    messages: list[ChatMessage] = Field(default_factory=list)
    mask: dict[str, Any] = Field(default_factory=dict)
    lastUpdate: int | float | str | None = None


class ChatState(BaseModel):
    """The Chat partition: session list plus the index of the current session."""

    model_config = ConfigDict(extra="allow")

    sessions: list[ChatSession] = Field(default_factory=list)
    currentSessionIndex: int = 0

    @model_validator(mode="after")
    def _check_current_index(self) -> ChatState:
        if self.sessions and not 0 <= self.currentSessionIndex < len(self.sessions):
            raise ValueError(
                f"currentSessionIndex {self.currentSessionIndex} out of range "
                f"for {len(self.sessions)} sessions"
            )
        return self


def validate_snapshot(raw: Any, *, source: str = "snapshot") -> AppSnapshot:
    """
    Check that ``raw`` has the shape of an application snapshot.

    Args:
        raw: Decoded JSON value
        source: Label used in error messages (e.g. "remote", "import")

    Returns:
        ``raw`` itself, now known to be a snapshot mapping

    Raises:
        ParseError: If ``raw`` is not a mapping of partitions, or the Chat
            partition is malformed
    """
    if not isinstance(raw, dict):
        raise ParseError(
            f"{source} is not a JSON object (got {type(raw).__name__})",
            source=source,
        )

    for key, value in raw.items():
        if not isinstance(value, dict):
            raise ParseError(
                f"{source} partition '{key}' is not a JSON object",
                source=source,
                partition=key,
            )

    chat = raw.get(StoreKey.CHAT.value)
    if chat is not None:
        try:
            ChatState.model_validate(chat)
        except ValidationError as e:
            raise ParseError(
                f"{source} chat partition is invalid: {e.errors()[0]['msg']}",
                source=source,
                partition=StoreKey.CHAT.value,
            ) from e

    return raw
