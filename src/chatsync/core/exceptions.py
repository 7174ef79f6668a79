"""
Exceptions raised by the sync engine.

Exception Hierarchy:
    SyncError (base)
    ├── TransportError (network/timeout failures talking to a provider)
    │   └── AuthError (credentials rejected by the provider)
    ├── ParseError (malformed JSON on fetch or import)
    │   └── ImportAbortedError (import stopped part-way through)
    ├── ConcurrencyError (a sync cycle is already running)
    └── MigrationError (persisted sync config has an unrecognized shape)

Example:
    >>> from chatsync.core.exceptions import TransportError
    >>> try:
    ...     raise TransportError("Connection refused", provider="upstash")
    ... except TransportError as e:
    ...     print(e.context["provider"])
    upstash
"""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """
    Base exception for all sync engine errors.

    Attributes:
        message: Human-readable error message
        context: Additional context captured at the raise site
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class TransportError(SyncError):
    """
    Raised when a provider request fails on the wire.

    Covers connection errors, timeouts and non-success responses that the
    controller needs to report as a degraded ("partial") cycle.
    """


class AuthError(TransportError):
    """Raised when a provider rejects the configured credentials (401/403)."""


class ParseError(SyncError):
    """Raised when a remote payload or an import file is not valid snapshot JSON."""


class ImportAbortedError(ParseError):
    """
    Raised when an import stops on a malformed fragment.

    Fragments merged before the bad one stay applied: ``snapshot`` holds the
    partially merged state and ``fragments_applied`` how many fragments made
    it in. The caller decides whether to commit ``snapshot``.
    """

    def __init__(
        self,
        message: str,
        *,
        snapshot: dict[str, Any],
        fragments_applied: int,
        **context: object,
    ) -> None:
        super().__init__(message, fragments_applied=fragments_applied, **context)
        self.snapshot = snapshot
        self.fragments_applied = fragments_applied


class ConcurrencyError(SyncError):
    """Raised when a sync is requested while another cycle holds the guard."""


class MigrationError(SyncError):
    """Raised when a persisted sync config cannot be upgraded."""


__all__ = [
    "SyncError",
    "TransportError",
    "AuthError",
    "ParseError",
    "ImportAbortedError",
    "ConcurrencyError",
    "MigrationError",
]
