"""
Snapshot merge engine.

Reconciles a remote snapshot into a local one, partition by partition:

- Chat: sessions are unioned by identity and, for sessions present on both
  sides, messages are unioned too. Local sessions keep their order and new
  remote sessions are appended, so the current-session index still points
  at the same session. A pristine local placeholder (default topic, no
  messages) adopts the name of the remote session at the same index.
- Every other partition is replaced wholesale by the remote value.
- Partitions missing on one side are taken from the other.
- With ``only_sync_user_data`` the Access and Config partitions are reset to
  their pre-merge local values after the generic step, whatever the remote
  holds.

The merge is pure: inputs are never mutated and the reconciled snapshot is
returned in a :class:`MergeReport`. Merging the same remote twice gives the
same result as merging it once.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

from chatsync.core.merge.models import MergeOutcome, MergePolicy, MergeReport
from chatsync.core.snapshot.models import DEFAULT_TOPIC, AppSnapshot, StoreKey

logger = logging.getLogger(__name__)

# Partitions never taken from remote under only_sync_user_data
SETTINGS_KEYS = (StoreKey.ACCESS.value, StoreKey.CONFIG.value)


def _identity(item: dict[str, Any]) -> str:
    """Identity of a session or message: its id, else its full content."""
    item_id = item.get("id")
    if item_id not in (None, ""):
        return f"id:{item_id}"
    return "content:" + json.dumps(item, sort_keys=True, ensure_ascii=False)


def _is_pristine(session: dict[str, Any]) -> bool:
    return session.get("topic") == DEFAULT_TOPIC and not session.get("messages")


def _clamp_index(chat: dict[str, Any]) -> None:
    sessions = chat.get("sessions") or []
    index = chat.get("currentSessionIndex", 0)
    if not sessions:
        chat["currentSessionIndex"] = 0
    elif not isinstance(index, int) or not 0 <= index < len(sessions):
        chat["currentSessionIndex"] = min(max(int(index or 0), 0), len(sessions) - 1)


def _merge_messages(local_session: dict[str, Any], remote_session: dict[str, Any]) -> None:
    messages = local_session.setdefault("messages", [])
    seen = {_identity(m) for m in messages}
    for message in remote_session.get("messages") or []:
        identity = _identity(message)
        if identity not in seen:
            messages.append(copy.deepcopy(message))
            seen.add(identity)


def adopt_remote_name(local_chat: dict[str, Any], remote_chat: dict[str, Any]) -> bool:
    """
    Let a pristine local placeholder take the remote session's name.

    The local current session keeps its (empty) message list; only its topic
    and preset name change. Nothing happens unless the remote session at the
    same index has messages.

    Returns:
        True if the placeholder was renamed
    """
    sessions = local_chat.get("sessions") or []
    index = local_chat.get("currentSessionIndex", 0)
    if not 0 <= index < len(sessions) or not _is_pristine(sessions[index]):
        return False

    remote_sessions = remote_chat.get("sessions") or []
    if not 0 <= index < len(remote_sessions):
        return False

    remote_session = remote_sessions[index]
    if not remote_session.get("messages"):
        return False

    placeholder = sessions[index]
    placeholder["topic"] = remote_session.get("topic", DEFAULT_TOPIC)

    remote_mask = remote_session.get("mask") or {}
    if "name" in remote_mask:
        placeholder["mask"] = {**(placeholder.get("mask") or {}), "name": remote_mask["name"]}

    logger.debug("Pristine session %d adopted remote name %r", index, placeholder["topic"])
    return True


def merge_chat(local_chat: dict[str, Any], remote_chat: dict[str, Any]) -> tuple[dict, bool]:
    """
    Merge the Chat partition.

    Args:
        local_chat: Local Chat partition (not mutated)
        remote_chat: Remote Chat partition (not mutated)

    Returns:
        Tuple of (merged Chat partition, whether a placeholder was renamed)
    """
    merged = copy.deepcopy(local_chat)
    sessions = merged.setdefault("sessions", [])
    remote_sessions = remote_chat.get("sessions") or []

    if not sessions:
        merged["sessions"] = copy.deepcopy(remote_sessions)
        merged["currentSessionIndex"] = remote_chat.get("currentSessionIndex", 0)
        _clamp_index(merged)
        return merged, False

    by_identity = {_identity(s): s for s in sessions}
    for remote_session in remote_sessions:
        identity = _identity(remote_session)
        local_session = by_identity.get(identity)
        if local_session is None:
            appended = copy.deepcopy(remote_session)
            sessions.append(appended)
            by_identity[identity] = appended
        else:
            _merge_messages(local_session, remote_session)

    _clamp_index(merged)
    renamed = adopt_remote_name(merged, remote_chat)
    return merged, renamed


def merge_app_state(
    local: AppSnapshot,
    remote: AppSnapshot,
    policy: MergePolicy | None = None,
) -> MergeReport:
    """
    Merge a remote snapshot into a local snapshot.

    Args:
        local: Local snapshot (not mutated)
        remote: Remote snapshot (not mutated)
        policy: Merge policy flags (defaults to a full merge)

    Returns:
        MergeReport with the reconciled snapshot and per-partition outcomes

    Example:
        >>> report = merge_app_state(local, remote, MergePolicy(only_sync_user_data=True))
        >>> report.outcomes["access-control"]
        <MergeOutcome.KEPT_LOCAL: 'kept_local'>
    """
    policy = policy or MergePolicy()
    merged: AppSnapshot = copy.deepcopy(local)
    report = MergeReport(snapshot=merged)

    for key, remote_value in remote.items():
        if key == StoreKey.CHAT.value and key in merged:
            merged[key], report.placeholder_renamed = merge_chat(merged[key], remote_value)
            report.outcomes[key] = MergeOutcome.MERGED
        else:
            merged[key] = copy.deepcopy(remote_value)
            report.outcomes[key] = MergeOutcome.ADOPTED_REMOTE

    for key in local:
        report.outcomes.setdefault(key, MergeOutcome.KEPT_LOCAL)

    if policy.only_sync_user_data:
        for key in SETTINGS_KEYS:
            if key in local:
                merged[key] = copy.deepcopy(local[key])
                report.outcomes[key] = MergeOutcome.KEPT_LOCAL
            elif key in merged:
                del merged[key]
                report.outcomes.pop(key, None)

    logger.debug("Merged snapshot: %s", report.summary())
    return report


__all__ = ["adopt_remote_name", "merge_app_state", "merge_chat"]
