"""
Snapshot merge engine.

Example:
    >>> from chatsync.core.merge import MergePolicy, merge_app_state
    >>> report = merge_app_state(local, remote, MergePolicy(only_sync_user_data=True))
    >>> store.write(report.snapshot)
"""

from chatsync.core.merge.engine import adopt_remote_name, merge_app_state, merge_chat
from chatsync.core.merge.models import MergeOutcome, MergePolicy, MergeReport

__all__ = [
    "MergeOutcome",
    "MergePolicy",
    "MergeReport",
    "adopt_remote_name",
    "merge_app_state",
    "merge_chat",
]
