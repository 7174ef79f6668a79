"""
Data models for the merge engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MergeOutcome(str, Enum):
    """How a single partition was resolved."""

    KEPT_LOCAL = "kept_local"
    ADOPTED_REMOTE = "adopted_remote"
    MERGED = "merged"


class MergePolicy(BaseModel):
    """
    Policy flags that shape a merge.

    Example:
        >>> policy = MergePolicy(only_sync_user_data=True)
        >>> policy.only_sync_user_data
        True
    """

    model_config = ConfigDict(frozen=True)

    only_sync_user_data: bool = Field(
        default=False,
        description="Never take the Access and Config partitions from remote",
    )


@dataclass
class MergeReport:
    """
    Result of merging a remote snapshot into a local one.

    Attributes:
        snapshot: The reconciled snapshot (a new object; inputs are untouched)
        outcomes: Per-partition resolution
        placeholder_renamed: Whether a pristine local session adopted the
            remote session's name
    """

    snapshot: dict[str, Any]
    outcomes: dict[str, MergeOutcome] = field(default_factory=dict)
    placeholder_renamed: bool = False

    def summary(self) -> str:
        """Generate a human-readable summary of the merge."""
        counts: dict[MergeOutcome, int] = {}
        for outcome in self.outcomes.values():
            counts[outcome] = counts.get(outcome, 0) + 1
        parts = [f"{count} {outcome.value}" for outcome, count in sorted(counts.items())]
        if self.placeholder_renamed:
            parts.append("placeholder renamed")
        return ", ".join(parts) or "nothing to merge"
