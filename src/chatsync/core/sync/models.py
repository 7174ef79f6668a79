"""
Data models for the sync controller.

Defines the persisted sync configuration record (camelCase on disk, matching
the stored format) and the result of a sync cycle.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chatsync.core.merge import MergeOutcome, MergePolicy
from chatsync.core.providers.models import (
    CustomRESTConfig,
    GistConfig,
    ProviderConfig,
    ProviderErrorCode,
    ProviderType,
    UpstashConfig,
    WebDAVConfig,
)

# Schema version written by this release; see chatsync.core.sync.migrate
SYNC_CONFIG_VERSION = 1.3

# SyncConfig attribute holding each provider's record
_PROVIDER_FIELDS = {
    ProviderType.CUSTOM_REST: "custom_rest",
    ProviderType.WEBDAV: "webdav",
    ProviderType.UPSTASH: "upstash",
    ProviderType.GITHUB_GIST: "github_gist",
}


class SyncPhase(str, Enum):
    """States of the sync state machine."""

    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    UPLOADING = "uploading"


class SyncOutcome(str, Enum):
    """Overall result of a sync cycle."""

    SUCCESS = "success"
    # Remote could not be read; local state was uploaded unmerged
    PARTIAL = "partial"
    FAILED = "failed"


class FetchFailurePolicy(str, Enum):
    """What the controller does when the remote snapshot cannot be fetched."""

    CONTINUE_WITH_LOCAL = "continue_with_local"
    ABORT = "abort"


class SyncConfig(BaseModel):
    """
    Persistent sync configuration.

    Holds the active provider selection, one configuration record per
    backend, sync bookkeeping and the policy flags.

    Example:
        >>> config = SyncConfig(provider=ProviderType.UPSTASH)
        >>> config.upstash.username
        'chatgpt-next-web'
        >>> config.model_dump(by_alias=True)["enableOverwriteRemote"]
        False
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=False,
    )

    provider: ProviderType = Field(
        default=ProviderType.WEBDAV,
        description="Active storage backend",
    )
    use_proxy: bool = Field(default=True, description="Route requests through the CORS relay")
    proxy_url: str = Field(default="", description="CORS-relay origin")

    custom_rest: CustomRESTConfig = Field(default_factory=CustomRESTConfig, alias="CustomREST")
    webdav: WebDAVConfig = Field(default_factory=WebDAVConfig, alias="webdav")
    upstash: UpstashConfig = Field(default_factory=UpstashConfig, alias="upstash")
    github_gist: GistConfig = Field(default_factory=GistConfig, alias="githubGist")

    # Bookkeeping (epoch milliseconds)
    last_sync_time: int = Field(default=0, description="When the last cycle completed")
    last_provider: str = Field(default="", description="Provider used by the last cycle")
    last_update_time: int = Field(default=0, description="When bookkeeping last changed")

    # Policy flags
    enable_overwrite_remote: bool = Field(
        default=False,
        description="Skip the fetch and push local state over the remote copy",
    )
    enable_overwrite_local: bool = Field(
        default=False,
        description="Adopt the remote snapshot wholesale and skip the upload",
    )
    only_sync_user_data: bool = Field(
        default=True,
        description="Never take Access and Config partitions from remote",
    )
    on_fetch_failure: FetchFailurePolicy = Field(
        default=FetchFailurePolicy.CONTINUE_WITH_LOCAL,
        description="Whether a failed fetch still uploads local state",
    )

    version: float = Field(default=SYNC_CONFIG_VERSION, description="Schema version")

    def provider_config(self, provider: ProviderType | None = None) -> ProviderConfig:
        """Configuration record for ``provider`` (default: the active one)."""
        return getattr(self, _PROVIDER_FIELDS[ProviderType(provider or self.provider)])

    def set_provider_config(self, provider: ProviderType, record: ProviderConfig) -> None:
        """Replace the configuration record for ``provider``."""
        setattr(self, _PROVIDER_FIELDS[ProviderType(provider)], record)

    def effective_proxy_url(self) -> str | None:
        """Proxy origin to use, or None when proxying is off."""
        if self.use_proxy and self.proxy_url:
            return self.proxy_url
        return None

    def could_sync(self) -> bool:
        """True when every field of the active provider config is filled in."""
        return self.provider_config().is_complete()

    def merge_policy(self) -> MergePolicy:
        return MergePolicy(only_sync_user_data=self.only_sync_user_data)

    def mark_sync_time(self, now_ms: int) -> None:
        """Update bookkeeping after a completed cycle."""
        self.last_sync_time = now_ms
        self.last_provider = ProviderType(self.provider).value
        self.last_update_time = now_ms


class SyncResult(BaseModel):
    """
    Result of a sync cycle.

    Provides detailed feedback about what happened during the cycle,
    including why a degraded ("partial") cycle did not merge.
    """

    outcome: SyncOutcome = Field(description="Overall result")
    provider: ProviderType = Field(description="Backend used")

    fetched: bool = Field(default=False, description="Whether a fetch request was issued")
    uploaded: bool = Field(default=False, description="Whether an upload request was issued")
    fetch_error: ProviderErrorCode | None = Field(
        default=None,
        description="Classification of a failed fetch",
    )
    upload_error: ProviderErrorCode | None = Field(
        default=None,
        description="Classification of a failed upload",
    )
    merge_outcomes: dict[str, MergeOutcome] = Field(
        default_factory=dict,
        description="Per-partition merge resolution",
    )
    shortcut: str | None = Field(
        default=None,
        description="Overwrite shortcut taken (overwrite_remote, overwrite_local)",
    )
    errors: list[str] = Field(default_factory=list, description="Error messages")
    message: str = Field(default="", description="Human-readable result message")

    # Timing
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def success(self) -> bool:
        return self.outcome == SyncOutcome.SUCCESS

    @property
    def duration_seconds(self) -> float | None:
        """Calculate cycle duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        parts = [f"sync {self.outcome.value} via {ProviderType(self.provider).value}"]
        if self.shortcut:
            parts.append(self.shortcut.replace("_", "-"))
        if self.merge_outcomes:
            merged = sum(1 for o in self.merge_outcomes.values() if o != MergeOutcome.KEPT_LOCAL)
            parts.append(f"{merged} partitions updated from remote")
        if self.fetch_error:
            parts.append(f"fetch failed ({self.fetch_error.value})")
        if self.upload_error:
            parts.append(f"upload failed ({self.upload_error.value})")
        if self.message:
            parts.append(self.message)
        return ", ".join(parts)
