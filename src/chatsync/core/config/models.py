"""
Configuration data models for chatsync.

These models define the structure of .chatsync.json and
~/.config/chatsync/config.json files, with validation and type safety via
Pydantic. The provider credentials live in the separate sync config record
(see chatsync.core.sync.models.SyncConfig); this file only says where things
are and how patient the network layer should be.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class PathsConfig(BaseModel):
    """
    Locations of the files chatsync reads and writes.
    """
    state_file: Path = Field(
        default=Path("chatsync-state.json"),
        description="Local application snapshot"
    )
    sync_config_file: Path = Field(
        default=Path("chatsync-sync.json"),
        description="Persisted sync configuration record"
    )
    backup_dir: Path = Field(
        default=Path("."),
        description="Directory that `backup export` writes into"
    )


class NetworkConfig(BaseModel):
    """
    Timeouts and retries for provider requests.
    """
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Deadline in seconds for a whole sync cycle"
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single HTTP request"
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for transient failures (connection errors, 5xx)"
    )
    base_delay: float = Field(
        default=0.5,
        ge=0.0,
        description="Initial retry backoff in seconds"
    )


class LoggingConfig(BaseModel):
    """
    Structured event log settings.
    """
    event_log: bool = Field(
        default=True,
        description="Append sync/import/export events to the JSONL event log"
    )
    profile: str = Field(
        default="default",
        min_length=1,
        description="Event log file name under ~/.local/share/chatsync/logs/"
    )
    log_dir: Optional[Path] = Field(
        default=None,
        description="Override the event log directory"
    )


class AppSettings(BaseModel):
    """
    Top-level chatsync settings.

    Example:
        >>> settings = AppSettings()
        >>> settings.network.max_retries
        2
    """
    paths: PathsConfig = Field(default_factory=PathsConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
