"""
Structured JSONL event log for sync activity.

Provides a SyncEventLog class that writes timestamped JSON Lines events for
debugging and auditing. Events are written to
~/.local/share/chatsync/logs/{profile}.jsonl

Each log line is valid JSON with the format:
{
  "timestamp": "2026-01-15T12:34:56.789Z",
  "event_type": "sync_end",
  "data": { ... event-specific data ... }
}
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from chatsync.core.sync.models import SyncResult

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be logged."""

    SYNC_START = "sync_start"
    SYNC_END = "sync_end"
    FETCH_FAILED = "fetch_failed"
    UPLOAD_FAILED = "upload_failed"
    IMPORT = "import"
    EXPORT = "export"


class LogEntry(BaseModel):
    """A single structured log entry in JSONL format."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime = Field(..., description="When the event occurred (ISO 8601 format)")
    event_type: EventType = Field(..., description="Type of event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")


def default_log_dir() -> Path:
    """Directory holding event logs (``$XDG_DATA_HOME/chatsync/logs``)."""
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if not xdg_data_home:
        xdg_data_home = os.path.expanduser("~/.local/share")
    return Path(xdg_data_home) / "chatsync" / "logs"


class SyncEventLog:
    """
    Structured JSONL logger for sync events.

    Example:
        event_log = SyncEventLog.init("default")
        event_log.log_sync_start("upstash")
        event_log.log_sync_end(result)
    """

    def __init__(self, log_file: Path):
        """
        Initialize logger with a log file path.

        Args:
            log_file: Path to the JSONL log file (will be created if needed)
        """
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def init(profile: str = "default") -> SyncEventLog:
        """
        Open the event log for a profile.

        Raises:
            ValueError: If profile is empty
        """
        if not profile:
            raise ValueError("profile cannot be empty")
        return SyncEventLog(default_log_dir() / f"{profile}.jsonl")

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        """
        Append an event to the JSONL file.

        Write failures are reported through the module logger and do not
        interrupt the sync cycle.
        """
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            data=data or {},
        )
        log_line = entry.model_dump_json(exclude_none=True) + "\n"
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(log_line)
        except OSError as e:
            logger.warning("Failed to write event log %s: %s", self.log_file, e)

    def log_sync_start(self, provider: str, shortcut: str | None = None) -> None:
        data: dict[str, Any] = {"provider": provider}
        if shortcut:
            data["shortcut"] = shortcut
        self.log_event(EventType.SYNC_START, data)

    def log_sync_end(self, result: SyncResult) -> None:
        """
        Log the end of a sync cycle.

        Args:
            result: Completed cycle result
        """
        self.log_event(
            EventType.SYNC_END,
            result.model_dump(
                mode="json",
                include={
                    "outcome",
                    "provider",
                    "fetched",
                    "uploaded",
                    "fetch_error",
                    "upload_error",
                    "shortcut",
                    "errors",
                },
                exclude_none=True,
            )
            | {"duration_sec": result.duration_seconds},
        )

    def log_fetch_failed(self, provider: str, error: str, detail: str = "") -> None:
        self.log_event(
            EventType.FETCH_FAILED,
            {"provider": provider, "error": error, "detail": detail},
        )

    def log_upload_failed(self, provider: str, error: str, detail: str = "") -> None:
        self.log_event(
            EventType.UPLOAD_FAILED,
            {"provider": provider, "error": error, "detail": detail},
        )

    def log_import(self, source: str, fragments_applied: int, aborted: bool = False) -> None:
        """
        Log a backup import.

        Args:
            source: Imported file path
            fragments_applied: Fragments merged into local state
            aborted: Whether a malformed fragment stopped the import
        """
        self.log_event(
            EventType.IMPORT,
            {"source": source, "fragments_applied": fragments_applied, "aborted": aborted},
        )

    def log_export(self, path: str, partitions: int) -> None:
        self.log_event(EventType.EXPORT, {"path": path, "partitions": partitions})

    def read_entries(self) -> list[LogEntry]:
        """Read back every entry in the log (oldest first)."""
        if not self.log_file.exists():
            return []
        entries = []
        with open(self.log_file, encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    entries.append(LogEntry.model_validate_json(line))
        return entries


__all__ = ["EventType", "LogEntry", "SyncEventLog", "default_log_dir"]
