"""
Local snapshot storage.

Reads and writes the application snapshot as a single JSON file. Writes are
staged to a temp file next to the target and committed with one
``Path.replace`` so a crash mid-write never leaves a half-written snapshot.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

from chatsync.core.exceptions import ParseError
from chatsync.core.snapshot.models import AppSnapshot, validate_snapshot

logger = logging.getLogger(__name__)


class LocalStateStore:
    """
    File-backed store for the local application snapshot.

    Example:
        >>> store = LocalStateStore(Path("state.json"))
        >>> snapshot = store.read()
        >>> snapshot["app-config"] = {"theme": "dark"}
        >>> store.write(snapshot)
    """

    def __init__(self, path: Path) -> None:
        """
        Initialize the store.

        Args:
            path: Path to the snapshot JSON file (created on first write)
        """
        self.path = Path(path)

    def exists(self) -> bool:
        """Check whether a snapshot has been written yet."""
        return self.path.exists()

    def read(self) -> AppSnapshot:
        """
        Load the local snapshot.

        Returns a deep copy each time, so callers can build a reconciled
        snapshot off to the side without touching what is on disk.

        Returns:
            The snapshot, or an empty dict if nothing has been written yet

        Raises:
            ParseError: If the file exists but does not hold a valid snapshot
        """
        if not self.path.exists():
            return {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Local snapshot at {self.path} is not valid JSON: {e.msg}",
                path=str(self.path),
                position=e.pos,
            ) from e

        return copy.deepcopy(validate_snapshot(raw, source="local snapshot"))

    def write(self, snapshot: AppSnapshot) -> None:
        """
        Commit a snapshot with a single atomic replace.

        Args:
            snapshot: Fully reconciled snapshot to persist
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            temp_path.write_text(json.dumps(snapshot, ensure_ascii=False), encoding="utf-8")
            temp_path.replace(self.path)
        except OSError:
            # Clean up temp file on failure
            if temp_path.exists():
                temp_path.unlink()
            raise

        logger.debug("Committed local snapshot to %s (%d partitions)", self.path, len(snapshot))
