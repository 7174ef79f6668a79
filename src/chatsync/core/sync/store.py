"""
Persistence for the sync configuration record.

The record is stored as one camelCase JSON object. Loading runs the schema
migrator before validation; saving goes through a temp file and an atomic
replace.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from chatsync.core.exceptions import MigrationError
from chatsync.core.sync.migrate import migrate_sync_config
from chatsync.core.sync.models import SyncConfig

logger = logging.getLogger(__name__)


class SyncConfigStore:
    """
    Load and save the sync configuration.

    Example:
        >>> store = SyncConfigStore(Path("sync.json"))
        >>> config = store.load()
        >>> config.provider = ProviderType.UPSTASH
        >>> store.save(config)
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> SyncConfig:
        """
        Load the sync config, migrating older records.

        A missing file yields the default configuration.

        Raises:
            MigrationError: If the file is not a valid, upgradable record
        """
        if not self.path.exists():
            return SyncConfig()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise MigrationError(
                f"Sync config {self.path} is not valid JSON: {e.msg}",
                path=str(self.path),
            ) from e

        record = migrate_sync_config(raw)
        try:
            return SyncConfig.model_validate(record)
        except ValidationError as e:
            raise MigrationError(
                f"Sync config {self.path} has an unrecognized shape: {e}",
                path=str(self.path),
            ) from e

    def save(self, config: SyncConfig) -> None:
        """Save the sync config atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.path.with_suffix(".tmp")
        try:
            temp_path.write_text(
                config.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
            )
            temp_path.replace(self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise
        logger.debug("Saved sync config to %s", self.path)


__all__ = ["SyncConfigStore"]
