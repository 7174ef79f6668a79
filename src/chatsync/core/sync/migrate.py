"""
Schema migrations for the persisted sync configuration.

Each migration is registered with the version it upgrades *to*; it runs when
the record's version is below that threshold. Migrations run in ascending
order and each one is safe to apply to a record that already has the shape
it produces.

Example:
    >>> migrate_sync_config({"upstash": {"username": ""}}, 1.0)["upstash"]
    {'username': 'chatgpt-next-web'}
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from chatsync.core.exceptions import MigrationError
from chatsync.core.providers.models import CustomRESTConfig, GistConfig
from chatsync.core.snapshot.models import STORAGE_KEY
from chatsync.core.sync.models import SYNC_CONFIG_VERSION

logger = logging.getLogger(__name__)

CURRENT_VERSION = SYNC_CONFIG_VERSION

# Relay path shipped as the default proxy before 1.2
_LEGACY_PROXY_PATH = "/api/cors/"

MigrationFn = Callable[[dict[str, Any]], None]

# (threshold, migration) pairs, kept sorted by threshold
_migrations: list[tuple[float, MigrationFn]] = []


def migration(threshold: float) -> Callable[[MigrationFn], MigrationFn]:
    """
    Decorator to register a migration.

    Usage:
        @migration(1.1)
        def backfill_key(record: dict[str, Any]) -> None:
            ...
    """

    def decorator(fn: MigrationFn) -> MigrationFn:
        _migrations.append((threshold, fn))
        _migrations.sort(key=lambda item: item[0])
        return fn

    return decorator


def _section(record: dict[str, Any], key: str) -> dict[str, Any]:
    section = record.setdefault(key, {})
    if not isinstance(section, dict):
        raise MigrationError(
            f"Sync config field '{key}' must be an object, got {type(section).__name__}",
            field=key,
        )
    return section


@migration(1.1)
def backfill_upstash_username(record: dict[str, Any]) -> None:
    """The KV-store record gained a storage key field."""
    _section(record, "upstash")["username"] = STORAGE_KEY


@migration(1.2)
def drop_legacy_proxy_path(record: dict[str, Any]) -> None:
    """The built-in relay path is no longer the proxy default."""
    if record.get("proxyUrl") == _LEGACY_PROXY_PATH:
        record["proxyUrl"] = ""


@migration(1.3)
def rename_user_data_flag(record: dict[str, Any]) -> None:
    """Fix the flag's casing and backfill the REST and gist provider records."""
    if "onlysyncuserdata" in record:
        legacy = record.pop("onlysyncuserdata")
        record.setdefault("onlySyncUserData", legacy)

    rest = _section(record, "CustomREST")
    for key, value in CustomRESTConfig().model_dump(by_alias=True).items():
        rest.setdefault(key, value)

    gist = _section(record, "githubGist")
    for key, value in GistConfig().model_dump(by_alias=True).items():
        gist.setdefault(key, value)


def migrate_sync_config(raw: Any, version: Any = None) -> dict[str, Any]:
    """
    Upgrade a persisted sync config record to :data:`CURRENT_VERSION`.

    Args:
        raw: Record as loaded from disk (not mutated)
        version: Record's schema version; read from ``raw["version"]`` when
            omitted, and treated as 1.0 when the record has none

    Returns:
        Upgraded copy of the record with ``version`` set

    Raises:
        MigrationError: If the record is not an object or the version is not
            a number
    """
    if not isinstance(raw, dict):
        raise MigrationError(
            f"Sync config must be a JSON object, got {type(raw).__name__}",
        )

    if version is None:
        version = raw.get("version", 1.0)
    if isinstance(version, bool):
        raise MigrationError(f"Invalid sync config version: {version!r}", version=version)
    try:
        version = float(version)
    except (TypeError, ValueError) as e:
        raise MigrationError(
            f"Invalid sync config version: {version!r}", version=version
        ) from e

    record = copy.deepcopy(raw)
    for threshold, fn in _migrations:
        if version < threshold:
            logger.debug("Applying sync config migration %s (%.1f)", fn.__name__, threshold)
            fn(record)

    if version < CURRENT_VERSION:
        logger.info("Migrated sync config from %.1f to %.1f", version, CURRENT_VERSION)
        record["version"] = CURRENT_VERSION
    else:
        record.setdefault("version", version)
    return record


__all__ = [
    "CURRENT_VERSION",
    "migrate_sync_config",
    "migration",
]
