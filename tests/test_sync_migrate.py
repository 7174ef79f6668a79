"""
Tests for sync config schema migrations.

Tests cover:
- Upstash storage key backfill (1.1)
- Legacy proxy path cleanup (1.2)
- Flag rename and provider record backfill (1.3)
- Version handling and malformed records
"""

import pytest

from chatsync.core.exceptions import MigrationError
from chatsync.core.snapshot import STORAGE_KEY
from chatsync.core.sync import CURRENT_VERSION, migrate_sync_config


class TestUpstashBackfill:
    """Records older than 1.1 gain the default storage key."""

    def test_version_one_record_gains_storage_key(self):
        raw = {"version": 1.0, "upstash": {"endpoint": "https://kv.example.com", "apiKey": "k"}}

        record = migrate_sync_config(raw)

        assert record["upstash"]["username"] == STORAGE_KEY
        assert record["upstash"]["endpoint"] == "https://kv.example.com"
        assert record["version"] == CURRENT_VERSION

    def test_missing_version_treated_as_one(self):
        record = migrate_sync_config({"upstash": {}})
        assert record["upstash"]["username"] == STORAGE_KEY

    def test_explicit_version_argument_wins(self):
        record = migrate_sync_config({"version": 1.3, "upstash": {"username": "mine"}}, 1.0)
        assert record["upstash"]["username"] == STORAGE_KEY

    def test_newer_record_keeps_custom_key(self):
        raw = {"version": 1.1, "upstash": {"username": "my-key"}}
        record = migrate_sync_config(raw)
        assert record["upstash"]["username"] == "my-key"

    def test_missing_upstash_section_is_created(self):
        record = migrate_sync_config({"version": 1.0})
        assert record["upstash"] == {"username": STORAGE_KEY}


class TestProxyCleanup:
    def test_legacy_relay_path_cleared(self):
        record = migrate_sync_config({"version": 1.1, "proxyUrl": "/api/cors/"})
        assert record["proxyUrl"] == ""

    def test_custom_proxy_kept(self):
        raw = {"version": 1.1, "proxyUrl": "https://relay.example.com"}
        assert migrate_sync_config(raw)["proxyUrl"] == "https://relay.example.com"

    def test_current_record_not_touched(self):
        raw = {"version": 1.3, "proxyUrl": "/api/cors/"}
        assert migrate_sync_config(raw)["proxyUrl"] == "/api/cors/"


class TestFlagRename:
    def test_lowercase_flag_renamed(self):
        record = migrate_sync_config({"version": 1.2, "onlysyncuserdata": False})

        assert "onlysyncuserdata" not in record
        assert record["onlySyncUserData"] is False

    def test_existing_camel_case_flag_wins(self):
        raw = {"version": 1.2, "onlysyncuserdata": False, "onlySyncUserData": True}
        assert migrate_sync_config(raw)["onlySyncUserData"] is True

    def test_provider_records_backfilled(self):
        raw = {"version": 1.2, "CustomREST": {"endpoint": "https://kv.example.com"}}

        record = migrate_sync_config(raw)

        assert record["CustomREST"] == {
            "endpoint": "https://kv.example.com",
            "username": STORAGE_KEY,
            "token": "",
        }
        assert record["githubGist"]["filename"] == "backup.json"
        assert record["githubGist"]["gistId"] == ""


class TestMigrationProperties:
    def test_input_not_mutated(self):
        raw = {"version": 1.0, "upstash": {}}
        migrate_sync_config(raw)
        assert raw == {"version": 1.0, "upstash": {}}

    def test_current_record_unchanged(self):
        raw = {"version": CURRENT_VERSION, "provider": "upstash", "upstash": {"username": "k"}}
        assert migrate_sync_config(raw) == raw

    def test_migrating_twice_is_stable(self):
        once = migrate_sync_config({"version": 1.0, "onlysyncuserdata": True})
        assert migrate_sync_config(once) == once

    def test_string_version_accepted(self):
        record = migrate_sync_config({"version": "1.0"})
        assert record["version"] == CURRENT_VERSION


class TestMalformedRecords:
    @pytest.mark.parametrize("raw", [[], "config", 42, None])
    def test_non_object_rejected(self, raw):
        with pytest.raises(MigrationError, match="must be a JSON object"):
            migrate_sync_config(raw)

    @pytest.mark.parametrize("version", ["latest", True, [1]])
    def test_bad_version_rejected(self, version):
        with pytest.raises(MigrationError, match="Invalid sync config version"):
            migrate_sync_config({"version": version})

    def test_non_object_section_rejected(self):
        with pytest.raises(MigrationError, match="'upstash' must be an object"):
            migrate_sync_config({"version": 1.0, "upstash": "oops"})
