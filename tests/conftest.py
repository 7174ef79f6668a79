"""
Pytest configuration and shared fixtures.

Provides fixtures for isolated config/data directories, sample snapshots,
an in-memory provider client and httpx mock transports.
"""

import asyncio
import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from chatsync.core.providers import ProviderClient, RetryConfig
from chatsync.core.providers.models import (
    CustomRESTConfig,
    ProviderErrorCode,
    ProviderResponse,
    ProviderType,
)
from chatsync.core.snapshot import DEFAULT_TOPIC, LocalStateStore, StoreKey

CHAT = StoreKey.CHAT.value
MASK = StoreKey.MASK.value
CONFIG = StoreKey.CONFIG.value
ACCESS = StoreKey.ACCESS.value

# No backoff in tests
NO_RETRY = RetryConfig(max_retries=0, jitter=False)


# ==============================================================================
# Snapshot Builders
# ==============================================================================


def make_message(content: str, message_id: str | None = None, role: str = "user") -> dict:
    message: dict[str, Any] = {"role": role, "content": content}
    if message_id:
        message["id"] = message_id
    return message


def make_session(
    topic: str = DEFAULT_TOPIC,
    messages: int | list[dict] = 0,
    session_id: str | None = None,
    mask_name: str | None = None,
) -> dict:
    """Build a chat session with ``messages`` generated messages (or the given list)."""
    if isinstance(messages, int):
        prefix = session_id or topic
        messages = [make_message(f"{prefix} #{i}", f"{prefix}-m{i}") for i in range(messages)]
    session: dict[str, Any] = {
        "topic": topic,
        "messages": messages,
        "mask": {"name": mask_name or topic},
    }
    if session_id:
        session["id"] = session_id
    return session


def make_snapshot(
    sessions: list[dict] | None = None,
    current: int = 0,
    **partitions: dict,
) -> dict:
    """Build a snapshot with a Chat partition plus any extra partitions."""
    snapshot: dict[str, Any] = {
        CHAT: {"sessions": sessions or [], "currentSessionIndex": current},
    }
    snapshot.update(partitions)
    return snapshot


@pytest.fixture
def local_snapshot():
    """A local snapshot with one real session and settings partitions."""
    return make_snapshot(
        [make_session("Groceries", 2, session_id="s-local")],
        **{
            MASK: {"masks": {"m1": {"name": "Local mask"}}},
            CONFIG: {"theme": "dark"},
            ACCESS: {"accessCode": "local-code"},
        },
    )


@pytest.fixture
def remote_snapshot():
    """A remote snapshot with a different session and settings."""
    return make_snapshot(
        [make_session("Project X", 3, session_id="s-remote")],
        **{
            MASK: {"masks": {"m2": {"name": "Remote mask"}}},
            CONFIG: {"theme": "light"},
            ACCESS: {"accessCode": "remote-code"},
        },
    )


@pytest.fixture
def state_store(tmp_path):
    """A LocalStateStore in a temp directory."""
    return LocalStateStore(tmp_path / "state.json")


# ==============================================================================
# Provider Fakes
# ==============================================================================


class FakeProvider(ProviderClient):
    """
    In-memory provider client.

    Records every fetch and write so tests can assert on what the controller
    asked for.
    """

    provider_type = ProviderType.CUSTOM_REST

    def __init__(
        self,
        remote: dict | None = None,
        *,
        payload: str | None = None,
        fetch_error: ProviderErrorCode | None = None,
        write_error: ProviderErrorCode | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(CustomRESTConfig(endpoint="https://kv.example.com", token="secret"))
        self.data: dict[str, str] = {}
        if remote is not None:
            self.data[self.storage_key] = json.dumps(remote)
        if payload is not None:
            self.data[self.storage_key] = payload
        self.fetch_error = fetch_error
        self.write_error = write_error
        self.delay = delay
        self.fetch_calls: list[str] = []
        self.write_calls: list[tuple[str, str]] = []

    def uploaded(self) -> Any:
        """Decoded payload of the last write."""
        return json.loads(self.write_calls[-1][1])

    async def fetch(self, key: str, *, timeout: float | None = None) -> ProviderResponse:
        self.fetch_calls.append(key)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fetch_error:
            return ProviderResponse(error=self.fetch_error, detail="fetch refused")
        if key not in self.data:
            return ProviderResponse(error=ProviderErrorCode.NOT_FOUND, status_code=404)
        return ProviderResponse(payload=self.data[key], status_code=200)

    async def write(
        self, key: str, value: str, *, timeout: float | None = None
    ) -> ProviderResponse:
        self.write_calls.append((key, value))
        if self.write_error:
            return ProviderResponse(error=self.write_error, detail="write refused")
        self.data[key] = value
        return ProviderResponse(payload=value, status_code=200)


@pytest.fixture
def fake_provider() -> type[FakeProvider]:
    """The FakeProvider class, for tests to instantiate with their own remote state."""
    return FakeProvider


@pytest.fixture
def mock_transport() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.MockTransport]:
    """
    Build an httpx.MockTransport that records requests.

    Usage:
        def test_something(mock_transport):
            transport = mock_transport(lambda request: httpx.Response(200, json={}))
            ...
            assert transport.requests[0].url.path == "/get/key"
    """

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording_handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return factory


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """
    Provide a clean environment without CHATSYNC_* env vars.

    Removes all CHATSYNC_* environment variables to ensure tests
    don't inherit configuration from the system.
    """
    for key in list(os.environ.keys()):
        if key.startswith("CHATSYNC_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def isolated_config(clean_env, tmp_path, monkeypatch):
    """
    Provide completely isolated config environment.

    Points XDG config/data homes and the working directory at temporary
    locations so tests never load system or user settings.
    """
    config_home = tmp_path / "config"
    data_home = tmp_path / "data"
    project = tmp_path / "project"
    for directory in (config_home, data_home, project):
        directory.mkdir()

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    monkeypatch.chdir(project)

    from chatsync.core.config import clear_cache

    clear_cache()
    return tmp_path


def write_json(path: Path, data: Any) -> Path:
    """Helper to write a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path
