"""
Sync controller.

Runs one fetch -> merge -> upload cycle against the active provider:

    Idle -> Fetching -> Merging -> Uploading -> Idle

Only one cycle runs at a time. The phase token is swapped under a lock, so a
second caller is rejected with :class:`ConcurrencyError` rather than racing
the first. The token returns to ``Idle`` in a ``finally`` block, which also
covers cancellation and deadline expiry.

Fetch failures do not block the upload by default: the cycle continues with
the unmodified local snapshot and reports a ``partial`` outcome. The
``on_fetch_failure`` policy can make the controller stop instead.

The reconciled snapshot is built off to the side and committed with a
single atomic replace through :class:`LocalStateStore`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import httpx

from chatsync.core.exceptions import (
    AuthError,
    ConcurrencyError,
    ParseError,
    TransportError,
)
from chatsync.core.merge import MergeOutcome, merge_app_state
from chatsync.core.providers import ProviderClient, RetryConfig, create_provider
from chatsync.core.providers.models import ProviderErrorCode, ProviderResponse, ProviderType
from chatsync.core.snapshot import AppSnapshot, LocalStateStore, validate_snapshot
from chatsync.core.sync.models import (
    FetchFailurePolicy,
    SyncConfig,
    SyncOutcome,
    SyncPhase,
    SyncResult,
)
from chatsync.core.sync.store import SyncConfigStore
from chatsync.utils.logging import SyncEventLog

logger = logging.getLogger(__name__)

OVERWRITE_REMOTE = "overwrite_remote"
OVERWRITE_LOCAL = "overwrite_local"


def _now_ms() -> int:
    return int(time.time() * 1000)


def provider_error(response: ProviderResponse, action: str) -> TransportError:
    """Build the exception describing a failed provider call."""
    error_cls = AuthError if response.error == ProviderErrorCode.AUTH else TransportError
    return error_cls(
        f"{action} failed ({response.error.value}): {response.detail}".rstrip(": "),
        error=response.error.value,
        status_code=response.status_code,
    )


class SyncController:
    """
    Coordinates sync cycles between local state and a provider.

    Example:
        >>> controller = SyncController(config, LocalStateStore(path))
        >>> result = await controller.sync(timeout=60)
        >>> print(result.summary())
    """

    def __init__(
        self,
        config: SyncConfig,
        store: LocalStateStore,
        client: ProviderClient | None = None,
        *,
        event_log: SyncEventLog | None = None,
        config_store: SyncConfigStore | None = None,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """
        Initialize the controller.

        Args:
            config: Sync configuration (provider selection, policy flags)
            store: Local snapshot storage
            client: Provider client; built from ``config`` when omitted
            event_log: Optional JSONL event log
            config_store: Where bookkeeping updates are persisted, if anywhere
            retry: Retry policy for a client built from ``config``
            transport: httpx transport for a client built from ``config``
            clock: Epoch-milliseconds clock for bookkeeping
        """
        self.config = config
        self.store = store
        self.client = client or create_provider(
            config.provider,
            config.provider_config(),
            proxy_url=config.effective_proxy_url(),
            retry=retry,
            transport=transport,
        )
        self.event_log = event_log
        self.config_store = config_store
        self._clock = clock
        self._lock = threading.Lock()
        self._phase = SyncPhase.IDLE

    @property
    def phase(self) -> SyncPhase:
        with self._lock:
            return self._phase

    @property
    def is_syncing(self) -> bool:
        return self.phase != SyncPhase.IDLE

    def _acquire(self, phase: SyncPhase) -> None:
        with self._lock:
            if self._phase != SyncPhase.IDLE:
                raise ConcurrencyError(
                    "A sync is already in progress",
                    phase=self._phase.value,
                )
            self._phase = phase

    def _enter(self, phase: SyncPhase) -> None:
        with self._lock:
            self._phase = phase
        logger.debug("Sync phase: %s", phase.value)

    def _release(self) -> None:
        with self._lock:
            self._phase = SyncPhase.IDLE

    async def _call(
        self,
        request: Callable[[float | None], Awaitable[ProviderResponse]],
        deadline: float | None,
    ) -> ProviderResponse:
        """
        Run one provider request within the remaining cycle budget.

        Raises:
            asyncio.TimeoutError: If the deadline passed or passes mid-request
        """
        if deadline is None:
            return await request(None)
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise asyncio.TimeoutError()
        return await asyncio.wait_for(request(remaining), timeout=remaining)

    async def check(self, timeout: float | None = None) -> bool:
        """Report whether the active provider is reachable. Never raises."""
        try:
            if timeout is None:
                return await self.client.check()
            return await asyncio.wait_for(self.client.check(timeout=timeout), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("[%s] check timed out after %ss", self.client.name, timeout)
            return False

    async def sync(self, timeout: float | None = None) -> SyncResult:
        """
        Run one sync cycle.

        Args:
            timeout: Deadline in seconds for the whole cycle; each network
                call gets whatever budget remains

        Returns:
            SyncResult describing the cycle

        Raises:
            ConcurrencyError: If another cycle is running
        """
        overwrite_remote = self.config.enable_overwrite_remote
        self._acquire(SyncPhase.MERGING if overwrite_remote else SyncPhase.FETCHING)
        try:
            provider = ProviderType(self.config.provider)
            result = SyncResult(
                outcome=SyncOutcome.SUCCESS,
                provider=provider,
                started_at=datetime.now(),
            )
            deadline = None if timeout is None else time.monotonic() + timeout
            if self.event_log:
                self.event_log.log_sync_start(
                    provider.value, OVERWRITE_REMOTE if overwrite_remote else None
                )
            await self._run(result, deadline)
        finally:
            self._release()
        result.completed_at = datetime.now()

        logger.info(result.summary())
        if self.event_log:
            self.event_log.log_sync_end(result)
        return result

    async def _run(self, result: SyncResult, deadline: float | None) -> None:
        local = self.store.read()
        key = self.client.storage_key

        if self.config.enable_overwrite_remote:
            result.shortcut = OVERWRITE_REMOTE
            await self._upload(result, key, local, deadline)
            self._mark_synced()
            return

        remote = await self._fetch(result, key, deadline)

        if self.config.enable_overwrite_local:
            result.shortcut = OVERWRITE_LOCAL
            if remote is None:
                result.outcome = SyncOutcome.FAILED
                result.message = "no remote snapshot to adopt; local state left untouched"
                return
            self._enter(SyncPhase.MERGING)
            self.store.write(remote)
            result.merge_outcomes = {k: MergeOutcome.ADOPTED_REMOTE for k in remote}
            self._mark_synced()
            return

        if remote is None:
            payload = local
            if result.fetch_error is not None:
                if self.config.on_fetch_failure == FetchFailurePolicy.ABORT:
                    result.outcome = SyncOutcome.FAILED
                    result.message = "fetch failed; cycle aborted"
                    return
                result.outcome = SyncOutcome.PARTIAL
                result.message = "remote unavailable; uploaded local state unmerged"
        else:
            self._enter(SyncPhase.MERGING)
            report = merge_app_state(local, remote, self.config.merge_policy())
            result.merge_outcomes = dict(report.outcomes)
            if report.snapshot != local:
                self.store.write(report.snapshot)
            payload = report.snapshot

        await self._upload(result, key, payload, deadline)
        self._mark_synced()

    async def _fetch(
        self, result: SyncResult, key: str, deadline: float | None
    ) -> AppSnapshot | None:
        """
        Fetch and decode the remote snapshot.

        Returns:
            The remote snapshot, or None when it is absent or unreadable.
            ``result.fetch_error`` is set only for failures, not absence.
        """
        self._enter(SyncPhase.FETCHING)
        result.fetched = True
        try:
            response = await self._call(
                lambda t: self.client.fetch(key, timeout=t), deadline
            )
        except asyncio.TimeoutError:
            response = ProviderResponse(
                error=ProviderErrorCode.TRANSPORT, detail="deadline exceeded"
            )

        if response.error.is_failure:
            self._record_fetch_failure(result, response.error, provider_error(response, "fetch"))
            return None

        if not response.payload:
            logger.info("[%s] no remote snapshot at %s", self.client.name, key)
            return None

        try:
            return validate_snapshot(_loads(response.payload), source="remote snapshot")
        except ParseError as e:
            self._record_fetch_failure(result, ProviderErrorCode.INVALID, e)
            return None

    def _record_fetch_failure(
        self, result: SyncResult, code: ProviderErrorCode, error: Exception
    ) -> None:
        logger.warning("[%s] %s", self.client.name, error)
        result.fetch_error = code
        result.errors.append(str(error))
        if self.event_log:
            self.event_log.log_fetch_failed(self.client.name, code.value, str(error))

    async def _upload(
        self,
        result: SyncResult,
        key: str,
        snapshot: AppSnapshot,
        deadline: float | None,
    ) -> None:
        self._enter(SyncPhase.UPLOADING)
        value = json.dumps(snapshot, ensure_ascii=False)
        result.uploaded = True
        try:
            response = await self._call(
                lambda t: self.client.write(key, value, timeout=t), deadline
            )
        except asyncio.TimeoutError:
            response = ProviderResponse(
                error=ProviderErrorCode.TRANSPORT, detail="deadline exceeded"
            )

        if response.ok:
            return

        error = provider_error(response, "upload")
        logger.warning("[%s] %s", self.client.name, error)
        result.upload_error = response.error
        result.errors.append(str(error))
        if result.outcome == SyncOutcome.SUCCESS:
            result.outcome = SyncOutcome.PARTIAL
        if self.event_log:
            self.event_log.log_upload_failed(self.client.name, response.error.value, str(error))

    def _mark_synced(self) -> None:
        self.config.mark_sync_time(self._clock())
        if self.config_store:
            self.config_store.save(self.config)


def _loads(payload: str) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Remote snapshot is not valid JSON: {e.msg}",
            position=e.pos,
        ) from e


__all__ = ["SyncController", "provider_error"]
