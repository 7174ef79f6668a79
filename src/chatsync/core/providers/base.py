"""
Provider client base class and registry.

Every storage backend implements the same small capability contract:

- ``check()`` reports reachability and authorization as a boolean
- ``get(key)`` returns the raw remote payload, ``""`` when absent or failed
- ``set(key, value)`` uploads and returns ``value``, or ``""`` on failure

Internally each client exposes ``fetch``/``write`` returning a
:class:`ProviderResponse` so callers that care (the sync controller) can tell
"absent" apart from auth failures and transport errors.

Backends register themselves with :func:`register_provider` and are looked up
by :class:`ProviderType`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, ClassVar

import httpx

from chatsync.core.providers.http import RetryConfig, send_with_retry
from chatsync.core.providers.models import (
    ProviderConfig,
    ProviderErrorCode,
    ProviderResponse,
    ProviderType,
    classify_status,
)
from chatsync.core.providers.paths import PathBuilder
from chatsync.core.snapshot.models import STORAGE_KEY

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ProviderClient(ABC):
    """
    Base class for storage backend clients.

    Subclasses implement :meth:`fetch` and :meth:`write`; the plain
    ``get``/``set``/``check`` contract is derived from those.

    Example:
        >>> client = create_provider(ProviderType.CUSTOM_REST, CustomRESTConfig(
        ...     endpoint="https://kv.example.com", token="secret"))
        >>> if await client.check():
        ...     payload = await client.get(client.storage_key)
    """

    provider_type: ClassVar[ProviderType]
    # Whether the CORS relay applies to this backend
    uses_proxy: ClassVar[bool] = True

    def __init__(
        self,
        config: ProviderConfig,
        *,
        proxy_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Backend-specific configuration record
            proxy_url: CORS-relay origin, ignored by backends that bypass it
            timeout: Default per-request timeout in seconds
            retry: Retry policy for transient failures
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self.config = config
        self.proxy_url = proxy_url if self.uses_proxy and proxy_url else None
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self._transport = transport

    @property
    def name(self) -> str:
        """Display name used in log lines."""
        return self.provider_type.value

    @property
    def storage_key(self) -> str:
        """Remote object key, falling back to the default storage key."""
        username = getattr(self.config, "username", "")
        return username or STORAGE_KEY

    @property
    def paths(self) -> PathBuilder:
        """Path builder for this backend's endpoint."""
        return PathBuilder(self.config.endpoint, self.proxy_url)

    def headers(self) -> dict[str, str]:
        """Request headers, including auth where the backend uses a header."""
        return {"Content-Type": "application/json"}

    def auth(self) -> httpx.Auth | None:
        """Request-level auth (e.g. HTTP Basic); ``None`` when headers carry it."""
        return None

    def could_sync(self) -> bool:
        """True when every configuration field is filled in."""
        return self.config.is_complete()

    @asynccontextmanager
    async def _open(self) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(
            transport=self._transport,
            auth=self.auth(),
            follow_redirects=True,
        ) as client:
            yield client

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        response = await send_with_retry(
            client,
            method,
            url,
            retry=self.retry,
            timeout=timeout if timeout is not None else self.timeout,
            headers={**self.headers(), **(headers or {})},
            **kwargs,
        )
        logger.debug("[%s] %s %s -> %d", self.name, method, url, response.status_code)
        return response

    def _failure(self, error: httpx.HTTPError, action: str) -> ProviderResponse:
        logger.warning("[%s] %s failed: %s", self.name, action, error)
        return ProviderResponse(error=ProviderErrorCode.TRANSPORT, detail=f"{action}: {error}")

    def _status_failure(self, response: httpx.Response, action: str) -> ProviderResponse:
        code = classify_status(response.status_code)
        if code != ProviderErrorCode.NOT_FOUND:
            logger.warning("[%s] %s returned HTTP %d", self.name, action, response.status_code)
        return ProviderResponse(
            error=code,
            status_code=response.status_code,
            detail=f"{action}: HTTP {response.status_code} {response.reason_phrase}",
        )

    @abstractmethod
    async def fetch(self, key: str, *, timeout: float | None = None) -> ProviderResponse:
        """
        Read the remote payload stored under ``key``.

        Never raises for network or HTTP failures; they are reported through
        the response's error code.
        """
        ...

    @abstractmethod
    async def write(
        self, key: str, value: str, *, timeout: float | None = None
    ) -> ProviderResponse:
        """
        Upload ``value`` under ``key``.

        This is the backend's dedicated writer: payload shaping (content type,
        envelope, chunking) is explicit here rather than inferred.
        """
        ...

    async def probe(self, *, timeout: float | None = None) -> ProviderResponse:
        """Read-only reachability probe used by :meth:`check`."""
        return await self.fetch(self.storage_key, timeout=timeout)

    async def check(self, *, timeout: float | None = None) -> bool:
        """
        Report whether the backend is reachable with the configured credentials.

        Never raises; every failure is reported as ``False``.
        """
        try:
            response = await self.probe(timeout=timeout)
        except Exception:
            logger.exception("[%s] check failed unexpectedly", self.name)
            return False
        logger.info("[%s] check: %s", self.name, response.error.value)
        return response.ok

    async def get(self, key: str = "", *, timeout: float | None = None) -> str:
        """Return the raw remote payload, or ``""`` when absent or failed."""
        response = await self.fetch(key or self.storage_key, timeout=timeout)
        return response.payload if response.ok else ""

    async def set(self, key: str, value: str, *, timeout: float | None = None) -> str:
        """Upload ``value``; return it on success, ``""`` on failure."""
        response = await self.write(key or self.storage_key, value, timeout=timeout)
        return value if response.ok else ""


# Provider registry
_providers: dict[ProviderType, type[ProviderClient]] = {}


def register_provider(
    provider_type: ProviderType,
) -> Callable[[type[ProviderClient]], type[ProviderClient]]:
    """
    Decorator to register a provider client implementation.

    Usage:
        @register_provider(ProviderType.UPSTASH)
        class UpstashClient(ProviderClient):
            ...
    """

    def decorator(provider_class: type[ProviderClient]) -> type[ProviderClient]:
        provider_class.provider_type = provider_type
        _providers[provider_type] = provider_class
        return provider_class

    return decorator


def get_provider_class(provider_type: ProviderType | str) -> type[ProviderClient]:
    """
    Look up a registered provider client class.

    Raises:
        ValueError: If the provider type is not registered
    """
    try:
        provider_class = _providers.get(ProviderType(provider_type))
    except ValueError:
        provider_class = None
    if provider_class is None:
        raise ValueError(
            f"Provider '{provider_type}' not registered. "
            f"Available providers: {', '.join(p.value for p in _providers)}"
        )
    return provider_class


def create_provider(
    provider_type: ProviderType | str,
    config: ProviderConfig,
    **kwargs: Any,
) -> ProviderClient:
    """
    Instantiate the client for ``provider_type``.

    Args:
        provider_type: Backend identifier
        config: Backend configuration record
        **kwargs: Passed to the client constructor (proxy_url, timeout, ...)
    """
    return get_provider_class(provider_type)(config, **kwargs)


def list_providers() -> list[ProviderType]:
    """List all registered provider types."""
    return list(_providers)


__all__ = [
    "DEFAULT_TIMEOUT",
    "ProviderClient",
    "create_provider",
    "get_provider_class",
    "list_providers",
    "register_provider",
]
