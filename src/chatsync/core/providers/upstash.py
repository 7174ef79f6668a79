"""
Managed key-value store provider (Upstash REST dialect).

The store caps value sizes, so a payload is split into chunks written under
``{key}-chunk-{i}`` with the chunk count stored under ``{key}-chunk-count``.
Reads fetch the count first and then reassemble the chunks in order.
"""

from __future__ import annotations

import logging

import httpx

from chatsync.core.providers.base import ProviderClient, register_provider
from chatsync.core.providers.customrest import parse_result_envelope
from chatsync.core.providers.models import (
    ProviderErrorCode,
    ProviderResponse,
    ProviderType,
    UpstashConfig,
)
from chatsync.core.transfer.codec import DEFAULT_CHUNK_SIZE, split_chunks

logger = logging.getLogger(__name__)


def chunk_count_key(key: str) -> str:
    return f"{key}-chunk-count"


def chunk_index_key(key: str, index: int) -> str:
    return f"{key}-chunk-{index}"


@register_provider(ProviderType.UPSTASH)
class UpstashClient(ProviderClient):
    """Client for a managed KV store with chunked values."""

    config: UpstashConfig
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def _get_value(
        self, client: httpx.AsyncClient, key: str, timeout: float | None
    ) -> ProviderResponse:
        response = await self._send(client, "GET", self.paths.url(f"get/{key}"), timeout=timeout)
        if response.status_code != 200:
            return self._status_failure(response, f"get {key}")
        return parse_result_envelope(response)

    async def _set_value(
        self, client: httpx.AsyncClient, key: str, value: str, timeout: float | None
    ) -> ProviderResponse:
        response = await self._send(
            client, "POST", self.paths.url(f"set/{key}"), content=value, timeout=timeout
        )
        if not response.is_success:
            return self._status_failure(response, f"set {key}")
        return ProviderResponse(payload=value, status_code=response.status_code)

    async def probe(self, *, timeout: float | None = None) -> ProviderResponse:
        # A missing count still proves the store answered with our credentials
        try:
            async with self._open() as client:
                response = await self._get_value(
                    client, chunk_count_key(self.storage_key), timeout
                )
        except httpx.HTTPError as e:
            return self._failure(e, "check")
        if response.error == ProviderErrorCode.NOT_FOUND and response.status_code == 200:
            return ProviderResponse(status_code=200)
        return response

    async def fetch(self, key: str, *, timeout: float | None = None) -> ProviderResponse:
        try:
            async with self._open() as client:
                count_response = await self._get_value(client, chunk_count_key(key), timeout)
                if not count_response.ok:
                    return count_response

                try:
                    count = int(count_response.payload)
                except ValueError:
                    return ProviderResponse(
                        error=ProviderErrorCode.INVALID,
                        status_code=count_response.status_code,
                        detail=f"chunk count is not a number: {count_response.payload!r}",
                    )

                chunks: list[str] = []
                for index in range(count):
                    chunk = await self._get_value(client, chunk_index_key(key, index), timeout)
                    if not chunk.ok:
                        # A missing chunk means the stored value is incomplete
                        if chunk.error == ProviderErrorCode.NOT_FOUND:
                            chunk.error = ProviderErrorCode.INVALID
                            chunk.detail = f"chunk {index} of {count} is missing"
                        return chunk
                    chunks.append(chunk.payload)
        except httpx.HTTPError as e:
            return self._failure(e, f"get {key}")

        logger.info("[%s] get key = %s (%d chunks)", self.name, key, count)
        return ProviderResponse(payload="".join(chunks), status_code=200)

    async def write(
        self, key: str, value: str, *, timeout: float | None = None
    ) -> ProviderResponse:
        chunks = split_chunks(value, self.chunk_size)
        try:
            async with self._open() as client:
                for index, chunk in enumerate(chunks):
                    response = await self._set_value(
                        client, chunk_index_key(key, index), chunk, timeout
                    )
                    if not response.ok:
                        return response
                # Count goes last so readers never see a count ahead of its chunks
                response = await self._set_value(
                    client, chunk_count_key(key), str(len(chunks)), timeout
                )
                if not response.ok:
                    return response
        except httpx.HTTPError as e:
            return self._failure(e, f"set {key}")

        logger.info("[%s] set key = %s (%d chunks)", self.name, key, len(chunks))
        return ProviderResponse(payload=value, status_code=response.status_code)
