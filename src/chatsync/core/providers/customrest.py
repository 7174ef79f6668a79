"""
Generic REST key-value provider.

Wire shape:
    GET  {endpoint}/get/{key}  -> 200 {"result": "<payload>"}
    POST {endpoint}/set/{key}  body = raw payload, Authorization: Bearer <token>

Any non-200 read is reported as absent to ``get`` callers; the error code on
the :class:`ProviderResponse` says why.
"""

from __future__ import annotations

import json
import logging

import httpx

from chatsync.core.providers.base import ProviderClient, register_provider
from chatsync.core.providers.models import (
    CustomRESTConfig,
    ProviderErrorCode,
    ProviderResponse,
    ProviderType,
)

logger = logging.getLogger(__name__)


def parse_result_envelope(response: httpx.Response) -> ProviderResponse:
    """
    Decode a ``{"result": ...}`` body.

    A ``null`` result means the key does not exist yet.
    """
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return ProviderResponse(
            error=ProviderErrorCode.INVALID,
            status_code=response.status_code,
            detail=f"response is not JSON: {e}",
        )

    if not isinstance(body, dict):
        return ProviderResponse(
            error=ProviderErrorCode.INVALID,
            status_code=response.status_code,
            detail="response is not a JSON object",
        )

    result = body.get("result")
    if result is None:
        return ProviderResponse(error=ProviderErrorCode.NOT_FOUND, status_code=response.status_code)
    if not isinstance(result, str):
        result = json.dumps(result)
    return ProviderResponse(payload=result, status_code=response.status_code)


@register_provider(ProviderType.CUSTOM_REST)
class CustomRESTClient(ProviderClient):
    """Client for a self-hosted REST key-value service."""

    config: CustomRESTConfig

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.token}",
            "Content-Type": "application/json",
        }

    async def fetch(self, key: str, *, timeout: float | None = None) -> ProviderResponse:
        url = self.paths.url(f"get/{key}")
        try:
            async with self._open() as client:
                response = await self._send(client, "GET", url, timeout=timeout)
        except httpx.HTTPError as e:
            return self._failure(e, f"get {key}")

        logger.info("[%s] get key = %s %d", self.name, key, response.status_code)
        if response.status_code != 200:
            return self._status_failure(response, f"get {key}")
        return parse_result_envelope(response)

    async def write(
        self, key: str, value: str, *, timeout: float | None = None
    ) -> ProviderResponse:
        url = self.paths.url(f"set/{key}")
        try:
            async with self._open() as client:
                response = await self._send(client, "POST", url, content=value, timeout=timeout)
        except httpx.HTTPError as e:
            return self._failure(e, f"set {key}")

        logger.info("[%s] set key = %s %d", self.name, key, response.status_code)
        if not response.is_success:
            return self._status_failure(response, f"set {key}")
        return ProviderResponse(payload=value, status_code=response.status_code)
