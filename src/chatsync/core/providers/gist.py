"""
Gist provider.

The snapshot is one file inside a gist, addressed by gist id and filename:

    GET   {api}/gists/{gist_id}   -> files[filename].content
    PATCH {api}/gists/{gist_id}   {"files": {filename: {"content": payload}}}

The gist API is called directly; the CORS relay does not apply.
"""

from __future__ import annotations

import json
import logging

import httpx

from chatsync.core.providers.base import ProviderClient, register_provider
from chatsync.core.providers.models import (
    GistConfig,
    ProviderErrorCode,
    ProviderResponse,
    ProviderType,
)

logger = logging.getLogger(__name__)


@register_provider(ProviderType.GITHUB_GIST)
class GistClient(ProviderClient):
    """Client for a single file stored in a gist."""

    config: GistConfig
    uses_proxy = False

    @property
    def storage_key(self) -> str:
        return self.config.filename

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }

    def gist_url(self) -> str:
        return self.paths.url(f"gists/{self.config.gist_id}")

    async def probe(self, *, timeout: float | None = None) -> ProviderResponse:
        try:
            async with self._open() as client:
                response = await self._send(client, "GET", self.gist_url(), timeout=timeout)
        except httpx.HTTPError as e:
            return self._failure(e, "check")
        if response.status_code != 200:
            return self._status_failure(response, "check")
        return ProviderResponse(status_code=response.status_code)

    async def fetch(self, key: str, *, timeout: float | None = None) -> ProviderResponse:
        try:
            async with self._open() as client:
                response = await self._send(client, "GET", self.gist_url(), timeout=timeout)
                if response.status_code != 200:
                    return self._status_failure(response, f"get {key}")

                try:
                    files = response.json().get("files") or {}
                except (json.JSONDecodeError, AttributeError) as e:
                    return self._invalid(response, f"gist response is not a JSON object: {e}")
                if not isinstance(files, dict):
                    return self._invalid(response, "gist response has no files object")

                entry = files.get(key)
                if not entry:
                    return ProviderResponse(
                        error=ProviderErrorCode.NOT_FOUND,
                        status_code=response.status_code,
                        detail=f"file {key} not in gist {self.config.gist_id}",
                    )
                if not isinstance(entry, dict):
                    return self._invalid(response, f"gist file {key} is not an object")

                # Large files come back truncated; the full text is at raw_url
                if entry.get("truncated") and isinstance(entry.get("raw_url"), str):
                    raw = await self._send(client, "GET", entry["raw_url"], timeout=timeout)
                    if raw.status_code != 200:
                        return self._status_failure(raw, f"get {key} (raw)")
                    return ProviderResponse(payload=raw.text, status_code=raw.status_code)
        except httpx.HTTPError as e:
            return self._failure(e, f"get {key}")

        content = entry.get("content") or ""
        if not isinstance(content, str):
            return self._invalid(response, f"gist file {key} content is not text")

        logger.info("[%s] get %s from gist %s", self.name, key, self.config.gist_id)
        return ProviderResponse(payload=content, status_code=200)

    @staticmethod
    def _invalid(response: httpx.Response, detail: str) -> ProviderResponse:
        return ProviderResponse(
            error=ProviderErrorCode.INVALID,
            status_code=response.status_code,
            detail=detail,
        )

    async def write(
        self, key: str, value: str, *, timeout: float | None = None
    ) -> ProviderResponse:
        body = {"files": {key: {"content": value}}}
        try:
            async with self._open() as client:
                response = await self._send(
                    client, "PATCH", self.gist_url(), json=body, timeout=timeout
                )
        except httpx.HTTPError as e:
            return self._failure(e, f"set {key}")

        logger.info(
            "[%s] set %s in gist %s %d",
            self.name,
            key,
            self.config.gist_id,
            response.status_code,
        )
        if not response.is_success:
            return self._status_failure(response, f"set {key}")
        return ProviderResponse(payload=value, status_code=response.status_code)
