"""
WebDAV provider.

The snapshot lives in one file, ``{endpoint}/{folder}/{filename}``. Reads
are plain ``GET``s; the writer makes sure the folder exists (``MKCOL``) and
then ``PUT``s the payload with an explicit JSON content type. Credentials go
over HTTP Basic auth.
"""

from __future__ import annotations

import logging

import httpx

from chatsync.core.providers.base import ProviderClient, register_provider
from chatsync.core.providers.models import ProviderResponse, ProviderType, WebDAVConfig
from chatsync.core.providers.paths import PathBuilder

logger = logging.getLogger(__name__)

# PROPFIND answers that prove the server accepted our credentials
PROBE_OK_STATUSES = frozenset({200, 207, 404})

# MKCOL answers that leave us with a usable folder (405: already exists)
MKCOL_OK_STATUSES = frozenset({200, 201, 301, 302, 307, 308, 405})


@register_provider(ProviderType.WEBDAV)
class WebDAVClient(ProviderClient):
    """Client for a WebDAV share."""

    config: WebDAVConfig

    @property
    def storage_key(self) -> str:
        return self.config.filename

    def headers(self) -> dict[str, str]:
        return {}

    def auth(self) -> httpx.Auth | None:
        if not self.config.username:
            return None
        return httpx.BasicAuth(self.config.username, self.config.password)

    def folder_url(self) -> str:
        return PathBuilder(self.config.endpoint, self.proxy_url, trailing_slash=True).url(
            self.config.folder
        )

    def file_url(self, filename: str) -> str:
        return self.paths.url(f"{self.config.folder}/{filename}")

    async def probe(self, *, timeout: float | None = None) -> ProviderResponse:
        try:
            async with self._open() as client:
                response = await self._send(
                    client,
                    "PROPFIND",
                    self.folder_url(),
                    headers={"Depth": "0"},
                    timeout=timeout,
                )
        except httpx.HTTPError as e:
            return self._failure(e, "check")

        if response.status_code in PROBE_OK_STATUSES:
            return ProviderResponse(status_code=response.status_code)
        return self._status_failure(response, "check")

    async def fetch(self, key: str, *, timeout: float | None = None) -> ProviderResponse:
        try:
            async with self._open() as client:
                response = await self._send(client, "GET", self.file_url(key), timeout=timeout)
        except httpx.HTTPError as e:
            return self._failure(e, f"get {key}")

        logger.info("[%s] get %s %d", self.name, key, response.status_code)
        if response.status_code != 200:
            return self._status_failure(response, f"get {key}")
        return ProviderResponse(payload=response.text, status_code=response.status_code)

    async def write(
        self, key: str, value: str, *, timeout: float | None = None
    ) -> ProviderResponse:
        try:
            async with self._open() as client:
                folder = await self._send(client, "MKCOL", self.folder_url(), timeout=timeout)
                if folder.status_code not in MKCOL_OK_STATUSES:
                    return self._status_failure(folder, f"create folder {self.config.folder}")

                response = await self._send(
                    client,
                    "PUT",
                    self.file_url(key),
                    content=value.encode("utf-8"),
                    headers={"Content-Type": "application/json; charset=utf-8"},
                    timeout=timeout,
                )
        except httpx.HTTPError as e:
            return self._failure(e, f"put {key}")

        logger.info("[%s] put %s %d", self.name, key, response.status_code)
        if not response.is_success:
            return self._status_failure(response, f"put {key}")
        return ProviderResponse(payload=value, status_code=response.status_code)
