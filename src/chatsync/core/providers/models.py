"""
Data models for provider clients.

Defines the per-backend configuration records (as persisted in the sync
config, camelCase on disk) and the richer response type the clients report
internally alongside the plain ``get``/``set`` string contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chatsync.core.snapshot.models import STORAGE_KEY


class ProviderType(str, Enum):
    """Supported storage backends. Values double as the config record keys."""

    WEBDAV = "webdav"
    CUSTOM_REST = "CustomREST"
    UPSTASH = "upstash"
    GITHUB_GIST = "githubGist"


class ProviderErrorCode(str, Enum):
    """Why a provider call did not return a payload."""

    NONE = "none"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    INVALID = "invalid"
    SERVER = "server"
    TRANSPORT = "transport"

    @property
    def is_failure(self) -> bool:
        """True for codes that mean the backend could not be read or written."""
        return self not in (ProviderErrorCode.NONE, ProviderErrorCode.NOT_FOUND)


@dataclass
class ProviderResponse:
    """
    Outcome of one logical provider call.

    Attributes:
        payload: Raw remote payload (fetch) or written value (write);
            empty string when absent or failed
        error: Error classification, ``NONE`` on success
        status_code: Last HTTP status seen, if a response arrived
        detail: Human-readable failure detail for logs
    """

    payload: str = ""
    error: ProviderErrorCode = ProviderErrorCode.NONE
    status_code: int | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error == ProviderErrorCode.NONE


def classify_status(status_code: int) -> ProviderErrorCode:
    """
    Map an HTTP status code to a provider error code.

    Args:
        status_code: HTTP status code

    Returns:
        ``NONE`` for 2xx, otherwise the matching failure category
    """
    if 200 <= status_code < 300:
        return ProviderErrorCode.NONE
    if status_code == 404:
        return ProviderErrorCode.NOT_FOUND
    if status_code in (401, 403):
        return ProviderErrorCode.AUTH
    if status_code == 429:
        return ProviderErrorCode.RATE_LIMIT
    if 400 <= status_code < 500:
        return ProviderErrorCode.INVALID
    return ProviderErrorCode.SERVER


class _ProviderConfigBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def missing_fields(self) -> list[str]:
        """Names (as persisted) of the fields that are still empty."""
        return [key for key, value in self.model_dump(by_alias=True).items() if not str(value)]

    def is_complete(self) -> bool:
        """True when every field is filled in."""
        return not self.missing_fields()


class WebDAVConfig(_ProviderConfigBase):
    """WebDAV server credentials and the remote file location."""

    endpoint: str = Field(default="", description="WebDAV server URL")
    username: str = Field(default="", description="Basic auth user")
    password: str = Field(default="", description="Basic auth password")
    folder: str = Field(default=STORAGE_KEY, description="Remote folder holding the backup")
    filename: str = Field(default="backup.json", description="Remote backup filename")


class CustomRESTConfig(_ProviderConfigBase):
    """Generic REST key-value service (``/get/{key}``, ``/set/{key}``)."""

    endpoint: str = Field(default="", description="Service base URL")
    username: str = Field(default=STORAGE_KEY, description="Remote object key")
    token: str = Field(default="", description="Bearer token")


class UpstashConfig(_ProviderConfigBase):
    """Managed key-value store speaking the Upstash REST dialect."""

    endpoint: str = Field(default="", description="REST endpoint of the database")
    username: str = Field(default=STORAGE_KEY, description="Remote object key")
    api_key: str = Field(default="", alias="apiKey", description="REST API token")


class GistConfig(_ProviderConfigBase):
    """Code-hosting gist addressed by gist id and filename."""

    endpoint: str = Field(default="https://api.github.com", description="Gist API base URL")
    gist_id: str = Field(default="", alias="gistId", description="Gist identifier")
    filename: str = Field(default="backup.json", description="File inside the gist")
    token: str = Field(default="", description="Bearer token")


ProviderConfig = WebDAVConfig | CustomRESTConfig | UpstashConfig | GistConfig


__all__ = [
    "CustomRESTConfig",
    "GistConfig",
    "ProviderConfig",
    "ProviderErrorCode",
    "ProviderResponse",
    "ProviderType",
    "UpstashConfig",
    "WebDAVConfig",
    "classify_status",
]
