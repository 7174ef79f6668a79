"""
Request target construction with optional CORS-relay proxying.

The proxy origin is prepended to the full endpoint URL, so a relay at
``https://relay.example/`` reaches ``https://x.io/api/get/key`` through
``https://relay.example/https://x.io/api/get/key``. When the composed string
is not a usable URL (a relative proxy path, a scheme-less endpoint, ...) the
builder falls back to ``endpoint + path`` and bypasses the proxy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import httpx

logger = logging.getLogger(__name__)


class TargetMode(str, Enum):
    """How a request target was composed."""

    DIRECT = "direct"
    PROXIED = "proxied"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class RequestTarget:
    """A built request URL and the mode that produced it."""

    url: str
    mode: TargetMode


def _with_trailing_slash(value: str) -> str:
    return value if value.endswith("/") else value + "/"


def _is_absolute_url(candidate: str) -> bool:
    try:
        url = httpx.URL(candidate)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return url.scheme in ("http", "https") and bool(url.host)


class PathBuilder:
    """
    Builds provider request URLs from an endpoint prefix and a request path.

    Example:
        >>> builder = PathBuilder("https://x.io/api")
        >>> builder.build("set/abc").url
        'https://x.io/api/set/abc'
        >>> PathBuilder("https://x.io/api", proxy_url="/api/cors").build("get/abc")
        RequestTarget(url='https://x.io/api/get/abc', mode=<TargetMode.FALLBACK: 'fallback'>)
    """

    def __init__(
        self,
        endpoint: str,
        proxy_url: str | None = None,
        *,
        trailing_slash: bool = False,
    ) -> None:
        """
        Initialize the builder.

        Args:
            endpoint: Provider endpoint prefix (trailing slash optional)
            proxy_url: CORS-relay origin; ``None`` or empty disables proxying
            trailing_slash: Keep a trailing ``/`` on built paths (collection
                style resources such as WebDAV folders)
        """
        self.endpoint = _with_trailing_slash(endpoint)
        self.proxy_url = _with_trailing_slash(proxy_url) if proxy_url else ""
        self.trailing_slash = trailing_slash

    def normalize(self, path: str) -> str:
        """Strip the leading ``/`` and apply the trailing-slash rule."""
        path = path.lstrip("/")
        if self.trailing_slash:
            return _with_trailing_slash(path)
        return path.rstrip("/")

    def build(self, path: str) -> RequestTarget:
        """
        Build the request target for ``path``.

        Args:
            path: Request path relative to the endpoint (e.g. ``get/key``)

        Returns:
            RequestTarget with the URL and whether the proxy was applied
        """
        path = self.normalize(path)
        candidate = self.proxy_url + self.endpoint + path

        if _is_absolute_url(candidate):
            mode = TargetMode.PROXIED if self.proxy_url else TargetMode.DIRECT
            return RequestTarget(url=candidate, mode=mode)

        logger.debug(
            "Could not compose %r into a URL, falling back to the bare endpoint", candidate
        )
        return RequestTarget(url=self.endpoint + path, mode=TargetMode.FALLBACK)

    def url(self, path: str) -> str:
        """Shortcut for ``build(path).url``."""
        return self.build(path).url


__all__ = ["PathBuilder", "RequestTarget", "TargetMode"]
