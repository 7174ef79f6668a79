"""
Storage backend clients for the sync engine.

Each backend implements the same ``check``/``get``/``set`` capability over
its own wire protocol and is selected through a registry keyed by
:class:`ProviderType`.

Components:
- ProviderClient: Base class implementing the capability contract
- PathBuilder: Request URL composition with optional CORS-relay proxying
- Registry: ``register_provider`` / ``create_provider``

Example:
    from chatsync.core.providers import ProviderType, create_provider
    from chatsync.core.providers.models import CustomRESTConfig

    client = create_provider(
        ProviderType.CUSTOM_REST,
        CustomRESTConfig(endpoint="https://kv.example.com", token="secret"),
    )
    if await client.check():
        payload = await client.get(client.storage_key)
"""

# Import clients so they register themselves
from chatsync.core.providers import customrest, gist, upstash, webdav  # noqa: F401
from chatsync.core.providers.base import (
    DEFAULT_TIMEOUT,
    ProviderClient,
    create_provider,
    get_provider_class,
    list_providers,
    register_provider,
)
from chatsync.core.providers.http import RetryConfig
from chatsync.core.providers.models import (
    CustomRESTConfig,
    GistConfig,
    ProviderConfig,
    ProviderErrorCode,
    ProviderResponse,
    ProviderType,
    UpstashConfig,
    WebDAVConfig,
)
from chatsync.core.providers.paths import PathBuilder, RequestTarget, TargetMode

__all__ = [
    "CustomRESTConfig",
    "DEFAULT_TIMEOUT",
    "GistConfig",
    "PathBuilder",
    "ProviderClient",
    "ProviderConfig",
    "ProviderErrorCode",
    "ProviderResponse",
    "ProviderType",
    "RequestTarget",
    "RetryConfig",
    "TargetMode",
    "UpstashConfig",
    "WebDAVConfig",
    "create_provider",
    "get_provider_class",
    "list_providers",
    "register_provider",
]
