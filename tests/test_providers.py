"""
Tests for the provider clients.

Every client is driven through httpx.MockTransport, so these tests cover the
wire shape of each backend (URLs, methods, headers, bodies) as well as the
get/set/check contract built on top of it.
"""

import json

import httpx
import pytest

from conftest import NO_RETRY
from chatsync.core.providers import (
    ProviderErrorCode,
    ProviderType,
    RetryConfig,
    create_provider,
    get_provider_class,
    list_providers,
)
from chatsync.core.providers.customrest import CustomRESTClient
from chatsync.core.providers.gist import GistClient
from chatsync.core.providers.models import (
    CustomRESTConfig,
    GistConfig,
    UpstashConfig,
    WebDAVConfig,
    classify_status,
)
from chatsync.core.providers.upstash import UpstashClient
from chatsync.core.providers.webdav import WebDAVClient
from chatsync.core.snapshot import STORAGE_KEY

REST_CONFIG = CustomRESTConfig(endpoint="https://kv.example.com", token="secret")
UPSTASH_CONFIG = UpstashConfig(endpoint="https://db.upstash.io", apiKey="upstash-token")
WEBDAV_CONFIG = WebDAVConfig(
    endpoint="https://dav.example.com/remote.php/dav", username="me", password="pw"
)
GIST_CONFIG = GistConfig(gistId="abc123", token="gh-token")


# ==============================================================================
# Registry
# ==============================================================================


class TestRegistry:
    """Provider lookup by type."""

    def test_all_backends_registered(self):
        assert set(list_providers()) == set(ProviderType)

    @pytest.mark.parametrize(
        "provider_type,client_class",
        [
            (ProviderType.CUSTOM_REST, CustomRESTClient),
            (ProviderType.UPSTASH, UpstashClient),
            (ProviderType.WEBDAV, WebDAVClient),
            (ProviderType.GITHUB_GIST, GistClient),
        ],
    )
    def test_lookup_by_type(self, provider_type, client_class):
        assert get_provider_class(provider_type) is client_class
        assert get_provider_class(provider_type.value) is client_class

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="not registered"):
            get_provider_class("dropbox")

    def test_create_provider_passes_options(self):
        client = create_provider(
            ProviderType.CUSTOM_REST, REST_CONFIG, proxy_url="https://relay.example.com"
        )
        assert isinstance(client, CustomRESTClient)
        assert client.proxy_url == "https://relay.example.com"


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "status,code",
        [
            (200, ProviderErrorCode.NONE),
            (204, ProviderErrorCode.NONE),
            (404, ProviderErrorCode.NOT_FOUND),
            (401, ProviderErrorCode.AUTH),
            (403, ProviderErrorCode.AUTH),
            (429, ProviderErrorCode.RATE_LIMIT),
            (400, ProviderErrorCode.INVALID),
            (502, ProviderErrorCode.SERVER),
        ],
    )
    def test_mapping(self, status, code):
        assert classify_status(status) == code

    def test_not_found_is_not_a_failure(self):
        assert not ProviderErrorCode.NOT_FOUND.is_failure
        assert ProviderErrorCode.AUTH.is_failure


class TestCouldSync:
    def test_complete_config(self):
        assert create_provider(ProviderType.CUSTOM_REST, REST_CONFIG).could_sync()

    def test_missing_token(self):
        config = CustomRESTConfig(endpoint="https://kv.example.com")
        assert config.missing_fields() == ["token"]
        assert not create_provider(ProviderType.CUSTOM_REST, config).could_sync()

    def test_missing_fields_use_persisted_names(self):
        assert UpstashConfig().missing_fields() == ["endpoint", "apiKey"]


# ==============================================================================
# CustomREST
# ==============================================================================


class TestCustomREST:
    """Generic REST key-value service."""

    def make_client(self, transport, **kwargs):
        return create_provider(
            ProviderType.CUSTOM_REST, REST_CONFIG, transport=transport, retry=NO_RETRY, **kwargs
        )

    @pytest.mark.asyncio
    async def test_get_unwraps_result(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, json={"result": '{"a": 1}'}))
        client = self.make_client(transport)

        assert await client.get() == '{"a": 1}'

        request = transport.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"https://kv.example.com/get/{STORAGE_KEY}"
        assert request.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_get_non_200_is_absent(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(404)))
        assert await client.get("abc") == ""

        response = await client.fetch("abc")
        assert response.error == ProviderErrorCode.NOT_FOUND
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_null_result_is_absent(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(200, json={"result": None})))
        response = await client.fetch("abc")
        assert response.error == ProviderErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_non_json_body_is_invalid(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(200, text="<html>")))
        response = await client.fetch("abc")
        assert response.error == ProviderErrorCode.INVALID
        assert await client.get("abc") == ""

    @pytest.mark.asyncio
    async def test_set_posts_raw_payload(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, json={"result": "OK"}))
        client = self.make_client(transport)

        assert await client.set("abc", '{"x": 1}') == '{"x": 1}'

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://kv.example.com/set/abc"
        assert request.content == b'{"x": 1}'
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_set_failure_returns_empty(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(500)))
        assert await client.set("abc", "payload") == ""

    @pytest.mark.asyncio
    async def test_check_reuses_get(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, json={"result": "{}"}))
        assert await self.make_client(transport).check() is True
        assert transport.requests[0].url.path == f"/get/{STORAGE_KEY}"

    @pytest.mark.asyncio
    async def test_check_false_on_auth_failure(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(401)))
        assert await client.check() is False

    @pytest.mark.asyncio
    async def test_check_never_raises_on_network_error(self, mock_transport):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = self.make_client(mock_transport(refuse))
        assert await client.check() is False
        response = await client.fetch("abc")
        assert response.error == ProviderErrorCode.TRANSPORT

    @pytest.mark.asyncio
    async def test_proxy_applied(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, json={"result": "x"}))
        client = self.make_client(transport, proxy_url="https://relay.example.com")

        await client.get("abc")

        request = transport.requests[0]
        assert request.url.host == "relay.example.com"
        assert "kv.example.com/get/abc" in str(request.url)

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self, mock_transport):
        statuses = iter([503, 200])
        transport = mock_transport(
            lambda r: httpx.Response(next(statuses), json={"result": "payload"})
        )
        client = create_provider(
            ProviderType.CUSTOM_REST,
            REST_CONFIG,
            transport=transport,
            retry=RetryConfig(max_retries=2, base_delay=0, jitter=False),
        )

        assert await client.get("abc") == "payload"
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(403))
        client = create_provider(
            ProviderType.CUSTOM_REST,
            REST_CONFIG,
            transport=transport,
            retry=RetryConfig(max_retries=3, base_delay=0, jitter=False),
        )

        response = await client.fetch("abc")
        assert response.error == ProviderErrorCode.AUTH
        assert len(transport.requests) == 1


# ==============================================================================
# Upstash (chunked KV store)
# ==============================================================================


class TestUpstash:
    """Managed KV store with chunked values."""

    def make_client(self, transport, chunk_size=5):
        client = create_provider(
            ProviderType.UPSTASH, UPSTASH_CONFIG, transport=transport, retry=NO_RETRY
        )
        client.chunk_size = chunk_size
        return client

    @staticmethod
    def kv_handler(store):
        def handler(request):
            action, key = request.url.path.strip("/").split("/", 1)
            if action == "get":
                return httpx.Response(200, json={"result": store.get(key)})
            store[key] = request.content.decode()
            return httpx.Response(200, json={"result": "OK"})

        return handler

    @pytest.mark.asyncio
    async def test_write_splits_into_chunks_then_count(self, mock_transport):
        store = {}
        transport = mock_transport(self.kv_handler(store))
        client = self.make_client(transport)

        assert await client.set("k", "abcdefghijkl") == "abcdefghijkl"

        assert store == {
            "k-chunk-0": "abcde",
            "k-chunk-1": "fghij",
            "k-chunk-2": "kl",
            "k-chunk-count": "3",
        }
        paths = [r.url.path for r in transport.requests]
        assert paths[-1] == "/set/k-chunk-count"
        assert transport.requests[0].headers["Authorization"] == "Bearer upstash-token"

    @pytest.mark.asyncio
    async def test_fetch_reassembles_chunks(self, mock_transport):
        store = {"k-chunk-count": "2", "k-chunk-0": "hello ", "k-chunk-1": "world"}
        client = self.make_client(mock_transport(self.kv_handler(store)))
        assert await client.get("k") == "hello world"

    @pytest.mark.asyncio
    async def test_roundtrip_through_store(self, mock_transport):
        store = {}
        client = self.make_client(mock_transport(self.kv_handler(store)), chunk_size=3)
        payload = json.dumps({"chat": ["a" * 10]})

        await client.set("k", payload)
        assert await client.get("k") == payload

    @pytest.mark.asyncio
    async def test_missing_count_is_absent(self, mock_transport):
        client = self.make_client(mock_transport(self.kv_handler({})))
        response = await client.fetch("k")
        assert response.error == ProviderErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_missing_chunk_is_invalid(self, mock_transport):
        store = {"k-chunk-count": "2", "k-chunk-0": "half"}
        client = self.make_client(mock_transport(self.kv_handler(store)))
        response = await client.fetch("k")
        assert response.error == ProviderErrorCode.INVALID
        assert "chunk 1" in response.detail

    @pytest.mark.asyncio
    async def test_bad_count_is_invalid(self, mock_transport):
        client = self.make_client(mock_transport(self.kv_handler({"k-chunk-count": "many"})))
        response = await client.fetch("k")
        assert response.error == ProviderErrorCode.INVALID

    @pytest.mark.asyncio
    async def test_check_accepts_empty_store(self, mock_transport):
        client = self.make_client(mock_transport(self.kv_handler({})))
        assert await client.check() is True

    @pytest.mark.asyncio
    async def test_check_rejects_bad_token(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(401)))
        assert await client.check() is False


# ==============================================================================
# WebDAV
# ==============================================================================


class TestWebDAV:
    """WebDAV share holding one backup file."""

    folder_url = f"https://dav.example.com/remote.php/dav/{STORAGE_KEY}/"
    file_url = f"https://dav.example.com/remote.php/dav/{STORAGE_KEY}/backup.json"

    def make_client(self, transport):
        return create_provider(
            ProviderType.WEBDAV, WEBDAV_CONFIG, transport=transport, retry=NO_RETRY
        )

    @pytest.mark.asyncio
    async def test_storage_key_is_filename(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(200)))
        assert client.storage_key == "backup.json"

    @pytest.mark.asyncio
    async def test_get_reads_file(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, text='{"a": 1}'))
        client = self.make_client(transport)

        assert await client.get() == '{"a": 1}'

        request = transport.requests[0]
        assert request.method == "GET"
        assert str(request.url) == self.file_url
        assert request.headers["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_get_missing_file(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(404)))
        assert await client.get() == ""

    @pytest.mark.asyncio
    async def test_set_creates_folder_then_puts(self, mock_transport):
        def handler(request):
            if request.method == "MKCOL":
                return httpx.Response(405)  # already exists
            return httpx.Response(201)

        transport = mock_transport(handler)
        client = self.make_client(transport)

        assert await client.set("", '{"a": 1}') == '{"a": 1}'

        mkcol, put = transport.requests
        assert mkcol.method == "MKCOL"
        assert str(mkcol.url) == self.folder_url
        assert put.method == "PUT"
        assert str(put.url) == self.file_url
        assert put.content == b'{"a": 1}'
        assert put.headers["Content-Type"] == "application/json; charset=utf-8"

    @pytest.mark.asyncio
    async def test_set_stops_when_folder_cannot_be_created(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(403))
        client = self.make_client(transport)

        response = await client.write("backup.json", "{}")
        assert response.error == ProviderErrorCode.AUTH
        assert [r.method for r in transport.requests] == ["MKCOL"]

    @pytest.mark.asyncio
    async def test_check_uses_propfind(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(207))
        assert await self.make_client(transport).check() is True

        request = transport.requests[0]
        assert request.method == "PROPFIND"
        assert request.headers["Depth"] == "0"
        assert str(request.url) == self.folder_url

    @pytest.mark.asyncio
    async def test_check_false_on_bad_credentials(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(401)))
        assert await client.check() is False


# ==============================================================================
# Gist
# ==============================================================================


class TestGist:
    """Backup file stored in a gist."""

    def make_client(self, transport, **kwargs):
        return create_provider(
            ProviderType.GITHUB_GIST, GIST_CONFIG, transport=transport, retry=NO_RETRY, **kwargs
        )

    @staticmethod
    def gist_body(files):
        return {"id": "abc123", "files": files}

    @pytest.mark.asyncio
    async def test_get_reads_file_content(self, mock_transport):
        body = self.gist_body({"backup.json": {"content": '{"a": 1}'}})
        transport = mock_transport(lambda r: httpx.Response(200, json=body))
        client = self.make_client(transport)

        assert await client.get() == '{"a": 1}'

        request = transport.requests[0]
        assert str(request.url) == "https://api.github.com/gists/abc123"
        assert request.headers["Authorization"] == "Bearer gh-token"
        assert request.headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_missing_file_is_absent(self, mock_transport):
        body = self.gist_body({"other.json": {"content": "{}"}})
        client = self.make_client(mock_transport(lambda r: httpx.Response(200, json=body)))
        response = await client.fetch("backup.json")
        assert response.error == ProviderErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_truncated_file_fetched_from_raw_url(self, mock_transport):
        raw_url = "https://gist.githubusercontent.com/raw/backup.json"

        def handler(request):
            if str(request.url) == raw_url:
                return httpx.Response(200, text='{"full": true}')
            body = self.gist_body(
                {"backup.json": {"content": '{"fu', "truncated": True, "raw_url": raw_url}}
            )
            return httpx.Response(200, json=body)

        client = self.make_client(mock_transport(handler))
        assert await client.get() == '{"full": true}'

    @pytest.mark.asyncio
    async def test_set_patches_file(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, json=self.gist_body({})))
        client = self.make_client(transport)

        assert await client.set("backup.json", '{"a": 1}') == '{"a": 1}'

        request = transport.requests[0]
        assert request.method == "PATCH"
        assert json.loads(request.content) == {"files": {"backup.json": {"content": '{"a": 1}'}}}

    @pytest.mark.asyncio
    async def test_proxy_not_used(self, mock_transport):
        transport = mock_transport(lambda r: httpx.Response(200, json=self.gist_body({})))
        client = self.make_client(transport, proxy_url="https://relay.example.com")

        assert await client.check() is True
        assert transport.requests[0].url.host == "api.github.com"

    @pytest.mark.asyncio
    async def test_check_false_for_unknown_gist(self, mock_transport):
        client = self.make_client(mock_transport(lambda r: httpx.Response(404)))
        assert await client.check() is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"id": "abc123", "files": ["backup.json"]},
            {"id": "abc123", "files": {"backup.json": "not an object"}},
            {"id": "abc123", "files": {"backup.json": {"content": {"a": 1}}}},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_gist_is_invalid(self, mock_transport, body):
        client = self.make_client(mock_transport(lambda r: httpx.Response(200, json=body)))

        response = await client.fetch("backup.json")

        assert response.error == ProviderErrorCode.INVALID
        assert response.status_code == 200
