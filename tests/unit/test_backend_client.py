"""Unit tests for the backend HTTP layer (client, tables, storage).

Uses ``httpx.MockTransport`` so requests are built by the real httpx
client; verifies headers, query strings, and the translation of transport
and HTTP failures into BackendError categories.
"""

import json

import httpx
import pytest

from voicefeed.core.exceptions import BackendError
from voicefeed.services.backend import create_backend
from voicefeed.services.backend.client import BackendClient
from voicefeed.services.backend.rest import TableAPI
from voicefeed.services.backend.storage import StorageAPI

BASE = "http://backend.test"


@pytest.fixture
def client(transport):
    """BackendClient wired to the router fixture."""
    return BackendClient(BASE, "anon-key", transport=transport)


class TestRequestHeaders:
    """Verify apikey and bearer headers."""

    @pytest.mark.asyncio
    async def test_anon_bearer_when_signed_out(self, client, router):
        """Without a user token the anon key is the bearer."""
        router.add("GET", "/rest/v1/profiles", (200, []))
        await client.request("GET", "/rest/v1/profiles")

        req = router.requests[0]
        assert req.headers["apikey"] == "anon-key"
        assert req.headers["authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_user_bearer_after_set_access_token(self, client, router):
        """A user token replaces the anon key as bearer."""
        router.add("GET", "/rest/v1/profiles", (200, []))
        client.set_access_token("user-token")
        await client.request("GET", "/rest/v1/profiles")

        assert router.requests[0].headers["authorization"] == "Bearer user-token"


class TestErrorTranslation:
    """Verify every failure surfaces as BackendError with the right category."""

    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_code(self, client, router):
        """A PostgREST error body yields status, message and backend code."""
        router.add(
            "POST",
            "/rest/v1/profiles",
            (409, {"code": "23505", "message": "duplicate key value"}),
        )
        with pytest.raises(BackendError) as exc_info:
            await client.request("POST", "/rest/v1/profiles", json={})

        err = exc_info.value
        assert err.category == "http"
        assert err.status_code == 409
        assert err.backend_code == "23505"
        assert err.detail == "duplicate key value"
        assert err.is_conflict is True

    @pytest.mark.asyncio
    async def test_auth_error_description_used(self, client, router):
        """GoTrue's error_description is preferred as the message."""
        router.add(
            "POST",
            "/auth/v1/token",
            (400, {"error": "invalid_grant", "error_description": "Invalid login credentials"}),
        )
        with pytest.raises(BackendError, match="Invalid login credentials"):
            await client.request("POST", "/auth/v1/token")

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, client, router):
        """Plain-text error bodies are used verbatim."""
        router.add("GET", "/rest/v1/x", lambda req: httpx.Response(502, text="Bad gateway"))
        with pytest.raises(BackendError, match="Bad gateway") as exc_info:
            await client.request("GET", "/rest/v1/x")
        assert exc_info.value.backend_code is None
        assert exc_info.value.is_conflict is False

    @pytest.mark.asyncio
    async def test_connect_error(self, router):
        """ConnectError maps to the connection category."""

        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        router.add("GET", "/rest/v1/x", refuse)
        client = BackendClient(BASE, "anon-key", transport=httpx.MockTransport(router))
        with pytest.raises(BackendError) as exc_info:
            await client.request("GET", "/rest/v1/x")
        assert exc_info.value.category == "connection"

    @pytest.mark.asyncio
    async def test_timeout(self, router):
        """TimeoutException maps to the timeout category."""

        def slow(request):
            raise httpx.ReadTimeout("slow", request=request)

        router.add("GET", "/rest/v1/x", slow)
        client = BackendClient(BASE, "anon-key", transport=httpx.MockTransport(router))
        with pytest.raises(BackendError) as exc_info:
            await client.request("GET", "/rest/v1/x")
        assert exc_info.value.category == "timeout"


class TestTableAPI:
    """Verify PostgREST query construction."""

    @pytest.mark.asyncio
    async def test_select_builds_filters_order_and_limit(self, client, router):
        """eq filters, order direction and limit land in the query string."""
        router.add("GET", "/rest/v1/post_comments", (200, [{"id": 1}]))
        tables = TableAPI(client)

        rows = await tables.select(
            "post_comments",
            "id,\n    comment",
            eq={"post_id": "p1"},
            order="created_at",
            ascending=True,
            limit=5,
        )

        params = router.requests[0].url.params
        assert rows == [{"id": 1}]
        assert params["select"] == "id, comment"
        assert params["post_id"] == "eq.p1"
        assert params["order"] == "created_at.asc"
        assert params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_select_one_returns_none_when_empty(self, client, router):
        """No rows means None, not an error."""
        router.add("GET", "/rest/v1/profiles", (200, []))
        assert await TableAPI(client).select_one("profiles", eq={"id": "u"}) is None

    @pytest.mark.asyncio
    async def test_insert_asks_for_representation(self, client, router):
        """Inserts request the written rows back."""
        router.add("POST", "/rest/v1/post_likes", (201, [{"post_id": "p1"}]))
        rows = await TableAPI(client).insert("post_likes", {"post_id": "p1", "user_id": "u"})

        req = router.requests[0]
        assert rows == [{"post_id": "p1"}]
        assert req.headers["prefer"] == "return=representation"
        assert json.loads(req.content) == {"post_id": "p1", "user_id": "u"}

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self, client, router):
        """A 204 without content reads as no deleted rows."""
        router.add("DELETE", "/rest/v1/voice_posts", (204, None))
        assert await TableAPI(client).delete("voice_posts", eq={"id": "p1"}) == []


class TestStorageAPI:
    """Verify storage uploads, removal and public URLs."""

    @pytest.mark.asyncio
    async def test_upload_is_write_once(self, client, router):
        """Uploads send the content type and refuse to overwrite."""
        router.add("POST", "/storage/v1/object/voice-recordings/*", (200, {"Key": "k"}))
        key = await StorageAPI(client).upload("voice-recordings", "1-u.webm", b"abc", "audio/webm")

        req = router.requests[0]
        assert key == "1-u.webm"
        assert req.url.path == "/storage/v1/object/voice-recordings/1-u.webm"
        assert req.headers["x-upsert"] == "false"
        assert req.headers["content-type"] == "audio/webm"
        assert req.content == b"abc"

    @pytest.mark.asyncio
    async def test_remove_no_keys_makes_no_request(self, client, router):
        """Removing nothing is a no-op."""
        await StorageAPI(client).remove("post-images", [])
        assert router.requests == []

    @pytest.mark.asyncio
    async def test_remove_sends_prefixes(self, client, router):
        """Removal lists keys under ``prefixes``."""
        router.add("DELETE", "/storage/v1/object/post-images", (200, []))
        await StorageAPI(client).remove("post-images", ["a.png"])
        assert json.loads(router.requests[0].content) == {"prefixes": ["a.png"]}

    def test_public_url(self, client):
        """Public URLs point at the public object route."""
        url = StorageAPI(client).public_url("avatars", "1-u")
        assert url == f"{BASE}/storage/v1/object/public/avatars/1-u"

    @pytest.mark.asyncio
    async def test_resolve_public_url_missing_object(self, client, router):
        """A missing object fails resolution."""
        router.add("HEAD", "/storage/v1/object/public/voice-recordings/*", (404, None))
        with pytest.raises(BackendError) as exc_info:
            await StorageAPI(client).resolve_public_url("voice-recordings", "gone.webm")
        assert exc_info.value.status_code == 404


class TestCreateBackend:
    """Verify the factory wires one client into every API."""

    @pytest.mark.asyncio
    async def test_shared_client(self, settings, local_storage, transport):
        """All APIs share the same client built from settings."""
        backend = create_backend(settings, local_storage=local_storage, transport=transport)
        try:
            assert backend.client.base_url == "http://backend.test"
            assert backend.tables._client is backend.client
            assert backend.storage._client is backend.client
        finally:
            await backend.aclose()
