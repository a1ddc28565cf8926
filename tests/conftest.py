"""Shared pytest fixtures for VoiceFeed test suite.

Provides settings pointed at a fake backend, a temporary local storage,
an ``httpx.MockTransport`` router for backend-level tests, and mocked
table/storage APIs for service-level tests.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from voicefeed.core.config import Settings
from voicefeed.core.local_storage import LocalStorage
from voicefeed.core.models import Author, Session, User, VoicePost

BASE_URL = "http://backend.test"

# ---------------------------------------------------------------------------
# Configuration & storage
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path):
    """Settings for a fake backend with local storage under tmp_path."""
    return Settings(
        supabase_url=BASE_URL,
        supabase_anon_key="anon-key",
        local_storage_dir=str(tmp_path / "local_storage"),
    )


@pytest.fixture
def local_storage(tmp_path):
    """A LocalStorage backed by a fresh JSON file."""
    return LocalStorage(tmp_path / "local_storage.json")


# ---------------------------------------------------------------------------
# Fake backend (httpx.MockTransport)
# ---------------------------------------------------------------------------


class Router:
    """Request handler for ``httpx.MockTransport`` with canned responses.

    Routes are keyed by method and path. A path ending in ``*`` matches any
    path with that prefix. Each route holds a queue of responses; the last
    one repeats once the queue is down to a single entry.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses) -> None:
        """Register responses: ``(status, json)`` tuples or callables taking the request."""
        self.routes[(method, path)] = list(responses) or [(200, {})]

    def _match(self, method: str, path: str) -> list | None:
        if (method, path) in self.routes:
            return self.routes[(method, path)]
        for (m, p), responses in self.routes.items():
            if m == method and p.endswith("*") and path.startswith(p[:-1]):
                return responses
        return None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self._match(request.method, request.url.path)
        if responses is None:
            return httpx.Response(404, json={"message": f"No route for {request.url.path}"})
        entry = responses.pop(0) if len(responses) > 1 else responses[0]
        if callable(entry):
            return entry(request)
        status, body = entry
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def router():
    """An empty Router; tests register the routes they need."""
    return Router()


@pytest.fixture
def transport(router):
    """MockTransport dispatching to the router fixture."""
    return httpx.MockTransport(router)


# ---------------------------------------------------------------------------
# Mocked service collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_tables():
    """A TableAPI double whose calls all succeed with empty results."""
    from voicefeed.services.backend.rest import TableAPI

    tables = AsyncMock(spec=TableAPI)
    tables.select.return_value = []
    tables.select_one.return_value = None
    tables.insert.return_value = []
    tables.update.return_value = []
    tables.delete.return_value = []
    return tables


@pytest.fixture
def mock_storage():
    """A StorageAPI double that echoes upload keys and builds fake public URLs."""
    from voicefeed.services.backend.storage import StorageAPI

    storage = AsyncMock(spec=StorageAPI)
    storage.upload.side_effect = lambda bucket, key, data, content_type: key
    storage.public_url = MagicMock(
        side_effect=lambda bucket, key: f"{BASE_URL}/storage/v1/object/public/{bucket}/{key}"
    )
    return storage


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


def token_payload(user_id: str = "user-1", access: str = "access-1", refresh: str = "refresh-1"):
    """A GoTrue-style token response body."""
    return {
        "access_token": access,
        "refresh_token": refresh,
        "token_type": "bearer",
        "expires_in": 3600,
        "user": {"id": user_id, "email": f"{user_id}@example.com", "user_metadata": {}},
    }


@pytest.fixture
def sample_session():
    """A valid, unexpired session for user-1."""
    return Session(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=int(datetime.now(UTC).timestamp()) + 3600,
        user=User(id="user-1", email="user-1@example.com"),
    )


def make_post(post_id: str = "p1", user_id: str = "user-1", **overrides) -> VoicePost:
    """Build a VoicePost with sensible defaults."""
    fields = {
        "id": post_id,
        "user_id": user_id,
        "title": f"Post {post_id}",
        "audio_url": f"1700000000000-{user_id}.webm",
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        "author": Author(username="alice"),
    }
    fields.update(overrides)
    return VoicePost(**fields)


def post_row(post_id: str = "p1", user_id: str = "user-1", **overrides) -> dict:
    """A ``voice_posts`` row as returned with embedded profile and aggregates."""
    row = {
        "id": post_id,
        "user_id": user_id,
        "title": f"Post {post_id}",
        "description": None,
        "image_url": None,
        "audio_url": f"1700000000000-{user_id}.webm",
        "created_at": "2026-01-01T00:00:00+00:00",
        "profiles": {"username": "alice", "avatar_url": None},
        "post_likes": [{"count": 0}],
        "post_comments": [{"count": 0}],
    }
    row.update(overrides)
    return row


@pytest.fixture
def post_factory():
    """Callable building VoicePost view models (see ``make_post``)."""
    return make_post


@pytest.fixture
def row_factory():
    """Callable building ``voice_posts`` rows (see ``post_row``)."""
    return post_row


@pytest.fixture
def token_factory():
    """Callable building token response bodies (see ``token_payload``)."""
    return token_payload
