"""
Identity provider API (GoTrue-compatible ``/auth/v1`` endpoints).

Holds the provider-side session, persists it under its own storage key,
and pushes ``AuthEvent`` notifications to subscribers whenever the session
changes. This is the provider's own persistence; the session mirror written
by ``SessionStore`` is separate.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from pydantic import ValidationError as PydanticValidationError

from voicefeed.core.exceptions import BackendError
from voicefeed.core.local_storage import LocalStorage
from voicefeed.core.models import AuthEvent, Session, User
from voicefeed.services.backend.client import BackendClient

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, Session | None], None]


def _parse_session(payload: dict) -> Session:
    """Build a Session from a token response, filling ``expires_at`` if absent."""
    if payload.get("expires_at") is None and payload.get("expires_in") is not None:
        payload = {**payload, "expires_at": int(time.time()) + int(payload["expires_in"])}
    try:
        return Session.model_validate(payload)
    except PydanticValidationError as exc:
        logger.error("Unexpected token response: %s", exc)
        raise BackendError("Malformed auth response", category="http") from exc


class AuthAPI:
    """Password auth, session refresh and change notifications.

    Args:
        client: Shared backend HTTP client.
        storage: Where the provider persists its session between runs.
        storage_key: Key under which the session JSON is stored.
    """

    def __init__(
        self,
        client: BackendClient,
        storage: LocalStorage | None = None,
        storage_key: str = "sb-auth-token",
    ) -> None:
        self._client = client
        self._storage = storage
        self._storage_key = storage_key
        self._session: Session | None = None
        self._listeners: list[AuthListener] = []
        self._refresh_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent, session: Session | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("Auth listener failed on %s", event)

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------

    def _set_session(self, session: Session | None) -> None:
        self._session = session
        self._client.set_access_token(session.access_token if session else None)
        if self._storage is None:
            return
        if session is None:
            self._storage.remove_item(self._storage_key)
        else:
            self._storage.set_item(self._storage_key, session.model_dump_json())

    def _load_persisted(self) -> Session | None:
        if self._storage is None:
            return None
        raw = self._storage.get_item(self._storage_key)
        if not raw:
            return None
        try:
            return Session.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding malformed persisted session")
            self._storage.remove_item(self._storage_key)
            return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        resp = await self._client.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            refresh=False,
        )
        session = _parse_session(resp.json())
        self._set_session(session)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(
        self, email: str, password: str, data: dict | None = None
    ) -> tuple[User, Session | None]:
        """Create an identity.

        Returns the new user and, when the project does not require email
        confirmation, the session it was signed in with.
        """
        body: dict = {"email": email, "password": password}
        if data:
            body["data"] = data
        resp = await self._client.request("POST", "/auth/v1/signup", json=body, refresh=False)
        payload = resp.json()

        if payload.get("access_token"):
            session = _parse_session(payload)
            self._set_session(session)
            self._emit(AuthEvent.SIGNED_IN, session)
            return session.user, session
        return User.model_validate(payload.get("user", payload)), None

    async def sign_out(self) -> None:
        """Revoke the session server-side and forget it locally.

        An already-invalid token (401/403/404) still counts as signed out.
        """
        if self._session is not None:
            try:
                await self._client.request("POST", "/auth/v1/logout", refresh=False)
            except BackendError as exc:
                if exc.status_code not in (401, 403, 404):
                    raise
        self._set_session(None)
        self._emit(AuthEvent.SIGNED_OUT, None)

    async def refresh_session(self, refresh_token: str | None = None) -> Session:
        token = refresh_token or (self._session.refresh_token if self._session else None)
        if not token:
            raise BackendError("No session to refresh", status_code=401)
        resp = await self._client.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": token},
            refresh=False,
        )
        session = _parse_session(resp.json())
        self._set_session(session)
        self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def get_session(self) -> Session | None:
        """Return the current session, restoring and refreshing it if needed.

        A persisted session whose refresh fails is discarded.
        """
        session = self._session or self._load_persisted()
        if session is None:
            return None
        if not session.is_expired():
            if self._session is None:
                self._set_session(session)
            return session
        try:
            return await self.refresh_session(session.refresh_token)
        except BackendError as exc:
            logger.info("Stored session could not be refreshed: %s", exc.detail)
            self._set_session(None)
            return None

    async def ensure_session(self) -> None:
        """Refresh the live session if its access token is about to expire.

        Awaited by the client before each request. When the refresh is
        rejected the session is dropped and SIGNED_OUT emitted, so the
        request goes out with the anon key.
        """
        if self._session is None or not self._session.is_expired():
            return
        async with self._refresh_lock:
            session = self._session
            if session is None or not session.is_expired():
                return
            try:
                await self.refresh_session(session.refresh_token)
            except BackendError as exc:
                if exc.category != "http":
                    raise
                logger.warning("Session refresh rejected, signing out: %s", exc.detail)
                self._set_session(None)
                self._emit(AuthEvent.SIGNED_OUT, None)

    async def update_user(self, password: str | None = None, data: dict | None = None) -> User:
        body: dict = {}
        if password is not None:
            body["password"] = password
        if data is not None:
            body["data"] = data
        resp = await self._client.request("PUT", "/auth/v1/user", json=body)
        user = User.model_validate(resp.json())
        if self._session is not None:
            self._session = self._session.model_copy(update={"user": user})
            self._set_session(self._session)
        self._emit(AuthEvent.USER_UPDATED, self._session)
        return user
