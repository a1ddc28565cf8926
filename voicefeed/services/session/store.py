"""
Session store: current auth session, loading flag, and auth operations.

The store owns the client's view of "who is signed in". It is driven by the
provider's change notifications and keeps a mirror of the session in local
storage under a fixed key, read on startup before the provider has confirmed
anything.

Usage::

    store = SessionStore(backend.auth, backend.tables, LocalStorage(path))
    await store.initialize()
    if store.session is None:
        await store.sign_in(email, password)
"""

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from voicefeed.core.exceptions import (
    AuthError,
    BackendError,
    ProfileCreationError,
    UsernameTakenError,
    ValidationError,
)
from voicefeed.core.local_storage import LocalStorage
from voicefeed.core.models import AuthEvent, Session, User
from voicefeed.services.backend.auth import AuthAPI
from voicefeed.services.backend.rest import TableAPI

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session | None], None]

MIN_PASSWORD_LENGTH = 6


class SessionStore:
    """Explicit owner of the session state machine.

    Args:
        auth: Identity provider API.
        tables: Table API, used for the ``profiles`` row at sign-up.
        local_storage: Persistent client storage holding the session mirror.
        storage_key: Key of the mirrored session blob.
    """

    def __init__(
        self,
        auth: AuthAPI,
        tables: TableAPI,
        local_storage: LocalStorage,
        storage_key: str = "supabase.auth.token",
    ) -> None:
        self._auth = auth
        self._tables = tables
        self._storage = local_storage
        self._storage_key = storage_key
        self._session: Session | None = None
        self._loading = True
        self._listeners: list[SessionListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def loading(self) -> bool:
        """True until the initial session resolution has completed."""
        return self._loading

    @property
    def user(self) -> User | None:
        return self._session.user if self._session else None

    @property
    def user_id(self) -> str | None:
        return self._session.user.id if self._session else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with the new session after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, session: Session | None) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")

    # ------------------------------------------------------------------
    # Local storage mirror
    # ------------------------------------------------------------------

    def _write_mirror(self, session: Session) -> None:
        blob = json.dumps({"currentSession": session.model_dump(mode="json")})
        if not self._storage.set_item(self._storage_key, blob):
            logger.warning("Session mirror not written; it may disagree with the provider")

    def _clear_mirror(self) -> None:
        self._storage.remove_item(self._storage_key)

    def _read_mirror(self) -> Session | None:
        raw = self._storage.get_item(self._storage_key)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
            current = parsed.get("currentSession") if isinstance(parsed, dict) else None
            return Session.model_validate(current) if current else None
        except (json.JSONDecodeError, PydanticValidationError) as exc:
            logger.error("Error parsing saved session: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Resolve the initial session.

        The mirrored session is adopted first so the UI can render at once;
        the provider's answer then replaces it.
        """
        mirrored = self._read_mirror()
        if mirrored is not None:
            self._set_session(mirrored)

        if self._unsubscribe is None:
            self._unsubscribe = self._auth.on_auth_state_change(self._on_auth_event)

        try:
            session = await self._auth.get_session()
        except BackendError as exc:
            logger.warning("Could not confirm session with provider: %s", exc.detail)
            session = None

        self._set_session(session)
        if session is not None:
            self._write_mirror(session)
        self._loading = False
        logger.info("Session resolved (%s)", "signed in" if session else "anonymous")

    def _on_auth_event(self, event: AuthEvent, session: Session | None) -> None:
        logger.debug("Auth event %s", event)
        self._set_session(session)
        self._loading = False
        if event in (AuthEvent.SIGNED_IN, AuthEvent.TOKEN_REFRESHED) and session is not None:
            self._write_mirror(session)
        elif event == AuthEvent.SIGNED_OUT:
            self._clear_mirror()

    def close(self) -> None:
        """Stop listening to the provider."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> Session:
        """Sign in with email and password.

        Raises:
            AuthError: On invalid credentials or provider failure.
        """
        try:
            return await self._auth.sign_in_with_password(email, password)
        except BackendError as exc:
            raise AuthError(exc.detail) from exc

    async def sign_up(self, email: str, password: str, username: str) -> User:
        """Create an identity and its profile row.

        The username lookup is advisory only; a uniqueness conflict on the
        profile insert is the authoritative answer.

        Raises:
            ValidationError: If the username is blank.
            UsernameTakenError: If the username already belongs to someone.
            AuthError: If the provider rejects the identity.
            ProfileCreationError: If the identity exists but the profile does not.
        """
        username = username.strip()
        if not username:
            raise ValidationError("Username is required")

        try:
            existing = await self._tables.select_one(
                "profiles", "username", eq={"username": username}
            )
        except BackendError as exc:
            raise AuthError(f"Could not check username: {exc.detail}") from exc
        if existing:
            raise UsernameTakenError(username)

        try:
            user, _session = await self._auth.sign_up(email, password)
        except BackendError as exc:
            raise AuthError(exc.detail) from exc

        try:
            await self._tables.insert(
                "profiles",
                {
                    "id": user.id,
                    "username": username,
                    "created_at": datetime.now(UTC).isoformat(),
                },
            )
        except BackendError as exc:
            logger.error("Profile creation failed for %s: %s", user.id, exc.detail)
            await self._abandon_identity()
            if exc.is_conflict:
                raise UsernameTakenError(username) from exc
            raise ProfileCreationError() from exc

        logger.info("Signed up %s as %s", user.id, username)
        return user

    async def _abandon_identity(self) -> None:
        """Best-effort sign-out of an identity whose profile could not be created.

        The identity itself stays on the server; the client cannot delete it.
        """
        try:
            await self._auth.sign_out()
        except BackendError as exc:
            logger.warning("Sign-out after failed profile creation also failed: %s", exc.detail)

    async def sign_out(self) -> None:
        """Sign out of the provider.

        Raises:
            AuthError: Propagated from the provider.
        """
        try:
            await self._auth.sign_out()
        except BackendError as exc:
            raise AuthError(exc.detail) from exc

    async def update_password(self, new_password: str, confirm_password: str) -> None:
        """Change the signed-in user's password.

        Raises:
            ValidationError: On mismatch or a too-short password.
            AuthError: If not signed in or the provider rejects the change.
        """
        if self._session is None:
            raise AuthError("You must be signed in")
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        try:
            await self._auth.update_user(password=new_password)
        except BackendError as exc:
            raise AuthError(exc.detail) from exc
