"""
Backend module - hosted auth, table and storage services.

Factory function for wiring the three APIs onto one shared HTTP client.
"""

from dataclasses import dataclass

import httpx

from voicefeed.core.config import Settings, get_settings
from voicefeed.core.local_storage import LocalStorage

from .auth import AuthAPI
from .client import BackendClient
from .rest import TableAPI
from .storage import StorageAPI

__all__ = ["AuthAPI", "Backend", "BackendClient", "StorageAPI", "TableAPI", "create_backend"]


@dataclass
class Backend:
    """The external collaborators every service talks to."""

    client: BackendClient
    auth: AuthAPI
    tables: TableAPI
    storage: StorageAPI

    async def aclose(self) -> None:
        await self.client.aclose()


def create_backend(
    settings: Settings | None = None,
    local_storage: LocalStorage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Backend:
    """
    Factory function to create the backend bundle from settings.

    Args:
        settings: Configuration; defaults to ``get_settings()``.
        local_storage: Where the auth provider persists its session.
        transport: Optional httpx transport override (tests).

    Returns:
        Backend with auth, tables and storage sharing one client
    """
    settings = settings or get_settings()
    client = BackendClient(
        base_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        timeout=settings.http_timeout,
        transport=transport,
    )
    auth = AuthAPI(client, storage=local_storage, storage_key=settings.auth_storage_key)
    client.set_session_hook(auth.ensure_session)
    return Backend(
        client=client,
        auth=auth,
        tables=TableAPI(client),
        storage=StorageAPI(client),
    )
