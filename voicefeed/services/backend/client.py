"""
Async HTTP client for the hosted backend project.

One ``httpx.AsyncClient`` is shared by the auth, table and storage APIs.
Every request goes through ``BackendClient.request`` so transport and HTTP
failures reach the services as a single ``BackendError`` type.
"""

import logging
from collections.abc import Awaitable, Callable

import httpx

from voicefeed.core.exceptions import BackendError

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> tuple[str, str | None]:
    """Pull a readable message and the backend's error code out of an error body.

    The auth, table and storage services each use a different envelope
    (``error_description`` / ``message`` / ``msg`` / ``error``).
    """
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None
    if not isinstance(body, dict):
        return str(body), None

    detail = (
        body.get("error_description")
        or body.get("message")
        or body.get("msg")
        or body.get("error")
        or response.text
    )
    code = body.get("code") or body.get("error_code")
    return str(detail), str(code) if code is not None else None


class BackendClient:
    """Thin async wrapper around httpx for calling the backend's REST services.

    Args:
        base_url: Project URL, e.g. ``https://xyz.supabase.co``.
        anon_key: Public anon key; sent as ``apikey`` on every request and as
            the bearer token while no user is signed in.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._access_token: str | None = None
        self._session_hook: Callable[[], Awaitable[None]] | None = None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"apikey": anon_key},
            transport=transport,
        )

    def set_access_token(self, token: str | None) -> None:
        """Use *token* as the bearer for subsequent requests (None = anon)."""
        self._access_token = token

    def set_session_hook(self, hook: Callable[[], Awaitable[None]] | None) -> None:
        """Await *hook* before each request, e.g. to refresh an expiring token."""
        self._session_hook = hook

    @property
    def authorization(self) -> str:
        return f"Bearer {self._access_token or self._anon_key}"

    async def request(
        self, method: str, path: str, *, refresh: bool = True, **kwargs
    ) -> httpx.Response:
        """Execute an HTTP request with user-friendly error handling.

        Args:
            method: HTTP method name ("GET", "POST", "PATCH", "DELETE", "HEAD").
            path: Path relative to the project URL (e.g. "/rest/v1/profiles").
            refresh: Await the session hook first. False for the auth token
                and logout endpoints.
            **kwargs: Passed through to httpx (json, params, content, headers).

        Returns:
            The httpx Response object with a successful status code.

        Raises:
            BackendError: On connection, timeout, HTTP status, or network errors.
        """
        if refresh and self._session_hook is not None:
            await self._session_hook()
        headers = {"Authorization": self.authorization}
        headers.update(kwargs.pop("headers", None) or {})
        try:
            resp = await self._client.request(method, path, headers=headers, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.ConnectError:
            raise BackendError(
                "Could not reach the backend. Check your connection.",
                category="connection",
            ) from None
        except httpx.TimeoutException:
            raise BackendError(
                "Request timed out. Please try again.",
                category="timeout",
            ) from None
        except httpx.HTTPStatusError as exc:
            detail, code = _error_detail(exc.response)
            logger.debug("%s %s -> %s %s", method, path, exc.response.status_code, detail)
            raise BackendError(
                detail,
                category="http",
                status_code=exc.response.status_code,
                backend_code=code,
            ) from None
        except httpx.HTTPError as exc:
            raise BackendError(f"Network error: {exc}", category="network") from None

    async def aclose(self) -> None:
        await self._client.aclose()
