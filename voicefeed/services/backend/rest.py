"""
Table access over the backend's PostgREST endpoint (``/rest/v1``).

Only the handful of query shapes the client needs: equality filters,
a single ordering, an optional limit, and embedded relations through the
``columns`` select string.
"""

from voicefeed.services.backend.client import BackendClient

_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def _filters(eq: dict | None) -> list[tuple[str, str]]:
    return [(column, f"eq.{value}") for column, value in (eq or {}).items()]


class TableAPI:
    """CRUD calls against ``/rest/v1/<table>``."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def select(
        self,
        table: str,
        columns: str = "*",
        *,
        eq: dict | None = None,
        order: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict]:
        """Return rows of *table* matching every ``eq`` filter."""
        params: list[tuple[str, str]] = [("select", " ".join(columns.split()))]
        params.extend(_filters(eq))
        if order:
            params.append(("order", f"{order}.{'asc' if ascending else 'desc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        resp = await self._client.request("GET", f"/rest/v1/{table}", params=params)
        return resp.json()

    async def select_one(self, table: str, columns: str = "*", *, eq: dict) -> dict | None:
        """Return the first matching row, or None."""
        rows = await self.select(table, columns, eq=eq, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        resp = await self._client.request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers=_RETURN_REPRESENTATION,
        )
        return resp.json()

    async def update(self, table: str, values: dict, *, eq: dict) -> list[dict]:
        resp = await self._client.request(
            "PATCH",
            f"/rest/v1/{table}",
            params=_filters(eq),
            json=values,
            headers=_RETURN_REPRESENTATION,
        )
        return resp.json()

    async def delete(self, table: str, *, eq: dict) -> list[dict]:
        """Delete matching rows and return the ones actually removed.

        Row-level security silently filters rows the caller may not touch,
        so an empty result means nothing was deleted.
        """
        resp = await self._client.request(
            "DELETE",
            f"/rest/v1/{table}",
            params=_filters(eq),
            headers=_RETURN_REPRESENTATION,
        )
        return resp.json() if resp.content else []
