"""Thin async wrapper around the Notion ``/databases`` endpoints."""

from __future__ import annotations

from typing import Any

from .transport import AsyncNotionTransport


class AsyncDatabaseAPI:
    """Asynchronous wrapper for the Notion Databases API.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncNotionTransport` instance.
    """

    def __init__(self, transport: AsyncNotionTransport) -> None:
        self._transport = transport

    async def retrieve(self, database_id: str) -> dict[str, Any]:
        """Retrieve a database, including its ``properties`` schema."""
        return await self._transport.request("GET", f"/databases/{database_id}")

    async def update(self, database_id: str, properties: dict[str, Any]) -> dict[str, Any]:
        """Add or change fields of a database schema.

        *properties* maps field names to property configurations, e.g.
        ``{"Tags": {"multi_select": {}}}``.
        """
        return await self._transport.request(
            "PATCH", f"/databases/{database_id}", json={"properties": properties}
        )

    async def query(
        self,
        database_id: str,
        *,
        filter: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        start_cursor: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        """Run a single query page against a database.

        Returns the raw listing with ``results``, ``has_more`` and
        ``next_cursor``.
        """
        body: dict[str, Any] = {}
        if filter is not None:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        return await self._transport.request_page(
            "POST", f"/databases/{database_id}/query", start_cursor, page_size, json=body,
        )
