"""Thin async wrapper around the Notion ``/blocks`` endpoints."""

from __future__ import annotations

from typing import Any

from notiondocs.config import NOTION_MAX_PAGE_SIZE

from .transport import AsyncNotionTransport


class AsyncBlockAPI:
    """Asynchronous wrapper for the Notion Blocks API.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncNotionTransport` instance.
    """

    def __init__(self, transport: AsyncNotionTransport) -> None:
        self._transport = transport

    async def update(self, block_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Update a block; *payload* is typically ``{block_type: {...}}``."""
        return await self._transport.request("PATCH", f"/blocks/{block_id}", json=payload)

    async def delete(self, block_id: str) -> dict[str, Any]:
        """Delete (archive) a block."""
        return await self._transport.request("DELETE", f"/blocks/{block_id}")

    async def list_children(
        self,
        block_id: str,
        cursor: str | None = None,
        page_size: int = NOTION_MAX_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Fetch one page of a block's children.

        Returns the raw listing with ``results``, ``has_more`` and
        ``next_cursor``.  Callers that want every child loop on the
        cursor.
        """
        return await self._transport.request_page(
            "GET", f"/blocks/{block_id}/children", cursor, page_size,
        )

    async def append_children(
        self,
        block_id: str,
        children: list[dict[str, Any]],
        after: str | None = None,
    ) -> dict[str, Any]:
        """Append child blocks to a parent block or page.

        Parameters
        ----------
        block_id:
            The UUID of the parent block (or page) to append to.
        children:
            At most 100 block objects; see
            :func:`notiondocs.utils.chunk_children`.
        after:
            Optional UUID of an existing child to insert after.

        Returns
        -------
        dict
            The API response containing the appended block objects.
        """
        body: dict[str, Any] = {"children": children}
        if after is not None:
            body["after"] = after
        return await self._transport.request(
            "PATCH", f"/blocks/{block_id}/children", json=body
        )
