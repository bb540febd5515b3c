"""Unit tests for the thin endpoint wrappers in pages.py, blocks.py and databases.py.

Each wrapper only shapes a path and a body, so the transport is mocked and
the calls it receives are asserted.
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from notiondocs.notion_api.blocks import AsyncBlockAPI
from notiondocs.notion_api.databases import AsyncDatabaseAPI
from notiondocs.notion_api.pages import AsyncPageAPI


@pytest.fixture
def transport():
    t = MagicMock()
    t.request = AsyncMock(return_value={"id": "x"})
    t.request_page = AsyncMock(return_value={"results": [], "has_more": False})
    return t


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

class TestAsyncPageAPI:
    async def test_create_without_children(self, transport):
        api = AsyncPageAPI(transport)
        await api.create(parent={"database_id": "db"}, properties={"title": {}})
        transport.request.assert_awaited_once_with(
            "POST", "/pages",
            json={"parent": {"database_id": "db"}, "properties": {"title": {}}},
        )

    async def test_create_with_children(self, transport):
        api = AsyncPageAPI(transport)
        await api.create(parent={"page_id": "p"}, properties={}, children=[{"type": "divider"}])
        assert transport.request.await_args.kwargs["json"]["children"] == [{"type": "divider"}]

    async def test_retrieve(self, transport):
        result = await AsyncPageAPI(transport).retrieve("abc")
        transport.request.assert_awaited_once_with("GET", "/pages/abc")
        assert result == {"id": "x"}

    async def test_update_only_sends_given_fields(self, transport):
        await AsyncPageAPI(transport).update("abc", properties={"Tags": {}})
        transport.request.assert_awaited_once_with(
            "PATCH", "/pages/abc", json={"properties": {"Tags": {}}},
        )

    async def test_archive(self, transport):
        await AsyncPageAPI(transport).archive("abc")
        transport.request.assert_awaited_once_with(
            "PATCH", "/pages/abc", json={"archived": True},
        )


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

class TestAsyncBlockAPI:
    async def test_list_children_uses_get_page(self, transport):
        await AsyncBlockAPI(transport).list_children("b1", "cur", 50)
        transport.request_page.assert_awaited_once_with("GET", "/blocks/b1/children", "cur", 50)

    async def test_list_children_defaults(self, transport):
        await AsyncBlockAPI(transport).list_children("b1")
        transport.request_page.assert_awaited_once_with("GET", "/blocks/b1/children", None, 100)

    async def test_append_children(self, transport):
        children = [{"type": "paragraph", "paragraph": {"rich_text": []}}]
        await AsyncBlockAPI(transport).append_children("p1", children)
        transport.request.assert_awaited_once_with(
            "PATCH", "/blocks/p1/children", json={"children": children},
        )

    async def test_append_children_after(self, transport):
        await AsyncBlockAPI(transport).append_children("p1", [], after="b9")
        assert transport.request.await_args.kwargs["json"] == {"children": [], "after": "b9"}

    async def test_update_and_delete(self, transport):
        api = AsyncBlockAPI(transport)
        await api.update("b1", {"paragraph": {"rich_text": []}})
        await api.delete("b1")
        assert transport.request.await_args_list[0].args == ("PATCH", "/blocks/b1")
        assert transport.request.await_args_list[1].args == ("DELETE", "/blocks/b1")


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------

class TestAsyncDatabaseAPI:
    async def test_retrieve(self, transport):
        await AsyncDatabaseAPI(transport).retrieve("db")
        transport.request.assert_awaited_once_with("GET", "/databases/db")

    async def test_update_properties(self, transport):
        await AsyncDatabaseAPI(transport).update("db", {"Tags": {"multi_select": {}}})
        transport.request.assert_awaited_once_with(
            "PATCH", "/databases/db", json={"properties": {"Tags": {"multi_select": {}}}},
        )

    async def test_query_with_filter_and_sorts(self, transport):
        flt = {"property": "Status", "select": {"equals": "draft"}}
        sorts = [{"timestamp": "created_time", "direction": "descending"}]
        await AsyncDatabaseAPI(transport).query(
            "db", filter=flt, sorts=sorts, start_cursor="c1", page_size=10,
        )
        transport.request_page.assert_awaited_once_with(
            "POST", "/databases/db/query", "c1", 10, json={"filter": flt, "sorts": sorts},
        )

    async def test_query_empty_sorts_omitted(self, transport):
        await AsyncDatabaseAPI(transport).query("db", sorts=[])
        transport.request_page.assert_awaited_once_with(
            "POST", "/databases/db/query", None, 100, json={},
        )
