"""
Grid Engine — HttpGridStore Tests

Wire contract against the table API, and mapping of HTTP failures onto the
grid error taxonomy. Uses httpx.MockTransport; no server needed.
"""

import json

import httpx
import pytest

from engine.grid.http_store import HttpGridStore
from engine.grid.types import (
    Filter,
    NotFound,
    NumberValue,
    SortKey,
    TextValue,
    TransientIOError,
    Unauthorized,
    ValidationError,
)

pytestmark = pytest.mark.asyncio(loop_scope="session")

TABLE = {
    "id": "t1",
    "name": "People",
    "columns": [
        {"id": "age", "table_id": "t1", "name": "Age", "type": "NUMBER", "order": 1},
        {"id": "name", "table_id": "t1", "name": "Name", "type": "TEXT", "order": 0},
    ],
}

ROW = {
    "id": "r0",
    "order": 0,
    "cells": [
        {"id": "c1", "column_id": "name", "text_value": "Alice", "number_value": None},
        {"id": "c2", "column_id": "age", "text_value": None, "number_value": None},
    ],
}


def _store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpGridStore("http://test/", session="jwt-token", client=client)


class TestRequests:
    async def test_get_table_orders_columns(self):
        def handler(request):
            assert request.url.path == "/api/tables/t1"
            return httpx.Response(200, json=TABLE)

        table = await _store(handler).get_table("t1")
        assert [c.name for c in table.columns] == ["Name", "Age"]

    async def test_rows_decode_by_column_type(self):
        """A NUMBER column's empty cell decodes as NumberValue, not TextValue."""

        def handler(request):
            if request.url.path == "/api/tables/t1":
                return httpx.Response(200, json=TABLE)
            assert request.url.params["limit"] == "50"
            assert request.url.params["cursor"] == "r9"
            return httpx.Response(200, json={"rows": [ROW], "next_cursor": "r0", "has_next_page": True})

        page = await _store(handler).get_rows("t1", 50, "r9")
        assert page.rows[0].cells["name"] == TextValue("Alice")
        assert page.rows[0].cells["age"] == NumberValue(None)
        assert page.next_cursor == "r0"

    async def test_query_body(self):
        seen = {}

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=TABLE)
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"rows": [], "next_cursor": None, "total_count": 0})

        page = await _store(handler).get_rows_with_operations(
            "t1", 100, None, [Filter("age", "greaterThan", "3")], [SortKey("name", "desc")], "al"
        )
        assert seen == {
            "limit": 100,
            "cursor": None,
            "filters": [{"column_id": "age", "type": "greaterThan", "value": "3"}],
            "sort": [{"column_id": "name", "direction": "desc"}],
            "search": "al",
        }
        assert page.total_count == 0
        assert not page.has_next_page

    async def test_update_cell_body(self):
        seen = {}

        def handler(request):
            assert request.method == "PATCH"
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"id": "c2", "column_id": "age", "number_value": 12.5})

        await _store(handler).update_cell("t1", 3, "age", "12.5")
        assert seen == {"row_index": 3, "column_id": "age", "value": "12.5"}

    async def test_add_row_and_fake_rows(self):
        def handler(request):
            if request.url.path.endswith("/fake-rows"):
                assert json.loads(request.content) == {"row_count": 500}
                return httpx.Response(201, json={"count": 500})
            return httpx.Response(201, json={"id": "r42"})

        store = _store(handler)
        assert await store.add_row("t1") == "r42"
        assert await store.add_fake_rows("t1", 500) == 500


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("status", "error"),
        [
            (400, ValidationError),
            (422, ValidationError),
            (404, NotFound),
            (401, Unauthorized),
            (403, Unauthorized),
            (500, TransientIOError),
        ],
    )
    async def test_status_codes(self, status, error):
        def handler(request):
            return httpx.Response(status, json={"detail": "nope"})

        with pytest.raises(error, match="nope"):
            await _store(handler).get_table("t1")

    async def test_network_failure_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientIOError):
            await _store(handler).add_row("t1")
