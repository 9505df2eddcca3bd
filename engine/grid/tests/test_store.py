"""
Grid Engine — MemoryGridStore Tests

The in-memory store must keep the dense matrix invariant (one cell per
row x column) and evaluate queries the way the remote store does.
"""

import pytest
import pytest_asyncio

from engine.grid.store import MemoryGridStore, paginate
from engine.grid.types import Filter, NotFound, NumberValue, SortKey, TextValue, ValidationError

pytestmark = pytest.mark.asyncio(loop_scope="session")


@pytest_asyncio.fixture(loop_scope="session")
async def store_with_table():
    """A table with Name (TEXT) and three empty rows."""
    store = MemoryGridStore()
    table_id = store.create_table("People")
    await store.add_column(table_id, "Name", "TEXT")
    for _ in range(3):
        await store.add_row(table_id)
    return store, table_id


class TestStructure:
    async def test_add_column_backfills_every_row(self, store_with_table):
        """Adding "Email" to a 3-row table creates exactly 3 empty cells."""
        store, table_id = store_with_table
        before = store.cell_count(table_id)

        column = await store.add_column(table_id, "Email", "TEXT")

        assert store.cell_count(table_id) == before + 3
        page = await store.get_rows(table_id, 10)
        assert all(r.cells[column.id] == TextValue(None) for r in page.rows)

    async def test_column_orders_are_consecutive(self, store_with_table):
        store, table_id = store_with_table
        await store.add_column(table_id, "Age", "NUMBER")
        table = await store.get_table(table_id)
        assert [c.order for c in table.columns] == [0, 1]

    async def test_add_row_creates_cell_per_column(self, store_with_table):
        store, table_id = store_with_table
        await store.add_column(table_id, "Age", "NUMBER")
        row_id = await store.add_row(table_id)

        page = await store.get_rows(table_id, 10)
        row = next(r for r in page.rows if r.id == row_id)
        assert row.order == 3
        assert len(row.cells) == 2

    async def test_first_row_of_empty_table_has_order_zero(self):
        store = MemoryGridStore()
        table_id = store.create_table("Empty")
        await store.add_row(table_id)
        page = await store.get_rows(table_id, 10)
        assert page.rows[0].order == 0

    async def test_invalid_column_rejected(self, store_with_table):
        store, table_id = store_with_table
        with pytest.raises(ValidationError):
            await store.add_column(table_id, "  ", "TEXT")
        with pytest.raises(ValidationError):
            await store.add_column(table_id, "When", "DATE")

    async def test_unknown_table(self):
        store = MemoryGridStore()
        with pytest.raises(NotFound):
            await store.get_table("missing")


class TestUpdateCell:
    async def test_number_parsed(self, store_with_table):
        store, table_id = store_with_table
        age = await store.add_column(table_id, "Age", "NUMBER")

        await store.update_cell(table_id, 1, age.id, "12.5")

        page = await store.get_rows(table_id, 10)
        assert page.rows[1].cells[age.id] == NumberValue(12.5)

    async def test_invalid_number_leaves_cell_unchanged(self, store_with_table):
        store, table_id = store_with_table
        age = await store.add_column(table_id, "Age", "NUMBER")

        with pytest.raises(ValidationError, match="invalid number format"):
            await store.update_cell(table_id, 1, age.id, "abc")

        page = await store.get_rows(table_id, 10)
        assert page.rows[1].cells[age.id] == NumberValue(None)

    async def test_missing_row_and_column(self, store_with_table):
        store, table_id = store_with_table
        table = await store.get_table(table_id)
        with pytest.raises(NotFound, match="Row not found"):
            await store.update_cell(table_id, 99, table.columns[0].id, "x")
        with pytest.raises(NotFound, match="Column not found"):
            await store.update_cell(table_id, 0, "nope", "x")


class TestPaging:
    async def test_limit_bounds(self, store_with_table):
        store, table_id = store_with_table
        with pytest.raises(ValidationError):
            await store.get_rows(table_id, 0)
        with pytest.raises(ValidationError):
            await store.get_rows(table_id, 1001)

    async def test_pages_cover_every_row_once(self):
        store = MemoryGridStore()
        table_id = store.create_table("Big")
        await store.add_column(table_id, "Name", "TEXT")
        await store.add_fake_rows(table_id, 25)

        seen = []
        cursor = None
        while True:
            page = await store.get_rows(table_id, 10, cursor)
            seen.extend(r.order for r in page.rows)
            if not page.has_next_page:
                break
            cursor = page.next_cursor
        assert seen == list(range(25))

    async def test_unknown_cursor_restarts(self, store_with_table):
        store, table_id = store_with_table
        page = await store.get_rows(table_id, 10, "ghost")
        assert [r.order for r in page.rows] == [0, 1, 2]

    async def test_paginate_last_page_has_no_cursor(self):
        rows, cursor = paginate([], 10, None)
        assert rows == []
        assert cursor is None

    async def test_query_total_count_is_filtered_size(self):
        store = MemoryGridStore()
        table_id = store.create_table("People")
        age = await store.add_column(table_id, "Age", "NUMBER")
        for value in ("10", "20", "30", "40"):
            await store.add_row(table_id)
            order = (await store.get_rows(table_id, 1000)).rows[-1].order
            await store.update_cell(table_id, order, age.id, value)

        page = await store.get_rows_with_operations(
            table_id, 1, None, [Filter(age.id, "greaterThan", "15")], [SortKey(age.id, "desc")], ""
        )
        assert page.total_count == 3
        assert page.rows[0].cells[age.id] == NumberValue(40.0)
        assert page.has_next_page

    async def test_query_pages_cover_filtered_set_once(self):
        """Walking a filtered, sorted result by cursor yields each match once, in order."""
        store = MemoryGridStore()
        table_id = store.create_table("Big")
        name = await store.add_column(table_id, "Name", "TEXT")
        age = await store.add_column(table_id, "Age", "NUMBER")
        await store.add_fake_rows(table_id, 60)
        filters = [Filter(age.id, "greaterThan", "30")]
        sort = [SortKey(age.id, "desc"), SortKey(name.id, "asc")]

        full = await store.get_rows_with_operations(table_id, 1000, None, filters, sort, "")

        seen = []
        cursor = None
        while True:
            page = await store.get_rows_with_operations(table_id, 7, cursor, filters, sort, "")
            assert page.total_count == full.total_count
            seen.extend(r.id for r in page.rows)
            if not page.has_next_page:
                break
            cursor = page.next_cursor

        assert len(seen) == len(set(seen))
        assert seen == [r.id for r in full.rows]
        assert len(seen) == full.total_count


class TestFakeRows:
    async def test_fake_rows_fill_every_column(self, store_with_table):
        store, table_id = store_with_table
        age = await store.add_column(table_id, "Age", "NUMBER")

        created = await store.add_fake_rows(table_id, 5)

        assert created == 5
        page = await store.get_rows(table_id, 100)
        fake = [r for r in page.rows if r.order >= 3]
        assert [r.order for r in fake] == [3, 4, 5, 6, 7]
        for row in fake:
            assert 1 <= row.cells[age.id].value <= 100
            assert row.cells[age.id].value.is_integer()
            assert row.cells[next(iter(row.cells))].value

    async def test_row_count_bounds(self, store_with_table):
        store, table_id = store_with_table
        with pytest.raises(ValidationError):
            await store.add_fake_rows(table_id, 0)
        with pytest.raises(ValidationError):
            await store.add_fake_rows(table_id, 50_001)
