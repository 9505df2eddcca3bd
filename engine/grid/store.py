"""
Grid Engine — Persistence Collaborator

The controller never talks to a database. It is handed a GridStore.
Implement with HTTP for the client (http_store.HttpGridStore), with Postgres
on the server (backend.repos.table_repo.UserTableStore), or in-memory for
tests (MemoryGridStore).
"""

from __future__ import annotations

import uuid

from engine.grid.fake_rows import batched, generate_rows
from engine.grid.filters import filter_rows, row_contains
from engine.grid.sorting import sort_rows
from engine.grid.types import (
    COLUMN_TYPES,
    Column,
    Filter,
    GridRow,
    NotFound,
    Page,
    SortKey,
    TableInfo,
    ValidationError,
    empty_value,
)
from engine.grid.values import coerce_cell_value

MAX_PAGE_SIZE = 1000

# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class GridStore:
    """
    Abstract persistence interface, scoped to one caller.
    Every method raises NotFound for a table the caller cannot see.
    """

    # True when get_rows_with_operations evaluates filter/sort/search itself.
    supports_operations: bool = True

    async def get_table(self, table_id: str) -> TableInfo:
        """Table metadata with columns ordered by `order`."""
        raise NotImplementedError

    async def get_rows(self, table_id: str, limit: int, cursor: str | None = None) -> Page:
        """Rows ascending by `order`, starting after the cursor row."""
        raise NotImplementedError

    async def get_rows_with_operations(
        self,
        table_id: str,
        limit: int,
        cursor: str | None,
        filters: list[Filter],
        sort: list[SortKey],
        search: str,
    ) -> Page:
        """Filtered/sorted/searched rows. `total_count` is the size of the filtered set."""
        raise NotImplementedError

    async def add_column(self, table_id: str, name: str, type: str) -> Column:
        """Append a column and back-fill one empty cell per existing row."""
        raise NotImplementedError

    async def add_row(self, table_id: str) -> str:
        """Append a row with one empty cell per column. Returns the row id."""
        raise NotImplementedError

    async def add_fake_rows(self, table_id: str, row_count: int) -> int:
        """Bulk-insert synthetic rows. Returns the number created."""
        raise NotImplementedError

    async def update_cell(self, table_id: str, row_order: int, column_id: str, value: str) -> None:
        """Write a raw value to the cell at (row order, column)."""
        raise NotImplementedError


def check_limit(limit: int) -> None:
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


def paginate(rows: list[GridRow], limit: int, cursor: str | None) -> tuple[list[GridRow], str | None]:
    """
    Slice one page out of an ordered sequence. The page starts after the
    cursor row; an unknown cursor starts from the beginning.
    """
    start = 0
    if cursor is not None:
        for i, row in enumerate(rows):
            if row.id == cursor:
                start = i + 1
                break
    page = rows[start : start + limit]
    has_more = start + limit < len(rows)
    next_cursor = page[-1].id if has_more and page else None
    return page, next_cursor


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class _MemoryTable:
    def __init__(self, table_id: str, name: str) -> None:
        self.id = table_id
        self.name = name
        self.columns: list[Column] = []
        self.rows: list[GridRow] = []

    def next_row_order(self) -> int:
        return max((r.order for r in self.rows), default=-1) + 1

    def next_column_order(self) -> int:
        return max((c.order for c in self.columns), default=-1) + 1


class MemoryGridStore(GridStore):
    """In-memory store for testing. Evaluates queries with the engine's own filter/sort."""

    def __init__(self) -> None:
        self.tables: dict[str, _MemoryTable] = {}

    def create_table(self, name: str, table_id: str | None = None) -> str:
        table_id = table_id or str(uuid.uuid4())
        self.tables[table_id] = _MemoryTable(table_id, name)
        return table_id

    def _table(self, table_id: str) -> _MemoryTable:
        table = self.tables.get(table_id)
        if table is None:
            raise NotFound(f"table {table_id}")
        return table

    def cell_count(self, table_id: str) -> int:
        return sum(len(r.cells) for r in self._table(table_id).rows)

    async def get_table(self, table_id: str) -> TableInfo:
        table = self._table(table_id)
        return TableInfo(id=table.id, name=table.name, columns=sorted(table.columns, key=lambda c: c.order))

    async def get_rows(self, table_id: str, limit: int, cursor: str | None = None) -> Page:
        check_limit(limit)
        rows = sorted(self._table(table_id).rows, key=lambda r: r.order)
        page, next_cursor = paginate(rows, limit, cursor)
        return Page(rows=[_copy_row(r) for r in page], next_cursor=next_cursor)

    async def get_rows_with_operations(
        self,
        table_id: str,
        limit: int,
        cursor: str | None,
        filters: list[Filter],
        sort: list[SortKey],
        search: str,
    ) -> Page:
        check_limit(limit)
        table = self._table(table_id)
        columns = {c.id: c for c in table.columns}
        rows = sorted(table.rows, key=lambda r: r.order)
        rows = filter_rows(rows, filters, columns)
        if search:
            rows = [r for r in rows if row_contains(r.view(), search)]
        rows = sort_rows(rows, sort, columns)
        page, next_cursor = paginate(rows, limit, cursor)
        return Page(rows=[_copy_row(r) for r in page], next_cursor=next_cursor, total_count=len(rows))

    async def add_column(self, table_id: str, name: str, type: str) -> Column:
        if not name.strip():
            raise ValidationError("column name must not be empty")
        if type not in COLUMN_TYPES:
            raise ValidationError(f"unknown column type: {type}")
        table = self._table(table_id)
        column = Column(id=str(uuid.uuid4()), name=name, type=type, order=table.next_column_order())
        table.columns.append(column)
        for row in table.rows:
            row.cells[column.id] = empty_value(type)
        return column

    async def add_row(self, table_id: str) -> str:
        table = self._table(table_id)
        row = GridRow(
            id=str(uuid.uuid4()),
            order=table.next_row_order(),
            cells={c.id: empty_value(c.type) for c in table.columns},
        )
        table.rows.append(row)
        return row.id

    async def add_fake_rows(self, table_id: str, row_count: int) -> int:
        table = self._table(table_id)
        rows = generate_rows(table.columns, row_count, table.next_row_order())
        created = 0
        for batch in batched(rows):
            table.rows.extend(batch)
            created += len(batch)
        return created

    async def update_cell(self, table_id: str, row_order: int, column_id: str, value: str) -> None:
        table = self._table(table_id)
        row = next((r for r in table.rows if r.order == row_order), None)
        if row is None:
            raise NotFound("Row not found")
        column = next((c for c in table.columns if c.id == column_id), None)
        if column is None:
            raise NotFound("Column not found")
        if column_id not in row.cells:
            raise NotFound("Cell not found")
        row.cells[column_id] = coerce_cell_value(column.type, value)


def _copy_row(row: GridRow) -> GridRow:
    return GridRow(id=row.id, order=row.order, cells=dict(row.cells))
