"""Repository for table, column, row and cell operations."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

import asyncpg

from backend.config import settings
from backend.db import user_conn
from backend.models.table import Cell, Column, Row, Table
from backend.services.query_compiler import compile_rows_query
from engine.grid.fake_rows import batched, generate_rows, validate_row_count
from engine.grid.store import GridStore, check_limit
from engine.grid.types import (
    COLUMN_TYPES,
    Filter,
    GridRow,
    NotFound,
    Page,
    SortKey,
    TableInfo,
    ValidationError,
)
from engine.grid.types import Column as GridColumn
from engine.grid.values import coerce_cell_value, to_slots

logger = logging.getLogger(__name__)


def _row_to_column(row: asyncpg.Record) -> Column:
    """Convert a database row to a Column model."""
    return Column(
        id=row["id"],
        table_id=row["table_id"],
        name=row["name"],
        type=row["type"],
        order=row["order"],
    )


def _row_to_cell(row: asyncpg.Record) -> Cell:
    """Convert a database row to a Cell model."""
    return Cell(
        id=row["id"],
        column_id=row["column_id"],
        text_value=row["text_value"],
        number_value=row["number_value"],
    )


def _parse_cursor(cursor: str | UUID | None) -> UUID | None:
    # A cursor that is not a row id restarts from the beginning
    if cursor is None or isinstance(cursor, UUID):
        return cursor
    try:
        return UUID(cursor)
    except ValueError:
        return None


class TableRepo:
    """All table-related database operations. RLS scopes every query to the caller."""

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get_table(self, user_id: UUID, table_id: UUID) -> Table | None:
        """
        Get a table with its columns ordered by `order`.

        Args:
            user_id: User UUID
            table_id: Table UUID

        Returns:
            Table if found and owned by user, None otherwise
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM tables WHERE id = $1", table_id)
            if not row:
                return None
            columns = await conn.fetch('SELECT * FROM columns WHERE table_id = $1 ORDER BY "order"', table_id)
            return Table(
                id=row["id"],
                name=row["name"],
                workspace_id=row["workspace_id"],
                user_id=row["user_id"],
                columns=[_row_to_column(c) for c in columns],
                created_at=row["created_at"],
            )

    async def get_rows(
        self,
        user_id: UUID,
        table_id: UUID,
        limit: int,
        cursor: str | UUID | None = None,
    ) -> tuple[list[Row], UUID | None]:
        """
        Get one page of rows ascending by `order`, starting after the cursor row.

        Args:
            user_id: User UUID
            table_id: Table UUID
            limit: Page size, 1..1000
            cursor: Id of the last row of the previous page

        Returns:
            (rows, next_cursor). next_cursor is None on the last page.

        Raises:
            ValidationError: limit out of range
            NotFound: table missing or not owned by user
        """
        check_limit(limit)
        async with user_conn(user_id) as conn:
            await self._require_table(conn, table_id)
            records = await conn.fetch(
                """
                SELECT id, "order" FROM rows
                WHERE table_id = $1
                AND "order" > COALESCE((SELECT "order" FROM rows WHERE id = $2 AND table_id = $1), -1)
                ORDER BY "order"
                LIMIT $3
                """,
                table_id,
                _parse_cursor(cursor),
                limit + 1,
            )
            has_more = len(records) > limit
            records = records[:limit]
            rows = await self._with_cells(conn, records)
            next_cursor = rows[-1].id if has_more and rows else None
            return rows, next_cursor

    async def get_rows_with_operations(
        self,
        user_id: UUID,
        table_id: UUID,
        limit: int,
        cursor: str | UUID | None,
        filters: list[Filter],
        sort: list[SortKey],
        search: str,
    ) -> tuple[list[Row], UUID | None, int]:
        """
        Get one page of the filtered, sorted and searched row set.

        Returns:
            (rows, next_cursor, total_count). total_count is the size of the
            filtered set, not the table.
        """
        check_limit(limit)
        async with user_conn(user_id) as conn:
            await self._require_table(conn, table_id)
            column_records = await conn.fetch("SELECT * FROM columns WHERE table_id = $1", table_id)
            columns = {
                str(c["id"]): GridColumn(id=str(c["id"]), name=c["name"], type=c["type"], order=c["order"])
                for c in column_records
            }
            query = compile_rows_query(table_id, columns, filters, sort, search)
            records = await conn.fetch(query.page_sql, *query.params, _parse_cursor(cursor), limit + 1)
            total_count = await conn.fetchval(query.count_sql, *query.params)

            has_more = len(records) > limit
            records = records[:limit]
            rows = await self._with_cells(conn, records)
            next_cursor = rows[-1].id if has_more and rows else None
            return rows, next_cursor, total_count or 0

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def add_column(self, user_id: UUID, table_id: UUID, name: str, type: str) -> Column:
        """
        Append a column and create one empty cell for every existing row,
        in one transaction.

        Raises:
            ValidationError: empty name or unknown type
            NotFound: table missing or not owned by user
        """
        if not name.strip():
            raise ValidationError("column name must not be empty")
        if type not in COLUMN_TYPES:
            raise ValidationError(f"unknown column type: {type}")

        async with user_conn(user_id) as conn:
            await self._lock_table(conn, table_id)
            row = await conn.fetchrow(
                """
                INSERT INTO columns (id, table_id, name, type, "order")
                VALUES ($1, $2, $3, $4,
                    (SELECT COALESCE(MAX("order") + 1, 0) FROM columns WHERE table_id = $2))
                RETURNING *
                """,
                uuid4(),
                table_id,
                name,
                type,
            )
            result = await conn.execute(
                """
                INSERT INTO cells (row_id, column_id)
                SELECT id, $2::uuid FROM rows WHERE table_id = $1
                """,
                table_id,
                row["id"],
            )
            logger.info("table_repo.add_column table=%s column=%s backfill=%s", table_id, row["id"], result)
            return _row_to_column(row)

    async def add_row(self, user_id: UUID, table_id: UUID) -> UUID:
        """
        Append a row with one empty cell per column.

        Returns:
            The new row's id
        """
        async with user_conn(user_id) as conn:
            await self._lock_table(conn, table_id)
            row_id = await conn.fetchval(
                """
                INSERT INTO rows (id, table_id, "order")
                VALUES ($1, $2, (SELECT COALESCE(MAX("order") + 1, 0) FROM rows WHERE table_id = $2))
                RETURNING id
                """,
                uuid4(),
                table_id,
            )
            await conn.execute(
                """
                INSERT INTO cells (row_id, column_id)
                SELECT $2::uuid, id FROM columns WHERE table_id = $1
                """,
                table_id,
                row_id,
            )
            return row_id

    async def add_fake_rows(self, user_id: UUID, table_id: UUID, row_count: int) -> int:
        """
        Bulk-insert synthetic rows with consecutive orders after the current
        maximum. Inserted in batches inside one transaction.

        Returns:
            Number of rows created
        """
        validate_row_count(row_count)
        async with user_conn(user_id) as conn:
            await self._lock_table(conn, table_id)
            column_records = await conn.fetch('SELECT * FROM columns WHERE table_id = $1 ORDER BY "order"', table_id)
            columns = [
                GridColumn(id=str(c["id"]), name=c["name"], type=c["type"], order=c["order"]) for c in column_records
            ]
            start_order = await conn.fetchval(
                'SELECT COALESCE(MAX("order") + 1, 0) FROM rows WHERE table_id = $1',
                table_id,
            )

            created = 0
            for batch in batched(generate_rows(columns, row_count, start_order), settings.FAKE_ROWS_BATCH_SIZE):
                await conn.executemany(
                    'INSERT INTO rows (id, table_id, "order") VALUES ($1, $2, $3)',
                    [(r.id, table_id, r.order) for r in batch],
                )
                await conn.executemany(
                    "INSERT INTO cells (row_id, column_id, text_value, number_value) VALUES ($1, $2, $3, $4)",
                    [(r.id, column_id, *to_slots(value)) for r in batch for column_id, value in r.cells.items()],
                )
                created += len(batch)

            logger.info("table_repo.add_fake_rows table=%s created=%d", table_id, created)
            return created

    async def update_cell(self, user_id: UUID, table_id: UUID, row_order: int, column_id: UUID, value: str) -> Cell:
        """
        Write a raw string to the cell at (row order, column). The value is
        coerced by the column's type; the other slot is cleared.

        Raises:
            NotFound: table, row, column or cell missing
            ValidationError: NUMBER column and the value does not parse
        """
        async with user_conn(user_id) as conn:
            await self._require_table(conn, table_id)
            row_id = await conn.fetchval(
                'SELECT id FROM rows WHERE table_id = $1 AND "order" = $2',
                table_id,
                row_order,
            )
            if row_id is None:
                raise NotFound("Row not found")
            column_type = await conn.fetchval(
                "SELECT type FROM columns WHERE table_id = $1 AND id = $2",
                table_id,
                column_id,
            )
            if column_type is None:
                raise NotFound("Column not found")

            text_value, number_value = to_slots(coerce_cell_value(column_type, value))
            row = await conn.fetchrow(
                """
                UPDATE cells SET text_value = $3, number_value = $4
                WHERE row_id = $1 AND column_id = $2
                RETURNING *
                """,
                row_id,
                column_id,
                text_value,
                number_value,
            )
            if row is None:
                raise NotFound("Cell not found")
            return _row_to_cell(row)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _require_table(self, conn: asyncpg.Connection, table_id: UUID) -> None:
        exists = await conn.fetchval("SELECT EXISTS(SELECT 1 FROM tables WHERE id = $1)", table_id)
        if not exists:
            raise NotFound("Table not found")

    async def _lock_table(self, conn: asyncpg.Connection, table_id: UUID) -> None:
        # Serializes order allocation for concurrent appends to one table
        locked = await conn.fetchval("SELECT id FROM tables WHERE id = $1 FOR UPDATE", table_id)
        if locked is None:
            raise NotFound("Table not found")

    async def _with_cells(self, conn: asyncpg.Connection, records: list[asyncpg.Record]) -> list[Row]:
        if not records:
            return []
        cell_records = await conn.fetch(
            """
            SELECT cells.* FROM cells
            JOIN columns ON columns.id = cells.column_id
            WHERE cells.row_id = ANY($1::uuid[])
            ORDER BY columns."order"
            """,
            [r["id"] for r in records],
        )
        cells: dict[UUID, list[Cell]] = {}
        for c in cell_records:
            cells.setdefault(c["row_id"], []).append(_row_to_cell(c))
        return [Row(id=r["id"], order=r["order"], cells=cells.get(r["id"], [])) for r in records]


# ---------------------------------------------------------------------------
# GridStore adapter
# ---------------------------------------------------------------------------


class UserTableStore(GridStore):
    """
    Postgres-backed GridStore for one user. Lets the grid controller run
    against the database directly (server-side jobs, tests).
    """

    supports_operations = True

    def __init__(self, repo: TableRepo, user_id: UUID) -> None:
        self.repo = repo
        self.user_id = user_id
        # Column types per table, so null cells decode into the right slot
        self._columns: dict[str, list[GridColumn]] = {}

    async def get_table(self, table_id: str) -> TableInfo:
        table = await self.repo.get_table(self.user_id, _uuid(table_id))
        if table is None:
            raise NotFound("Table not found")
        info = table.to_grid()
        self._columns[table_id] = info.columns
        return info

    async def get_rows(self, table_id: str, limit: int, cursor: str | None = None) -> Page:
        rows, next_cursor = await self.repo.get_rows(self.user_id, _uuid(table_id), limit, cursor)
        return self._page(table_id, rows, next_cursor)

    async def get_rows_with_operations(
        self,
        table_id: str,
        limit: int,
        cursor: str | None,
        filters: list[Filter],
        sort: list[SortKey],
        search: str,
    ) -> Page:
        rows, next_cursor, total = await self.repo.get_rows_with_operations(
            self.user_id, _uuid(table_id), limit, cursor, filters, sort, search
        )
        return self._page(table_id, rows, next_cursor, total)

    async def add_column(self, table_id: str, name: str, type: str) -> GridColumn:
        column = (await self.repo.add_column(self.user_id, _uuid(table_id), name, type)).to_grid()
        if table_id in self._columns:
            self._columns[table_id] = [*self._columns[table_id], column]
        return column

    async def add_row(self, table_id: str) -> str:
        return str(await self.repo.add_row(self.user_id, _uuid(table_id)))

    async def add_fake_rows(self, table_id: str, row_count: int) -> int:
        return await self.repo.add_fake_rows(self.user_id, _uuid(table_id), row_count)

    async def update_cell(self, table_id: str, row_order: int, column_id: str, value: str) -> None:
        await self.repo.update_cell(self.user_id, _uuid(table_id), row_order, _uuid(column_id, "Column not found"), value)

    def _page(self, table_id: str, rows: list[Row], next_cursor: UUID | None, total: int | None = None) -> Page:
        columns = self._columns.get(table_id)
        return Page(
            rows=[GridRow.from_dict(r.model_dump(), columns) for r in rows],
            next_cursor=str(next_cursor) if next_cursor else None,
            total_count=total,
        )


def _uuid(value: str, missing: str = "Table not found") -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise NotFound(missing) from None
