"""Table routes — metadata, row pages, queries, column/row appends, cell edits."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.auth import get_current_user
from backend.models.table import (
    AddColumnRequest,
    AddFakeRowsRequest,
    AddFakeRowsResponse,
    AddRowResponse,
    Cell,
    Column,
    QueryRowsRequest,
    QueryRowsResponse,
    RowsResponse,
    Table,
    UpdateCellRequest,
)
from backend.models.user import User
from backend.repos.table_repo import TableRepo
from engine.grid.types import GridError, NotFound, Unauthorized, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tables", tags=["tables"])
table_repo = TableRepo()


def _to_http(e: GridError) -> HTTPException:
    """Map an engine error onto its HTTP status."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, Unauthorized):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    logger.error("tables.unexpected_grid_error: %s", e)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/{table_id}", status_code=200)
async def get_table(
    table_id: UUID,
    user: User = Depends(get_current_user),
) -> Table:
    """Table metadata with columns ordered by `order`."""
    table = await table_repo.get_table(user.id, table_id)
    if not table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found.")
    return table


@router.get("/{table_id}/rows", status_code=200)
async def get_rows(
    table_id: UUID,
    limit: int = Query(default=1000, ge=1, le=1000),
    cursor: str | None = None,
    user: User = Depends(get_current_user),
) -> RowsResponse:
    """One page of rows ascending by `order`."""
    try:
        rows, next_cursor = await table_repo.get_rows(user.id, table_id, limit, cursor)
    except GridError as e:
        raise _to_http(e) from e
    return RowsResponse(rows=rows, next_cursor=next_cursor, has_next_page=next_cursor is not None)


@router.post("/{table_id}/rows/query", status_code=200)
async def query_rows(
    table_id: UUID,
    req: QueryRowsRequest,
    user: User = Depends(get_current_user),
) -> QueryRowsResponse:
    """One page of the filtered, sorted and searched row set."""
    try:
        rows, next_cursor, total_count = await table_repo.get_rows_with_operations(
            user.id,
            table_id,
            req.limit,
            req.cursor,
            [f.to_grid() for f in req.filters],
            [s.to_grid() for s in req.sort],
            req.search,
        )
    except GridError as e:
        raise _to_http(e) from e
    return QueryRowsResponse(rows=rows, next_cursor=next_cursor, total_count=total_count)


@router.post("/{table_id}/columns", status_code=201)
async def add_column(
    table_id: UUID,
    req: AddColumnRequest,
    user: User = Depends(get_current_user),
) -> Column:
    """Append a column; every existing row gets an empty cell for it."""
    try:
        return await table_repo.add_column(user.id, table_id, req.name, req.type)
    except GridError as e:
        raise _to_http(e) from e


@router.post("/{table_id}/rows", status_code=201)
async def add_row(
    table_id: UUID,
    user: User = Depends(get_current_user),
) -> AddRowResponse:
    """Append a row with one empty cell per column."""
    try:
        row_id = await table_repo.add_row(user.id, table_id)
    except GridError as e:
        raise _to_http(e) from e
    return AddRowResponse(id=row_id)


@router.post("/{table_id}/fake-rows", status_code=201)
async def add_fake_rows(
    table_id: UUID,
    req: AddFakeRowsRequest,
    user: User = Depends(get_current_user),
) -> AddFakeRowsResponse:
    """Bulk-insert synthetic rows."""
    try:
        count = await table_repo.add_fake_rows(user.id, table_id, req.row_count)
    except GridError as e:
        raise _to_http(e) from e
    return AddFakeRowsResponse(count=count)


@router.patch("/{table_id}/cells", status_code=200)
async def update_cell(
    table_id: UUID,
    req: UpdateCellRequest,
    user: User = Depends(get_current_user),
) -> Cell:
    """Write a raw value to the cell at (row order, column)."""
    try:
        return await table_repo.update_cell(user.id, table_id, req.row_index, req.column_id, req.value)
    except GridError as e:
        raise _to_http(e) from e
