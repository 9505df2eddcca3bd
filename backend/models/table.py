"""Table, column, row and cell models for the grid API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from engine.grid.types import Column as GridColumn
from engine.grid.types import Filter, SortKey, TableInfo


class Column(BaseModel):
    """A typed field definition. Represents a row in the columns table."""

    id: UUID
    table_id: UUID
    name: str
    type: Literal["TEXT", "NUMBER"]
    order: int

    def to_grid(self) -> GridColumn:
        return GridColumn(id=str(self.id), name=self.name, type=self.type, order=self.order)


class Cell(BaseModel):
    """
    The value at a (row, column) intersection.
    Exactly one slot is meaningful, chosen by the column's type; the other is null.
    """

    id: UUID
    column_id: UUID
    text_value: str | None = None
    number_value: float | None = None


class Row(BaseModel):
    """A row with all of its cells."""

    id: UUID
    order: int
    cells: list[Cell] = Field(default_factory=list)


class Table(BaseModel):
    """Core table model with its columns in display order."""

    id: UUID
    name: str
    workspace_id: UUID | None = None
    user_id: UUID | None = None
    columns: list[Column] = Field(default_factory=list)
    created_at: datetime | None = None

    def to_grid(self) -> TableInfo:
        return TableInfo(id=str(self.id), name=self.name, columns=[c.to_grid() for c in self.columns])


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AddColumnRequest(BaseModel):
    """What the client sends to append a column."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=200)
    type: Literal["TEXT", "NUMBER"]


class UpdateCellRequest(BaseModel):
    """
    What the client sends to edit a cell.
    `row_index` is the row's `order`, not an opaque id.
    """

    model_config = {"extra": "forbid"}

    row_index: int
    column_id: UUID
    value: str


class AddFakeRowsRequest(BaseModel):
    model_config = {"extra": "forbid"}

    row_count: int = Field(ge=1, le=50_000)


class FilterModel(BaseModel):
    column_id: str
    # Unknown operators are accepted and ignored, like an empty one
    type: str = ""
    value: str = ""

    def to_grid(self) -> Filter:
        return Filter(column_id=self.column_id, type=self.type, value=self.value)


class SortKeyModel(BaseModel):
    column_id: str
    direction: Literal["asc", "desc"] = "asc"

    def to_grid(self) -> SortKey:
        return SortKey(column_id=self.column_id, direction=self.direction)


class QueryRowsRequest(BaseModel):
    """Filtered/sorted/searched page request."""

    model_config = {"extra": "forbid"}

    limit: int = Field(default=1000, ge=1, le=1000)
    cursor: str | None = None
    filters: list[FilterModel] = Field(default_factory=list)
    sort: list[SortKeyModel] = Field(default_factory=list)
    search: str = ""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class RowsResponse(BaseModel):
    """One page of rows, ascending by order."""

    rows: list[Row]
    next_cursor: UUID | None = None
    has_next_page: bool = False


class QueryRowsResponse(BaseModel):
    """One page of a filtered/sorted result. total_count is the filtered set size."""

    rows: list[Row]
    next_cursor: UUID | None = None
    total_count: int


class AddRowResponse(BaseModel):
    id: UUID


class AddFakeRowsResponse(BaseModel):
    count: int
