"""
Grid Engine — Shared Types

Data classes used across values, filters, sorting, pagination, edits and the
controller. These are the contracts that bind the engine together.

Cells are a tagged union keyed by the owning column's type:
- TextValue(str | None)   for TEXT columns
- NumberValue(float | None) for NUMBER columns

The store may keep two nullable slots (text_value / number_value) but the
engine never sees both at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

ColumnType = Literal["TEXT", "NUMBER"]
COLUMN_TYPES: set[str] = {"TEXT", "NUMBER"}

FilterType = Literal["equals", "notEquals", "contains", "notContains", "greaterThan", "lessThan"]
FILTER_TYPES: set[str] = {"equals", "notEquals", "contains", "notContains", "greaterThan", "lessThan"}

# Operators only meaningful for one column type
TEXT_ONLY_FILTERS: set[str] = {"contains", "notContains"}
NUMBER_ONLY_FILTERS: set[str] = {"greaterThan", "lessThan"}

SortDirection = Literal["asc", "desc"]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class GridError(Exception):
    """Base class for all grid engine errors."""

    pass


class ValidationError(GridError):
    """Bad input shape or type (non-numeric NUMBER value, empty column name)."""

    pass


class NotFound(GridError):
    """Referenced table/row/column/cell does not exist or is not visible to the caller."""

    pass


class Unauthorized(GridError):
    """Caller lacks access to the table."""

    pass


class TransientIOError(GridError):
    """Network or storage failure. Retryable by user action, never retried automatically."""

    pass


# ---------------------------------------------------------------------------
# Cell values (tagged union)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextValue:
    value: str | None = None

    @property
    def column_type(self) -> str:
        return "TEXT"


@dataclass(frozen=True)
class NumberValue:
    value: float | None = None

    @property
    def column_type(self) -> str:
        return "NUMBER"


CellValue = Union[TextValue, NumberValue]

# A projected row: column_id -> scalar (str, float or None)
LogicalRowView = dict[str, Any]


def empty_value(column_type: str) -> CellValue:
    """The empty cell for a column of the given type."""
    if column_type == "NUMBER":
        return NumberValue(None)
    return TextValue(None)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Column:
    id: str
    name: str
    type: str
    order: int

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Column:
        return cls(id=str(d["id"]), name=d["name"], type=d["type"], order=int(d["order"]))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type, "order": self.order}


@dataclass(frozen=True)
class TableInfo:
    """A table with its columns in display order."""

    id: str
    name: str
    columns: list[Column] = field(default_factory=list)

    def column(self, column_id: str) -> Column | None:
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TableInfo:
        columns = sorted((Column.from_dict(c) for c in d.get("columns", [])), key=lambda c: c.order)
        return cls(id=str(d["id"]), name=d["name"], columns=columns)


@dataclass
class GridRow:
    """
    A row as the engine holds it: identity, stable order, and one typed
    value per column.
    """

    id: str
    order: int
    cells: dict[str, CellValue] = field(default_factory=dict)

    def view(self) -> LogicalRowView:
        """Project each cell's active slot: column_id -> scalar."""
        return {column_id: cell.value for column_id, cell in self.cells.items()}

    @classmethod
    def from_dict(cls, d: dict[str, Any], columns: list[Column] | None = None) -> GridRow:
        """
        Build from the wire shape:
            {"id", "order", "cells": [{"column_id", "text_value", "number_value"}]}

        When columns are given, the slot is chosen by the column's declared
        type; otherwise by whichever slot is non-null.
        """
        types = {c.id: c.type for c in columns or []}
        cells: dict[str, CellValue] = {}
        for c in d.get("cells", []):
            column_id = str(c["column_id"])
            column_type = types.get(column_id)
            if column_type is None:
                column_type = "NUMBER" if c.get("number_value") is not None else "TEXT"
            if column_type == "NUMBER":
                number = c.get("number_value")
                cells[column_id] = NumberValue(float(number) if number is not None else None)
            else:
                cells[column_id] = TextValue(c.get("text_value"))
        return cls(id=str(d["id"]), order=int(d["order"]), cells=cells)


@dataclass(frozen=True)
class Filter:
    column_id: str
    type: str
    value: str

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Filter:
        return cls(column_id=str(d["column_id"]), type=d.get("type") or "", value=d.get("value") or "")

    def to_dict(self) -> dict[str, Any]:
        return {"column_id": self.column_id, "type": self.type, "value": self.value}


@dataclass(frozen=True)
class SortKey:
    column_id: str
    direction: str = "asc"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SortKey:
        return cls(column_id=str(d["column_id"]), direction=d.get("direction", "asc"))

    def to_dict(self) -> dict[str, Any]:
        return {"column_id": self.column_id, "direction": self.direction}


@dataclass
class Page:
    """One fetched page of rows."""

    rows: list[GridRow]
    next_cursor: str | None = None
    total_count: int | None = None

    @property
    def has_next_page(self) -> bool:
        return self.next_cursor is not None


@dataclass(frozen=True)
class QuerySnapshot:
    """The filter/sort/search conditions a fetch was issued under."""

    filters: tuple[Filter, ...] = ()
    sort: tuple[SortKey, ...] = ()
    search: str = ""


def normalize_sort_keys(keys: list[SortKey]) -> list[SortKey]:
    """At most one entry per column; the first occurrence keeps its priority."""
    seen: set[str] = set()
    result: list[SortKey] = []
    for key in keys:
        if key.column_id in seen:
            continue
        seen.add(key.column_id)
        result.append(key)
    return result
