"""
Grid Engine — Filter Engine

Pure function: (row view, filters, columns) -> bool
A row is kept when it satisfies every filter (conjunction).

Filters that cannot be evaluated are no-ops, never exclusions:
- column no longer exists
- empty type or empty value
- operator not valid for the column's type
- NUMBER filter whose value does not parse

The same rules are compiled to SQL by backend.services.query_compiler;
both must stay observably equivalent.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from engine.grid.types import (
    NUMBER_ONLY_FILTERS,
    TEXT_ONLY_FILTERS,
    Column,
    Filter,
    GridRow,
    LogicalRowView,
)
from engine.grid.values import display_value, parse_number

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def matches(row: LogicalRowView, filters: Iterable[Filter], columns: dict[str, Column]) -> bool:
    """True iff the row satisfies every applicable filter."""
    return all(matches_one(row, f, columns) for f in filters)


def matches_one(row: LogicalRowView, f: Filter, columns: dict[str, Column]) -> bool:
    column = columns.get(f.column_id)
    if column is None:
        return True
    if not f.type or not f.value:
        return True
    if column.type == "TEXT":
        return _match_text(row.get(f.column_id), f.type, f.value)
    if column.type == "NUMBER":
        return _match_number(row.get(f.column_id), f.type, f.value)
    return True


def is_applicable(f: Filter, columns: dict[str, Column]) -> bool:
    """
    Whether a filter can exclude anything at all.
    Inapplicable filters are dropped before compiling a remote query.
    """
    column = columns.get(f.column_id)
    if column is None or not f.type or not f.value:
        return False
    if column.type == "TEXT":
        return f.type not in NUMBER_ONLY_FILTERS and f.type in _TEXT_OPS
    if column.type == "NUMBER":
        return f.type not in TEXT_ONLY_FILTERS and f.type in _NUMBER_OPS and parse_number(f.value) is not None
    return False


def filter_rows(rows: Iterable[GridRow], filters: list[Filter], columns: dict[str, Column]) -> list[GridRow]:
    """Keep rows matching all filters, preserving input order."""
    active = [f for f in filters if is_applicable(f, columns)]
    if not active:
        return list(rows)
    return [row for row in rows if matches(row.view(), active, columns)]


# ---------------------------------------------------------------------------
# Per-type comparison
# ---------------------------------------------------------------------------


_TEXT_OPS = {"equals", "notEquals", "contains", "notContains"}
_NUMBER_OPS = {"equals", "notEquals", "greaterThan", "lessThan"}


def _match_text(value: Any, op: str, needle: str) -> bool:
    # null text compares as ""
    haystack = "" if value is None else str(value).lower()
    needle = needle.lower()
    if op == "equals":
        return haystack == needle
    if op == "notEquals":
        return haystack != needle
    if op == "contains":
        return needle in haystack
    if op == "notContains":
        return needle not in haystack
    return True


def _match_number(value: Any, op: str, raw: str) -> bool:
    target = parse_number(raw)
    if target is None or op not in _NUMBER_OPS:
        return True
    if value is None:
        # an empty cell equals nothing and differs from everything
        return op == "notEquals"
    number = float(value)
    if op == "equals":
        return number == target
    if op == "notEquals":
        return number != target
    if op == "greaterThan":
        return number > target
    if op == "lessThan":
        return number < target
    return True


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def row_contains(row: LogicalRowView, term: str) -> bool:
    """Case-insensitive substring match against any cell's display value."""
    if not term:
        return True
    needle = term.lower()
    return any(needle in display_value(v).lower() for v in row.values())


def search_hits(rows: Iterable[GridRow], term: str) -> set[tuple[int, str]]:
    """
    (row order, column_id) of every cell whose display value contains the
    term. Used for highlighting only; rows are never excluded here.
    """
    if not term:
        return set()
    needle = term.lower()
    hits: set[tuple[int, str]] = set()
    for row in rows:
        for column_id, cell in row.cells.items():
            if needle in display_value(cell).lower():
                hits.add((row.order, column_id))
    return hits
