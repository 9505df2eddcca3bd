"""
Grid Engine — Sort Engine

Multi-key comparator over row views. Produces a view order only; a row's
stored `order` is never touched.

Missing values compare as their type's zero: null text = "", null number = 0.
The SQL compiler applies the same COALESCE, so remote and in-memory sorting
agree.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import cmp_to_key
from typing import Any

from pyuca import Collator

from engine.grid.types import Column, GridRow, LogicalRowView, SortKey

# Unicode Collation Algorithm, root order. Postgres sorts with the ICU root
# collation (COLLATE "und-x-icu"), which is derived from the same table.
_collator = Collator()


def compare(a: LogicalRowView, b: LogicalRowView, keys: Iterable[SortKey], columns: dict[str, Column]) -> int:
    """
    Compare two row views under the sort keys, in priority order.
    Returns -1, 0 or 1. Keys on unknown columns are skipped.
    """
    for key in keys:
        column = columns.get(key.column_id)
        if column is None:
            continue
        result = _compare_values(a.get(key.column_id), b.get(key.column_id), column.type)
        if result != 0:
            return -result if key.direction == "desc" else result
    return 0


def sort_rows(rows: Iterable[GridRow], keys: list[SortKey], columns: dict[str, Column]) -> list[GridRow]:
    """
    Stable sort. With no effective keys, or when all keys tie, input order
    is preserved.
    """
    rows = list(rows)
    active = [k for k in keys if k.column_id in columns]
    if not active:
        return rows
    views = {id(row): row.view() for row in rows}

    def _cmp(x: GridRow, y: GridRow) -> int:
        return compare(views[id(x)], views[id(y)], active, columns)

    return sorted(rows, key=cmp_to_key(_cmp))


def text_sort_key(value: Any) -> tuple[int, ...]:
    """Case-insensitive collation key: lowercase, then the root collation order."""
    text = "" if value is None else str(value)
    return _collator.sort_key(text.lower())


def _compare_values(x: Any, y: Any, column_type: str) -> int:
    if column_type == "NUMBER":
        left = float(x) if x is not None else 0.0
        right = float(y) if y is not None else 0.0
    else:
        left = text_sort_key(x)
        right = text_sort_key(y)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0
