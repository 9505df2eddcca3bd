"""
Query compiler: filter/sort/search conditions -> parameterised SQL.

Each referenced column gets one LEFT JOIN onto `cells`. Values always travel
as $n parameters; only aliases and fixed SQL fragments are interpolated.

The rules mirror engine.grid.filters / engine.grid.sorting:
- TEXT null compares as "", case-insensitive
- NUMBER equals/greaterThan/lessThan never match null; notEquals does
- sort nulls as the type's zero, ties broken by row order
- TEXT sorts under the ICU root collation, the order pyuca computes in memory
- inapplicable filters are dropped
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from engine.grid.filters import is_applicable
from engine.grid.types import Column, Filter, SortKey

TEXT_COLLATION = '"und-x-icu"'
from engine.grid.values import parse_number


@dataclass
class CompiledQuery:
    """
    page_sql takes `params` + [cursor, limit]; count_sql takes `params` only.
    Pages are fetched with limit + 1 so the caller can tell whether more exist.
    """

    page_sql: str
    count_sql: str
    params: list[Any] = field(default_factory=list)


class _Builder:
    def __init__(self, table_id: Any) -> None:
        self.params: list[Any] = [table_id]
        self.joins: list[str] = []
        self.aliases: dict[str, str] = {}

    def param(self, value: Any) -> str:
        self.params.append(value)
        return f"${len(self.params)}"

    def alias(self, column_id: str) -> str:
        alias = self.aliases.get(column_id)
        if alias is None:
            alias = f"c{len(self.aliases)}"
            self.aliases[column_id] = alias
            placeholder = self.param(column_id)
            self.joins.append(f"LEFT JOIN cells {alias} ON {alias}.row_id = r.id AND {alias}.column_id = {placeholder}")
        return alias


def compile_rows_query(
    table_id: Any,
    columns: dict[str, Column],
    filters: list[Filter],
    sort: list[SortKey],
    search: str,
) -> CompiledQuery:
    """
    Build the page and count queries for one table.

    Args:
        table_id: Table UUID ($1)
        columns: The table's columns by id. Filters and sort keys on other ids are ignored.
        filters: Conjunction of filters
        sort: Sort keys in priority order
        search: Case-insensitive substring over every cell's display value

    Returns:
        CompiledQuery
    """
    b = _Builder(table_id)
    conditions = ["r.table_id = $1"]

    for f in filters:
        if not is_applicable(f, columns):
            continue
        column = columns[f.column_id]
        conditions.append(_filter_condition(b, b.alias(f.column_id), column.type, f))

    if search:
        placeholder = b.param(search.lower())
        conditions.append(
            "EXISTS (SELECT 1 FROM cells s WHERE s.row_id = r.id AND "
            f"strpos(lower(COALESCE(s.text_value, s.number_value::text, '')), {placeholder}) > 0)"
        )

    order_by: list[str] = []
    for key in sort:
        column = columns.get(key.column_id)
        if column is None:
            continue
        alias = b.alias(key.column_id)
        direction = "DESC" if key.direction == "desc" else "ASC"
        if column.type == "NUMBER":
            order_by.append(f"COALESCE({alias}.number_value, 0) {direction}")
        else:
            order_by.append(f"COALESCE(lower({alias}.text_value), '') COLLATE {TEXT_COLLATION} {direction}")
    order_by.append('r."order" ASC')

    joins = "\n".join(b.joins)
    where = " AND ".join(conditions)
    n = len(b.params)

    page_sql = f"""
        WITH ranked AS (
            SELECT r.id, r."order",
                   ROW_NUMBER() OVER (ORDER BY {", ".join(order_by)}) AS rn
            FROM rows r
            {joins}
            WHERE {where}
        )
        SELECT id, "order", rn
        FROM ranked
        WHERE rn > COALESCE((SELECT rn FROM ranked WHERE id = ${n + 1}), 0)
        ORDER BY rn
        LIMIT ${n + 2}
    """  # nosec B608

    count_sql = f"""
        SELECT count(*)
        FROM rows r
        {joins}
        WHERE {where}
    """  # nosec B608

    return CompiledQuery(page_sql=page_sql, count_sql=count_sql, params=b.params)


def _filter_condition(b: _Builder, alias: str, column_type: str, f: Filter) -> str:
    if column_type == "NUMBER":
        placeholder = b.param(parse_number(f.value))
        slot = f"{alias}.number_value"
        if f.type == "equals":
            return f"{slot} = {placeholder}"
        if f.type == "notEquals":
            return f"{slot} IS DISTINCT FROM {placeholder}"
        if f.type == "greaterThan":
            return f"{slot} > {placeholder}"
        return f"{slot} < {placeholder}"

    placeholder = b.param(f.value.lower())
    slot = f"COALESCE(lower({alias}.text_value), '')"
    if f.type == "equals":
        return f"{slot} = {placeholder}"
    if f.type == "notEquals":
        return f"{slot} <> {placeholder}"
    if f.type == "contains":
        return f"strpos({slot}, {placeholder}) > 0"
    return f"strpos({slot}, {placeholder}) = 0"
