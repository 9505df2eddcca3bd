"""HTTP GridStore: drives a GridController against the table API."""

from __future__ import annotations

from typing import Any

import httpx

from engine.grid.store import GridStore
from engine.grid.types import (
    Column,
    Filter,
    GridRow,
    NotFound,
    Page,
    SortKey,
    TableInfo,
    TransientIOError,
    Unauthorized,
    ValidationError,
)


class HttpGridStore(GridStore):
    """GridStore over the REST API, authenticated by session cookie."""

    def __init__(
        self,
        api_url: str,
        session: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=30.0)
        if session:
            self.client.cookies.set("session", session)
        # Column types per table, so rows decode into the right slot.
        self._columns: dict[str, list[Column]] = {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.api_url}{path}"
        try:
            res = await self.client.request(method, url, headers={"Accept": "application/json"}, **kwargs)
        except httpx.TransportError as e:
            raise TransientIOError(f"{method} {path}: {e}") from e
        _raise_for_status(res)
        return res.json()

    async def _columns_for(self, table_id: str) -> list[Column]:
        if table_id not in self._columns:
            await self.get_table(table_id)
        return self._columns[table_id]

    async def get_table(self, table_id: str) -> TableInfo:
        data = await self._request("GET", f"/api/tables/{table_id}")
        table = TableInfo.from_dict(data)
        self._columns[table_id] = table.columns
        return table

    async def get_rows(self, table_id: str, limit: int, cursor: str | None = None) -> Page:
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        data = await self._request("GET", f"/api/tables/{table_id}/rows", params=params)
        columns = await self._columns_for(table_id)
        return Page(
            rows=[GridRow.from_dict(r, columns) for r in data["rows"]],
            next_cursor=data.get("next_cursor"),
        )

    async def get_rows_with_operations(
        self,
        table_id: str,
        limit: int,
        cursor: str | None,
        filters: list[Filter],
        sort: list[SortKey],
        search: str,
    ) -> Page:
        body = {
            "limit": limit,
            "cursor": cursor,
            "filters": [f.to_dict() for f in filters],
            "sort": [k.to_dict() for k in sort],
            "search": search,
        }
        data = await self._request("POST", f"/api/tables/{table_id}/rows/query", json=body)
        columns = await self._columns_for(table_id)
        return Page(
            rows=[GridRow.from_dict(r, columns) for r in data["rows"]],
            next_cursor=data.get("next_cursor"),
            total_count=data.get("total_count"),
        )

    async def add_column(self, table_id: str, name: str, type: str) -> Column:
        data = await self._request("POST", f"/api/tables/{table_id}/columns", json={"name": name, "type": type})
        column = Column.from_dict(data)
        self._columns.setdefault(table_id, []).append(column)
        return column

    async def add_row(self, table_id: str) -> str:
        data = await self._request("POST", f"/api/tables/{table_id}/rows")
        return str(data["id"])

    async def add_fake_rows(self, table_id: str, row_count: int) -> int:
        data = await self._request("POST", f"/api/tables/{table_id}/fake-rows", json={"row_count": row_count})
        return int(data["count"])

    async def update_cell(self, table_id: str, row_order: int, column_id: str, value: str) -> None:
        await self._request(
            "PATCH",
            f"/api/tables/{table_id}/cells",
            json={"row_index": row_order, "column_id": column_id, "value": value},
        )

    async def close(self) -> None:
        await self.client.aclose()


def _raise_for_status(res: httpx.Response) -> None:
    """Map an error response onto the grid error taxonomy."""
    if res.is_success:
        return
    detail = _detail(res)
    if res.status_code in (400, 422):
        raise ValidationError(detail)
    if res.status_code == 404:
        raise NotFound(detail)
    if res.status_code in (401, 403):
        raise Unauthorized(detail)
    raise TransientIOError(f"HTTP {res.status_code}: {detail}")


def _detail(res: httpx.Response) -> str:
    try:
        body = res.json()
    except ValueError:
        return res.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)
