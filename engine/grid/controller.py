"""
Grid Engine — Grid Controller

Owns one table's grid: columns, filter/sort/search state, the loaded row
sequence, per-cell edit records, and the row/column creation trackers.
All IO goes through the injected GridStore.

Filter/sort/search are evaluated by the store when it supports operations
(remote), otherwise over the loaded rows with the same pure functions
(local fallback). Either way the visible sequence is identical for the same
data.

Single-threaded: every method runs on the event loop. The only suspension
points are store calls.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from engine.grid.edits import DEFAULT_DISPLAY_WINDOW, CellEdit, EditStatus, MutationTracker
from engine.grid.fake_rows import validate_row_count
from engine.grid.filters import filter_rows, row_contains, search_hits
from engine.grid.pagination import FetchTicket, PageStore
from engine.grid.sorting import sort_rows
from engine.grid.store import GridStore
from engine.grid.types import (
    COLUMN_TYPES,
    CellValue,
    Column,
    Filter,
    GridError,
    GridRow,
    NotFound,
    Page,
    QuerySnapshot,
    SortKey,
    TableInfo,
    TransientIOError,
    Unauthorized,
    ValidationError,
    empty_value,
    normalize_sort_keys,
)
from engine.grid.values import display_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridOptions:
    page_size: int = 1000
    lookahead: int = 100
    debounce: float = 0.5
    display_window: float = DEFAULT_DISPLAY_WINDOW


@dataclass
class VisibleCell:
    """One cell handed to the renderer."""

    row_index: int
    row_order: int
    column_id: str
    display: str
    status: EditStatus = EditStatus.IDLE
    error: str | None = None
    highlighted: bool = False


@dataclass
class VisibleRow:
    row_index: int
    row: GridRow
    cells: list[VisibleCell] = field(default_factory=list)


class GridController:
    """The data-grid engine for one table."""

    def __init__(self, store: GridStore, table_id: str, options: GridOptions | None = None) -> None:
        self.store = store
        self.table_id = table_id
        self.options = options or GridOptions()

        self.table: TableInfo | None = None
        self.view_status = "loading"  # loading | ready | not_found | unauthorized
        self.last_error: str | None = None

        self.filters: list[Filter] = []
        self.sort: list[SortKey] = []
        self.search = ""

        self.pages = PageStore(self.snapshot())
        self.edits: dict[tuple[int, str], CellEdit] = {}
        self.add_row_state = MutationTracker("add_row", display_window=self.options.display_window)
        self.add_column_state = MutationTracker("add_column", display_window=self.options.display_window)
        self.bulk_state = MutationTracker("add_fake_rows", display_window=self.options.display_window)

        self._refresh_task: asyncio.Task | None = None
        self._fetch_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def remote(self) -> bool:
        return self.store.supports_operations

    @property
    def columns(self) -> list[Column]:
        return self.table.columns if self.table else []

    @property
    def columns_by_id(self) -> dict[str, Column]:
        return {c.id: c for c in self.columns}

    @property
    def has_operations(self) -> bool:
        return bool(self.filters or self.sort or self.search)

    def snapshot(self) -> QuerySnapshot:
        return QuerySnapshot(filters=tuple(self.filters), sort=tuple(self.sort), search=self.search)

    @property
    def rows(self) -> list[GridRow]:
        """The sequence the grid renders."""
        if self.remote:
            return self.pages.rows
        columns = self.columns_by_id
        rows = filter_rows(self.pages.rows, self.filters, columns)
        # Search narrows the sequence as the server-side query does (an EXISTS
        # over the row's cells), not only highlights; local and remote views
        # must list the same rows.
        if self.search:
            rows = [r for r in rows if row_contains(r.view(), self.search)]
        return sort_rows(rows, self.sort, columns)

    @property
    def highlights(self) -> set[tuple[int, str]]:
        """(row order, column_id) of loaded cells matching the search term."""
        return search_hits(self.pages.rows, self.search)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Fetch table metadata and the first page."""
        if not await self.reload_table():
            return
        self.pages.reset(self.snapshot())
        await self.fetch_next_page()

    async def reload_table(self) -> bool:
        try:
            self.table = await self.store.get_table(self.table_id)
        except NotFound as e:
            self._terminal("not_found", e)
            return False
        except Unauthorized as e:
            self._terminal("unauthorized", e)
            return False
        except TransientIOError as e:
            self.last_error = str(e)
            logger.warning("grid %s: table reload failed: %s", self.table_id, e)
            return False
        if self.view_status == "loading":
            self.view_status = "ready"
        return True

    async def fetch_next_page(self) -> bool:
        """
        Load the next page for the current conditions. A no-op while another
        fetch is in flight or when everything is loaded.
        Returns True if a page was appended.
        """
        ticket = self.pages.begin_fetch()
        if ticket is None:
            return False
        try:
            page = await self._fetch(ticket)
        except NotFound as e:
            self.pages.fail(ticket)
            self._terminal("not_found", e)
            return False
        except Unauthorized as e:
            self.pages.fail(ticket)
            self._terminal("unauthorized", e)
            return False
        except TransientIOError as e:
            self.pages.fail(ticket)
            self.last_error = str(e)
            logger.warning("grid %s: page fetch failed: %s", self.table_id, e)
            return False

        # A refresh while the request was in flight advanced the generation;
        # complete() drops the page then. Local-mode pages never depend on the
        # conditions, so a filter or sort change alone does not make them stale.
        return self.pages.complete(ticket, page)

    async def _fetch(self, ticket: FetchTicket) -> Page:
        if self.remote:
            snap = ticket.snapshot
            return await self.store.get_rows_with_operations(
                self.table_id,
                self.options.page_size,
                ticket.cursor,
                list(snap.filters),
                list(snap.sort),
                snap.search,
            )
        return await self.store.get_rows(self.table_id, self.options.page_size, ticket.cursor)

    def _terminal(self, status: str, error: Exception) -> None:
        logger.warning("grid %s: %s (%s)", self.table_id, status, error)
        self.view_status = status
        self.last_error = str(error)

    # ------------------------------------------------------------------
    # Filter / sort / search
    # ------------------------------------------------------------------

    def set_filters(self, filters: list[Filter]) -> None:
        self.filters = list(filters)
        self._schedule_refresh(self.options.debounce)

    def set_sort(self, keys: list[SortKey]) -> None:
        # Unknown directions sort ascending
        keys = [k if k.direction in ("asc", "desc") else SortKey(k.column_id, "asc") for k in keys]
        self.sort = normalize_sort_keys(keys)
        self._schedule_refresh(0)

    def set_search_term(self, term: str) -> None:
        self.search = term
        self._schedule_refresh(self.options.debounce)

    def _schedule_refresh(self, delay: float) -> None:
        if not self.remote:
            # Local mode derives the view from loaded rows; nothing to refetch.
            return
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = asyncio.create_task(self._refresh_after(delay))

    async def _refresh_after(self, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self.refresh()

    async def refresh(self) -> None:
        """Drop loaded rows and restart pagination from the first page."""
        self.pages.reset(self.snapshot())
        await self.fetch_next_page()

    async def flush(self) -> None:
        """Wait for a debounced refresh and any background page fetch."""
        for task in (self._refresh_task, self._fetch_task):
            if task is not None and not task.done():
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def visible_window(self, start: int, end: int) -> list[VisibleRow]:
        """
        Cells for rows [start, end] of the rendered sequence. Schedules the
        next page when `end` is within the lookahead of the loaded end.
        """
        rows = self.rows
        if self.pages.should_fetch_more(end, self.options.lookahead, loaded=len(rows)):
            if self._fetch_task is None or self._fetch_task.done():
                self._fetch_task = asyncio.create_task(self.fetch_next_page())

        hits = self.highlights if self.search else set()
        window: list[VisibleRow] = []
        for index in range(max(start, 0), min(end + 1, len(rows))):
            row = rows[index]
            visible = VisibleRow(row_index=index, row=row)
            for column in self.columns:
                edit = self.edits.get((row.order, column.id))
                cell = row.cells.get(column.id, empty_value(column.type))
                visible.cells.append(
                    VisibleCell(
                        row_index=index,
                        row_order=row.order,
                        column_id=column.id,
                        display=edit.value if edit else display_value(cell),
                        status=edit.status if edit else EditStatus.IDLE,
                        error=edit.error if edit else None,
                        highlighted=(row.order, column.id) in hits,
                    )
                )
            window.append(visible)
        return window

    # ------------------------------------------------------------------
    # Cell editing
    # ------------------------------------------------------------------

    def edit_cell(self, row_order: int, column_id: str) -> CellEdit:
        """The edit record for a cell, created on first use from the loaded value."""
        key = (row_order, column_id)
        edit = self.edits.get(key)
        if edit is not None:
            return edit
        column = self.columns_by_id.get(column_id)
        if column is None:
            raise NotFound("Column not found")
        row = self.pages.find_by_order(row_order)
        if row is None:
            raise NotFound("Row not found")
        committed = display_value(row.cells.get(column_id, empty_value(column.type)))
        edit = CellEdit(
            row_order,
            column_id,
            column.type,
            committed,
            display_window=self.options.display_window,
            on_change=self._on_edit_change,
        )
        self.edits[key] = edit
        return edit

    def input_cell(self, row_order: int, column_id: str, value: str) -> CellEdit:
        edit = self.edit_cell(row_order, column_id)
        edit.input(value)
        return edit

    async def blur_cell(self, row_order: int, column_id: str) -> bool:
        """Persist the cell if its value changed. Returns True on confirmed write."""
        edit = self.edits.get((row_order, column_id))
        if edit is None:
            return False

        async def write(value: CellValue) -> None:
            row = self.pages.find_by_order(row_order)
            previous = row.cells.get(column_id) if row else None
            self.pages.update_cell(row_order, column_id, value)
            try:
                await self.store.update_cell(self.table_id, row_order, column_id, display_value(value))
            except GridError:
                if previous is not None:
                    self.pages.update_cell(row_order, column_id, previous)
                raise

        confirmed = await edit.blur(write)
        if confirmed:
            logger.info("grid %s: cell (%d, %s) saved", self.table_id, row_order, column_id)
            await self.reload_table()
        return confirmed

    async def update_cell(self, row_order: int, column_id: str, value: str) -> CellEdit:
        """Type a whole value and blur."""
        edit = self.input_cell(row_order, column_id, value)
        await self.blur_cell(row_order, column_id)
        return edit

    def abandon_edit(self, row_order: int, column_id: str) -> None:
        edit = self.edits.get((row_order, column_id))
        if edit is not None:
            edit.revert()

    def _on_edit_change(self, edit: CellEdit) -> None:
        if edit.status == EditStatus.IDLE and not edit.is_dirty:
            self.edits.pop(edit.key, None)

    # ------------------------------------------------------------------
    # Structural mutations
    # ------------------------------------------------------------------

    async def add_column(self, name: str, type: str) -> Column | None:
        """
        Append a column. Raises ValidationError for an empty name or unknown
        type before any request. Returns None if the request failed or one
        is already in flight (see add_column_state).
        """
        if not name.strip():
            raise ValidationError("column name must not be empty")
        if type not in COLUMN_TYPES:
            raise ValidationError(f"unknown column type: {type}")
        column = await self.add_column_state.run(lambda: self.store.add_column(self.table_id, name, type))
        if column is None:
            return None
        self.pages.add_empty_column(column.id, empty_value(column.type))
        await self.reload_table()
        return column

    async def add_row(self) -> str | None:
        row_id = await self.add_row_state.run(lambda: self.store.add_row(self.table_id))
        if row_id is None:
            return None
        await self._load_appended_rows()
        return row_id

    async def add_fake_rows(self, row_count: int) -> int | None:
        validate_row_count(row_count)
        count = await self.bulk_state.run(lambda: self.store.add_fake_rows(self.table_id, row_count))
        if count is None:
            return None
        await self._load_appended_rows()
        return count

    async def _load_appended_rows(self) -> None:
        """
        New rows get the highest orders. Without active operations they sort
        last, so reopening the tail cursor appends them; otherwise their
        position is unknown and pagination restarts.
        """
        if self.remote and self.has_operations:
            await self.refresh()
            return
        if self.pages.reopen_tail():
            await self.fetch_next_page()
