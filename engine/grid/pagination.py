"""
Grid Engine — Pagination / Cursor Store

Holds the single logical row sequence assembled from successive page
fetches. Mutations are limited to:
- append (a page arrived for the current query)
- point update of one cell (an optimistic edit, or the empty cells of a
  newly created column)
- a wholesale reset when filter/sort/search change

Every fetch is issued against a ticket carrying the query snapshot and a
generation number. A page whose ticket is stale on arrival is discarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from engine.grid.types import CellValue, GridRow, Page, QuerySnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchTicket:
    """Identifies one in-flight page request."""

    generation: int
    snapshot: QuerySnapshot
    cursor: str | None


class PageStore:
    """Append-only row sequence with cursor and in-flight tracking."""

    def __init__(self, snapshot: QuerySnapshot | None = None) -> None:
        self.rows: list[GridRow] = []
        self.snapshot = snapshot or QuerySnapshot()
        self.next_cursor: str | None = None
        self.total_count: int | None = None
        self.started = False
        self.generation = 0
        self._in_flight: FetchTicket | None = None
        self._ids: set[str] = set()

    # -- state --

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    @property
    def has_next_page(self) -> bool:
        """True before the first page, then whenever the last page handed back a cursor."""
        return not self.started or self.next_cursor is not None

    def __len__(self) -> int:
        return len(self.rows)

    # -- fetch lifecycle --

    def begin_fetch(self) -> FetchTicket | None:
        """
        Claim the next fetch. Returns None (a no-op) when a fetch is already
        in flight or there is nothing left to load.
        """
        if self._in_flight is not None or not self.has_next_page:
            return None
        ticket = FetchTicket(
            generation=self.generation,
            snapshot=self.snapshot,
            cursor=self.next_cursor if self.started else None,
        )
        self._in_flight = ticket
        return ticket

    def is_current(self, ticket: FetchTicket) -> bool:
        return ticket.generation == self.generation and ticket.snapshot == self.snapshot

    def complete(self, ticket: FetchTicket, page: Page) -> bool:
        """
        Append a fetched page. Returns False if the ticket is stale and the
        page was discarded.
        """
        if self._in_flight is ticket:
            self._in_flight = None
        if not self.is_current(ticket):
            logger.warning(
                "pagination: discarding stale page (generation %d, current %d)",
                ticket.generation,
                self.generation,
            )
            return False

        appended = 0
        for row in page.rows:
            if row.id in self._ids:
                continue
            self._ids.add(row.id)
            self.rows.append(row)
            appended += 1

        self.started = True
        self.next_cursor = page.next_cursor
        if page.total_count is not None:
            self.total_count = page.total_count
        logger.info(
            "pagination: appended %d rows (%d loaded, more=%s)",
            appended,
            len(self.rows),
            self.next_cursor is not None,
        )
        return True

    def fail(self, ticket: FetchTicket) -> None:
        """Release the in-flight guard after a failed fetch."""
        if self._in_flight is ticket:
            self._in_flight = None

    def reset(self, snapshot: QuerySnapshot) -> None:
        """Drop everything loaded and restart from the first page under new conditions."""
        self.generation += 1
        self.snapshot = snapshot
        self.rows = []
        self._ids = set()
        self.next_cursor = None
        self.total_count = None
        self.started = False
        # Any fetch still running belongs to the old generation and will be discarded.
        self._in_flight = None
        logger.info("pagination: reset (generation %d)", self.generation)

    # -- scrolling --

    def should_fetch_more(self, last_visible_index: int, lookahead: int, loaded: int | None = None) -> bool:
        """
        Whether the visible window is within `lookahead` rows of the loaded
        end. `loaded` overrides the row count when the rendered sequence is a
        locally filtered view of the loaded rows.
        """
        if self._in_flight is not None or not self.has_next_page:
            return False
        count = len(self.rows) if loaded is None else loaded
        return last_visible_index >= count - lookahead

    # -- point updates --

    def find_by_order(self, order: int) -> GridRow | None:
        for row in self.rows:
            if row.order == order:
                return row
        return None

    def update_cell(self, order: int, column_id: str, value: CellValue) -> bool:
        """Replace one cell in place. Returns False if the row is not loaded."""
        row = self.find_by_order(order)
        if row is None:
            return False
        row.cells[column_id] = value
        return True

    def add_empty_column(self, column_id: str, value: CellValue) -> None:
        """Mirror a newly created column: one empty cell on every loaded row."""
        for row in self.rows:
            row.cells.setdefault(column_id, value)

    def reopen_tail(self) -> bool:
        """
        Rows were appended to the table after the last page was loaded.
        Point the cursor at the last loaded row so the next fetch picks them
        up. Returns False when a fetch is running or pages remain anyway.
        """
        if self._in_flight is not None or self.has_next_page:
            return False
        if self.rows:
            self.next_cursor = self.rows[-1].id
        else:
            self.started = False
        return True
