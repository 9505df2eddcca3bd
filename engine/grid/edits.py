"""
Grid Engine — Cell Edit State Machine

Per-cell lifecycle for optimistic editing:

    idle -> pending -> saving -> synced -> idle
                             +-> error  -> idle | pending

- idle:    displayed value equals the last committed value
- pending: the user typed something different; no request issued yet
- saving:  a write for the value captured at blur is in flight
- synced:  write confirmed; reverts to idle after a short display window
- error:   validation or write failed; after the display window the cell
           returns to idle if the value matches the committed one, otherwise
           to pending (the typed value is kept and the next blur retries)

Writes happen only on blur, only when the value differs from the committed
one, and never overlap for the same cell: a blur during `saving` waits for
the running write to finish first.

Row and column creation use the smaller MutationTracker: one in-flight
request at a time, with the same synced/error display window.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from engine.grid.types import CellValue, GridError, ValidationError
from engine.grid.values import coerce_cell_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DISPLAY_WINDOW = 1.5


class EditStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SYNCED = "synced"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Cell edits
# ---------------------------------------------------------------------------


class CellEdit:
    """
    Edit record for one (row order, column) cell.

    `write` is the persistence call; it receives the coerced value and
    raises a GridError on failure.
    """

    def __init__(
        self,
        row_order: int,
        column_id: str,
        column_type: str,
        committed: str,
        *,
        display_window: float = DEFAULT_DISPLAY_WINDOW,
        on_change: Callable[[CellEdit], None] | None = None,
    ) -> None:
        self.row_order = row_order
        self.column_id = column_id
        self.column_type = column_type
        self.committed = committed
        self.value = committed
        self.status = EditStatus.IDLE
        self.error: str | None = None
        self.display_window = display_window
        self.on_change = on_change
        self._lock = asyncio.Lock()
        self._settle_task: asyncio.Task | None = None

    @property
    def key(self) -> tuple[int, str]:
        return (self.row_order, self.column_id)

    @property
    def is_dirty(self) -> bool:
        return self.value != self.committed

    # -- transitions --

    def _set(self, status: EditStatus) -> None:
        if status == self.status:
            return
        logger.debug("edit %s: %s -> %s", self.key, self.status.value, status.value)
        self.status = status
        if self.on_change is not None:
            self.on_change(self)

    def input(self, value: str) -> None:
        """A keystroke. Tracks the local value; no request is issued."""
        self.value = value
        if self.status == EditStatus.SAVING:
            return
        self._cancel_settle()
        self.error = None
        self._set(EditStatus.PENDING if self.is_dirty else EditStatus.IDLE)

    async def blur(self, write: Callable[[CellValue], Awaitable[Any]]) -> bool:
        """
        Focus left the cell. Persists the current value if it differs from
        the committed one. Returns True if a write was confirmed.
        """
        async with self._lock:
            if not self.is_dirty:
                if self.status == EditStatus.PENDING:
                    self._set(EditStatus.IDLE)
                return False

            target = self.value
            try:
                cell_value = coerce_cell_value(self.column_type, target)
            except ValidationError as e:
                self._fail(str(e))
                return False

            self._cancel_settle()
            self.error = None
            self._set(EditStatus.SAVING)
            try:
                await write(cell_value)
            except GridError as e:
                logger.warning("edit %s: write failed: %s", self.key, e)
                self._fail(str(e))
                return False

            self.committed = target
            self._set(EditStatus.SYNCED)
            self._schedule_settle()
            return True

    def revert(self) -> None:
        """Abandon local changes and show the committed value again."""
        self._cancel_settle()
        self.value = self.committed
        self.error = None
        self._set(EditStatus.IDLE)

    async def settled(self) -> None:
        """Wait for a pending synced/error display window to elapse."""
        if self._settle_task is not None:
            await asyncio.shield(self._settle_task)

    # -- internals --

    def _fail(self, message: str) -> None:
        self.error = message
        self._set(EditStatus.ERROR)
        self._schedule_settle()

    def _schedule_settle(self) -> None:
        self._cancel_settle()
        self._settle_task = asyncio.create_task(self._settle_after_window())

    def _cancel_settle(self) -> None:
        if self._settle_task is not None and not self._settle_task.done():
            self._settle_task.cancel()
        self._settle_task = None

    async def _settle_after_window(self) -> None:
        await asyncio.sleep(self.display_window)
        if self.status in (EditStatus.SYNCED, EditStatus.ERROR):
            self._set(EditStatus.PENDING if self.is_dirty else EditStatus.IDLE)


# ---------------------------------------------------------------------------
# Row / column creation
# ---------------------------------------------------------------------------


class MutationTracker:
    """
    idle -> saving -> {synced, error} -> idle for a non-cancellable mutation.
    While saving, further submissions are ignored.
    """

    def __init__(self, name: str, *, display_window: float = DEFAULT_DISPLAY_WINDOW) -> None:
        self.name = name
        self.status = EditStatus.IDLE
        self.error: str | None = None
        self.display_window = display_window
        self._settle_task: asyncio.Task | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == EditStatus.SAVING

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T | None:
        """
        Run the mutation unless one is already in flight.
        Returns its result, or None if skipped or failed (see `error`).
        """
        if self.is_pending:
            logger.debug("%s: already in flight, ignoring", self.name)
            return None
        if self._settle_task is not None and not self._settle_task.done():
            self._settle_task.cancel()
        self.error = None
        self.status = EditStatus.SAVING
        try:
            result = await operation()
        except GridError as e:
            logger.warning("%s failed: %s", self.name, e)
            self.error = str(e)
            self.status = EditStatus.ERROR
            self._settle_task = asyncio.create_task(self._settle())
            return None
        self.status = EditStatus.SYNCED
        self._settle_task = asyncio.create_task(self._settle())
        return result

    async def settled(self) -> None:
        if self._settle_task is not None:
            await asyncio.shield(self._settle_task)

    async def _settle(self) -> None:
        await asyncio.sleep(self.display_window)
        if self.status in (EditStatus.SYNCED, EditStatus.ERROR):
            self.status = EditStatus.IDLE
