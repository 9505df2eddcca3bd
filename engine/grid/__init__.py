"""
Grid Engine — the row/column data-grid core.

Components (leaf to root):
  values      — cell value model (typed parse / display)
  filters     — conjunctive per-column predicates, search
  sorting     — stable multi-key comparator
  pagination  — cursor-merged row sequence with stale-page guard
  edits       — per-cell optimistic edit state machine
  controller  — composes the above against an injected GridStore

Stores:
  MemoryGridStore (tests), HttpGridStore (client),
  backend.repos.table_repo.UserTableStore (Postgres)
"""

from engine.grid.controller import GridController, GridOptions
from engine.grid.edits import CellEdit, EditStatus, MutationTracker
from engine.grid.filters import filter_rows, matches, search_hits
from engine.grid.pagination import PageStore
from engine.grid.sorting import compare, sort_rows
from engine.grid.store import GridStore, MemoryGridStore
from engine.grid.types import (
    Column,
    Filter,
    GridError,
    GridRow,
    NotFound,
    NumberValue,
    SortKey,
    TextValue,
    TransientIOError,
    Unauthorized,
    ValidationError,
)
from engine.grid.values import coerce_cell_value, display_value

__all__ = [
    "GridController",
    "GridOptions",
    "CellEdit",
    "EditStatus",
    "MutationTracker",
    "matches",
    "filter_rows",
    "search_hits",
    "PageStore",
    "compare",
    "sort_rows",
    "GridStore",
    "MemoryGridStore",
    "Column",
    "Filter",
    "GridRow",
    "SortKey",
    "TextValue",
    "NumberValue",
    "GridError",
    "ValidationError",
    "NotFound",
    "Unauthorized",
    "TransientIOError",
    "coerce_cell_value",
    "display_value",
]
