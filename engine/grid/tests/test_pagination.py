"""
Grid Engine — Pagination Tests

PageStore assembles pages into one row sequence:
  - one fetch in flight at a time
  - pages fetched under outdated conditions are discarded
  - duplicate rows across pages are dropped
"""

from engine.grid.pagination import PageStore
from engine.grid.types import Filter, GridRow, Page, QuerySnapshot, TextValue


def _rows(start, count):
    return [GridRow(id=f"r{i}", order=i, cells={"c": TextValue(str(i))}) for i in range(start, start + count)]


class TestFetchLifecycle:
    def test_first_fetch_has_no_cursor(self):
        pages = PageStore()
        ticket = pages.begin_fetch()
        assert ticket is not None
        assert ticket.cursor is None
        assert pages.in_flight

    def test_second_begin_while_in_flight_is_a_no_op(self):
        pages = PageStore()
        assert pages.begin_fetch() is not None
        assert pages.begin_fetch() is None

    def test_pages_append_in_order(self):
        pages = PageStore()
        ticket = pages.begin_fetch()
        pages.complete(ticket, Page(rows=_rows(0, 3), next_cursor="r2"))

        ticket = pages.begin_fetch()
        assert ticket.cursor == "r2"
        pages.complete(ticket, Page(rows=_rows(3, 2), next_cursor=None))

        assert [r.order for r in pages.rows] == [0, 1, 2, 3, 4]
        assert not pages.has_next_page
        assert pages.begin_fetch() is None

    def test_duplicates_dropped(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 3), next_cursor="r2"))
        pages.complete(pages.begin_fetch(), Page(rows=_rows(2, 3), next_cursor=None))
        assert [r.id for r in pages.rows] == ["r0", "r1", "r2", "r3", "r4"]

    def test_failed_fetch_releases_guard(self):
        pages = PageStore()
        ticket = pages.begin_fetch()
        pages.fail(ticket)
        assert not pages.in_flight
        assert pages.begin_fetch() is not None

    def test_total_count_recorded(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 1), total_count=42))
        assert pages.total_count == 42


class TestStalePages:
    def test_page_after_reset_is_discarded(self):
        pages = PageStore()
        old = pages.begin_fetch()
        pages.reset(QuerySnapshot(search="x"))

        assert not pages.complete(old, Page(rows=_rows(0, 5)))
        assert pages.rows == []
        assert pages.has_next_page

    def test_reset_allows_new_fetch_immediately(self):
        pages = PageStore()
        pages.begin_fetch()
        pages.reset(QuerySnapshot(filters=(Filter("c", "equals", "1"),)))
        ticket = pages.begin_fetch()
        assert ticket is not None
        assert ticket.snapshot.filters[0].value == "1"


class TestScrolling:
    def test_should_fetch_more_within_lookahead(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 10), next_cursor="r9"))
        assert not pages.should_fetch_more(4, lookahead=5)
        assert pages.should_fetch_more(5, lookahead=5)

    def test_no_fetch_when_exhausted(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 10)))
        assert not pages.should_fetch_more(9, lookahead=5)

    def test_loaded_override(self):
        """A locally filtered view may be shorter than the loaded rows."""
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 100), next_cursor="r99"))
        assert not pages.should_fetch_more(2, lookahead=10)
        assert pages.should_fetch_more(2, lookahead=10, loaded=5)


class TestPointUpdates:
    def test_update_cell_by_order(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 3)))
        assert pages.update_cell(1, "c", TextValue("new"))
        assert pages.find_by_order(1).cells["c"] == TextValue("new")
        assert not pages.update_cell(99, "c", TextValue("x"))

    def test_add_empty_column(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 3)))
        pages.add_empty_column("d", TextValue(None))
        assert all(r.cells["d"] == TextValue(None) for r in pages.rows)

    def test_reopen_tail(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 3)))
        assert pages.reopen_tail()
        ticket = pages.begin_fetch()
        assert ticket.cursor == "r2"

    def test_reopen_tail_when_more_pages_remain(self):
        pages = PageStore()
        pages.complete(pages.begin_fetch(), Page(rows=_rows(0, 3), next_cursor="r2"))
        assert not pages.reopen_tail()
