"""
Grid Engine — Sort Tests

Multi-key, stable sort over row views. Nulls sort as the type's zero.
"""

from engine.grid.sorting import compare, sort_rows
from engine.grid.types import Column, GridRow, NumberValue, SortKey, TextValue

NAME = Column(id="name", name="Name", type="TEXT", order=0)
AGE = Column(id="age", name="Age", type="NUMBER", order=1)
COLUMNS = {NAME.id: NAME, AGE.id: AGE}


def _row(order, name, age):
    return GridRow(id=f"r{order}", order=order, cells={"name": TextValue(name), "age": NumberValue(age)})


def _names(rows):
    return [r.cells["name"].value for r in rows]


class TestCompare:
    def test_single_key(self):
        assert compare({"age": 1.0}, {"age": 2.0}, [SortKey("age")], COLUMNS) == -1
        assert compare({"age": 2.0}, {"age": 1.0}, [SortKey("age")], COLUMNS) == 1
        assert compare({"age": 2.0}, {"age": 2.0}, [SortKey("age")], COLUMNS) == 0

    def test_desc_inverts(self):
        assert compare({"age": 1.0}, {"age": 2.0}, [SortKey("age", "desc")], COLUMNS) == 1

    def test_text_is_case_insensitive(self):
        assert compare({"name": "alice"}, {"name": "Alice"}, [SortKey("name")], COLUMNS) == 0

    def test_nulls_as_zero(self):
        """Null number sorts as 0, null text as ""."""
        assert compare({"age": None}, {"age": 0.0}, [SortKey("age")], COLUMNS) == 0
        assert compare({"age": None}, {"age": -1.0}, [SortKey("age")], COLUMNS) == 1
        assert compare({"name": None}, {"name": "a"}, [SortKey("name")], COLUMNS) == -1

    def test_unknown_column_skipped(self):
        keys = [SortKey("gone"), SortKey("age")]
        assert compare({"age": 1.0}, {"age": 2.0}, keys, COLUMNS) == -1


class TestSortRows:
    def test_secondary_key_breaks_ties(self):
        """Age desc, then Name asc."""
        rows = [
            _row(0, "Carol", 30.0),
            _row(1, "Alice", 30.0),
            _row(2, "Bob", 40.0),
            _row(3, "Dave", 20.0),
        ]
        result = sort_rows(rows, [SortKey("age", "desc"), SortKey("name", "asc")], COLUMNS)
        assert _names(result) == ["Bob", "Alice", "Carol", "Dave"]

    def test_stable_on_full_ties(self):
        rows = [_row(0, "x", 1.0), _row(1, "y", 1.0), _row(2, "z", 1.0)]
        result = sort_rows(rows, [SortKey("age")], COLUMNS)
        assert [r.order for r in result] == [0, 1, 2]

    def test_no_keys_keeps_input_order(self):
        rows = [_row(2, "b", 1.0), _row(0, "a", 2.0)]
        assert sort_rows(rows, [], COLUMNS) == rows

    def test_does_not_touch_stored_order(self):
        rows = [_row(0, "b", 1.0), _row(1, "a", 2.0)]
        result = sort_rows(rows, [SortKey("name")], COLUMNS)
        assert [r.order for r in result] == [1, 0]
        assert [r.order for r in rows] == [0, 1]


class TestCollation:
    def test_accented_letters_sort_with_their_base_letter(self):
        rows = [_row(0, "zebra", 1.0), _row(1, "éclair", 1.0), _row(2, "Fig", 1.0), _row(3, "eagle", 1.0)]
        result = sort_rows(rows, [SortKey("name")], COLUMNS)
        assert _names(result) == ["eagle", "éclair", "Fig", "zebra"]

    def test_uppercase_accents_fold_like_lowercase(self):
        assert compare({"name": "Éclair"}, {"name": "éclair"}, [SortKey("name")], COLUMNS) == 0
        assert compare({"name": "Éclair"}, {"name": "zebra"}, [SortKey("name")], COLUMNS) == -1
