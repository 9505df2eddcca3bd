"""
Grid Engine — Cell Value Tests

Parsing raw input into typed cells and rendering cells back to text.
"""

import pytest

from engine.grid.types import NumberValue, TextValue, ValidationError
from engine.grid.values import coerce_cell_value, display_value, parse_number, to_slots

# ============================================================================
# parse_number
# ============================================================================


class TestParseNumber:
    def test_integer(self):
        assert parse_number("42") == 42.0

    def test_decimal_with_whitespace(self):
        assert parse_number("  12.5 ") == 12.5

    def test_negative_and_exponent(self):
        assert parse_number("-3") == -3.0
        assert parse_number("1e3") == 1000.0

    def test_rejects_partial_number(self):
        """"12abc" is not a number, even though it starts with one."""
        assert parse_number("12abc") is None

    def test_rejects_words_and_empty(self):
        assert parse_number("abc") is None
        assert parse_number("") is None

    def test_rejects_non_finite(self):
        assert parse_number("inf") is None
        assert parse_number("nan") is None


# ============================================================================
# coerce_cell_value
# ============================================================================


class TestCoerce:
    def test_text_kept_verbatim(self):
        assert coerce_cell_value("TEXT", "  hello ") == TextValue("  hello ")

    def test_text_empty_string_allowed(self):
        assert coerce_cell_value("TEXT", "") == TextValue("")

    def test_number_parsed(self):
        assert coerce_cell_value("NUMBER", "12.5") == NumberValue(12.5)

    def test_number_empty_clears(self):
        """Empty input on a NUMBER column stores null."""
        assert coerce_cell_value("NUMBER", "") == NumberValue(None)

    def test_number_invalid_raises(self):
        with pytest.raises(ValidationError, match="invalid number format"):
            coerce_cell_value("NUMBER", "abc")

    def test_unknown_type_raises(self):
        with pytest.raises(ValidationError):
            coerce_cell_value("DATE", "2024-01-01")


# ============================================================================
# Storage slots and display
# ============================================================================


class TestSlotsAndDisplay:
    def test_number_uses_number_slot_only(self):
        assert to_slots(NumberValue(12.5)) == (None, 12.5)

    def test_text_uses_text_slot_only(self):
        assert to_slots(TextValue("x")) == ("x", None)

    def test_empty_cells_display_blank(self):
        assert display_value(TextValue(None)) == ""
        assert display_value(NumberValue(None)) == ""

    def test_whole_numbers_drop_fraction(self):
        assert display_value(NumberValue(35.0)) == "35"

    def test_fractions_kept(self):
        assert display_value(NumberValue(12.5)) == "12.5"

    def test_accepts_projected_scalars(self):
        assert display_value(7.0) == "7"
        assert display_value("Alice") == "Alice"
        assert display_value(None) == ""
