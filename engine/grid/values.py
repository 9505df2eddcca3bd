"""
Grid Engine — Cell Value Model

Turns a raw user-entered string into a typed cell write, and a typed cell
back into the string the grid displays.
"""

from __future__ import annotations

import math
from typing import Any

from engine.grid.types import CellValue, NumberValue, TextValue, ValidationError


def parse_number(raw: str) -> float | None:
    """
    Parse a string as a finite float. Returns None if it does not parse.
    Surrounding whitespace is ignored; partial numbers ("12abc") are rejected.
    """
    try:
        number = float(raw.strip())
    except (ValueError, AttributeError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_cell_value(column_type: str, raw: str) -> CellValue:
    """
    Normalize a raw input for a column of the given type.

    TEXT:   the string as typed (empty string allowed).
    NUMBER: empty -> NumberValue(None); otherwise a float.

    Raises:
        ValidationError: NUMBER input that does not parse. Nothing should be
            persisted in that case.
    """
    if column_type == "NUMBER":
        if raw == "":
            return NumberValue(None)
        number = parse_number(raw)
        if number is None:
            raise ValidationError("invalid number format")
        return NumberValue(number)
    if column_type == "TEXT":
        return TextValue(raw)
    raise ValidationError(f"unknown column type: {column_type}")


def to_slots(value: CellValue) -> tuple[str | None, float | None]:
    """(text_value, number_value) for storage. The inactive slot is always None."""
    if isinstance(value, NumberValue):
        return None, value.value
    return value.value, None


def format_number(number: float) -> str:
    """35.0 -> "35", 12.5 -> "12.5"."""
    if number.is_integer():
        return str(int(number))
    return repr(number)


def display_value(value: CellValue | Any) -> str:
    """
    The string rendered in the grid: the active slot, or "" when empty.
    Accepts a CellValue or an already projected scalar.
    """
    scalar = value.value if isinstance(value, (TextValue, NumberValue)) else value
    if scalar is None:
        return ""
    if isinstance(scalar, float):
        return format_number(scalar)
    return str(scalar)
