"""
Synthetic rows for load testing.

TEXT cells get 1-3 lorem words, NUMBER cells an integer in [1, 100].
"""

from __future__ import annotations

import random
import uuid
from collections.abc import Iterator

from engine.grid.types import Column, GridRow, NumberValue, TextValue, ValidationError

MAX_FAKE_ROWS = 50_000
BATCH_SIZE = 1000

LOREM_WORDS = (
    "lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua enim ad minim veniam quis nostrud "
    "exercitation ullamco laboris nisi aliquip ex ea commodo consequat duis aute irure "
    "in reprehenderit voluptate velit esse cillum fugiat nulla pariatur excepteur sint "
    "occaecat cupidatat non proident sunt culpa qui officia deserunt mollit anim id est"
).split()


def validate_row_count(row_count: int) -> None:
    if not 1 <= row_count <= MAX_FAKE_ROWS:
        raise ValidationError(f"row_count must be between 1 and {MAX_FAKE_ROWS}")


def generate_rows(
    columns: list[Column],
    row_count: int,
    start_order: int,
    rng: random.Random | None = None,
) -> list[GridRow]:
    """Build `row_count` rows with consecutive orders starting at `start_order`."""
    validate_row_count(row_count)
    rng = rng or random.Random()
    rows: list[GridRow] = []
    for i in range(row_count):
        cells = {}
        for col in columns:
            if col.type == "NUMBER":
                cells[col.id] = NumberValue(float(rng.randint(1, 100)))
            else:
                cells[col.id] = TextValue(" ".join(rng.choices(LOREM_WORDS, k=rng.randint(1, 3))))
        rows.append(GridRow(id=str(uuid.uuid4()), order=start_order + i, cells=cells))
    return rows


def batched(rows: list[GridRow], size: int = BATCH_SIZE) -> Iterator[list[GridRow]]:
    for i in range(0, len(rows), size):
        yield rows[i : i + size]
