"""Block-range helpers for the tailing loop and range scans.

All intervals are inclusive on both ends: [start, end].
"""

from __future__ import annotations

from collections.abc import Generator


def batch_bounds(cursor: int, head: int, batch_size: int) -> tuple[int, int]:
    """Return the inclusive range starting at `cursor`, at most `batch_size` long, capped at `head`."""
    return cursor, min(cursor + batch_size - 1, head)


def iter_chunks(a: int, b: int, step: int) -> Generator[tuple[int, int], None, None]:
    """Yield inclusive [start, end] block ranges of size at most `step`."""
    x = a
    while x <= b:
        y = min(b, x + step - 1)
        yield (x, y)
        x = y + 1
