"""Small arithmetic helpers."""

from __future__ import annotations

from collections.abc import Iterable


def average(values: Iterable[int]) -> int:
    """Integer mean, truncated toward zero.

    Raises ZeroDivisionError for an empty input.
    """
    items = list(values)
    if not items:
        raise ZeroDivisionError("average of an empty sequence")
    total = sum(items)
    quotient = abs(total) // len(items)
    return quotient if total >= 0 else -quotient