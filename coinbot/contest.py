"""Solutions to a handful of short programming-contest problems."""

from __future__ import annotations

import math
import string
from collections.abc import Iterable, Sequence
from itertools import compress, pairwise, product

_LUNCH_LIMIT = 2 * 10**9
_INT64_MIN = -(1 << 63)


def count_matching_lengths(lines: Iterable[str]) -> int:
    """Count the first twelve lines whose length equals their 1-based number."""
    items = list(lines)
    if len(items) < 12:
        raise ValueError(f"expected at least 12 lines, got {len(items)}")
    return sum(
        1 for expected, line in enumerate(items[:12], start=1) if len(line) == expected
    )


def min_max_lunch_group(weights: Iterable[int]) -> int:
    """Split ``weights`` into two groups minimising the larger group's total."""
    items = list(weights)
    total = sum(items)
    best = _LUNCH_LIMIT
    for mask in product((False, True), repeat=len(items)):
        group_a = sum(compress(items, mask))
        best = min(best, max(group_a, total - group_a))
    return best


def ends_with_san(text: str) -> bool:
    """True if ``text`` ends with the honorific "san"."""
    return text.endswith("san")


def first_difference(first: str, second: str) -> int:
    """1-based position of the first differing character, 0 if equal.

    When one string is a prefix of the other, the position just past the
    shorter one is returned.
    """
    if first == second:
        return 0
    for position, (a, b) in enumerate(zip(first, second), start=1):
        if a != b:
            return position
    return min(len(first), len(second)) + 1


def keyboard_distance(layout: str) -> int:
    """Distance a finger travels typing A to Z on a one-row ``layout``."""
    positions = {char: pos for pos, char in enumerate(layout, start=1)}
    return sum(
        abs(positions.get(b, 0) - positions.get(a, 0))
        for a, b in pairwise(string.ascii_uppercase)
    )


def max_pair_sum(first: Iterable[int | str], second: Iterable[int | str]) -> int:
    """Largest ``a + b`` with ``a`` from ``first`` and ``b`` from ``second``.

    Numbers may be given as decimal strings; the result never falls below
    the smallest 64-bit integer.
    """
    left = [int(v) for v in first]
    right = [int(v) for v in second]
    if not left or not right:
        return _INT64_MIN
    return max(_INT64_MIN, max(left) + max(right))


def tour_distance(points: Sequence[tuple[float, float]]) -> float:
    """Length of the path from the origin through ``points`` and back."""
    stops = [(float(x), float(y)) for x, y in points]
    if not stops:
        raise ValueError("at least one point is required")
    origin = (0.0, 0.0)
    return sum(math.dist(a, b) for a, b in pairwise([origin, *stops, origin]))