"""
Fair Merge - Bounded round-robin interleaving of ranked result lists.

Each round gives every list an equal share of the remaining budget. A list
that returns fewer items than its share leaves the rest for the next round.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

__all__ = ["fair_merge"]

T = TypeVar("T")


def fair_merge(lists: Sequence[Sequence[T]], budget: int) -> list[T]:
    """
    Merge ranked lists into one list of at most ``budget`` items.

    Args:
        lists: Ranked lists in source registration order
        budget: Maximum number of items to return

    Returns:
        Items taken round by round; each list's internal order is preserved

    Example:
        >>> fair_merge([["a0", "a1"], ["b0", "b1", "b2", "b3"]], 5)
        ['a0', 'a1', 'b0', 'b1', 'b2']
    """
    results: list[T] = []
    # Empty lists still count towards the first round's share.
    remaining = [list(items) for items in lists]

    while remaining and budget >= 1:
        share = max(1, budget // len(remaining))
        leftovers: list[list[T]] = []

        for items in remaining:
            taken = items[: min(share, budget)]
            results.extend(taken)
            budget -= len(taken)

            # share is at least 1, so the budget can run out partway through a round.
            if budget <= 0:
                return results

            if len(items) > len(taken):
                leftovers.append(items[len(taken):])

        remaining = leftovers

    return results
