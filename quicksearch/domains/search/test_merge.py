"""
Tests for fair merging of ranked result lists.
"""

from __future__ import annotations

import pytest

from .merge import fair_merge


def _letters(prefix: str, count: int) -> list[str]:
    return [f"{prefix}{i}" for i in range(count)]


def test_equal_lists_share_budget_evenly() -> None:
    """Test three lists of ten with budget 9 give three items each."""
    lists = [_letters("a", 10), _letters("b", 10), _letters("c", 10)]

    assert fair_merge(lists, 9) == ["a0", "a1", "a2", "b0", "b1", "b2", "c0", "c1", "c2"]


def test_short_list_share_rolls_over() -> None:
    """Test unused share of a short list goes to the next round."""
    lists = [["a0", "a1"], _letters("b", 10)]

    assert fair_merge(lists, 5) == ["a0", "a1", "b0", "b1", "b2"]


def test_budget_runs_out_mid_round() -> None:
    """Test later lists get nothing once the budget is spent."""
    lists = [_letters("a", 5), _letters("b", 5), _letters("c", 5)]

    # share = max(1, 2 // 3) = 1: a0, b0, then the budget is gone.
    assert fair_merge(lists, 2) == ["a0", "b0"]


def test_empty_lists_count_towards_first_share() -> None:
    """Test empty lists shrink the first round's share."""
    lists = [[], _letters("b", 10)]

    # share = 4 // 2 = 2 in round one, then the rest in round two.
    assert fair_merge(lists, 4) == ["b0", "b1", "b2", "b3"]


@pytest.mark.parametrize(
    ("sizes", "budget"),
    [
        ((0, 0), 10),
        ((3, 7, 1), 5),
        ((3, 7, 1), 100),
        ((1,), 1),
        ((4, 4, 4, 4), 13),
    ],
)
def test_length_and_relative_order(sizes: tuple[int, ...], budget: int) -> None:
    """Test output length is min(budget, total) and order within lists holds."""
    lists = [_letters(chr(ord("a") + index), size) for index, size in enumerate(sizes)]

    merged = fair_merge(lists, budget)

    assert len(merged) == min(budget, sum(sizes))
    for items in lists:
        taken = [item for item in merged if item in items]
        assert taken == items[: len(taken)]


def test_no_lists_or_no_budget() -> None:
    """Test degenerate inputs return nothing."""
    assert fair_merge([], 10) == []
    assert fair_merge([["a0"]], 0) == []
    assert fair_merge([["a0"]], -1) == []
