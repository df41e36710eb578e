"""
Tests for balanced combination selection.

Pure functions only: no filesystem, no event loop.
"""

from collections import Counter

import pytest

from clipmill.generation.combinations import (
    SortSpec,
    cartesian_product,
    max_combinations,
    select_combinations,
    select_evenly_distributed,
    sort_combinations,
)


class TestMaxCombinations:

    def test_product_of_lengths(self):
        assert max_combinations([[1, 2, 3], [1, 2]]) == 6

    def test_no_sources(self):
        assert max_combinations([]) == 0

    def test_empty_source_zeroes_product(self):
        assert max_combinations([[1, 2], []]) == 0


class TestCartesianProduct:

    def test_first_source_outermost(self):
        assert cartesian_product([["a", "b"], ["x", "y"]]) == [(0, 0), (0, 1), (1, 0), (1, 1)]

    def test_single_source(self):
        assert cartesian_product([["a", "b", "c"]]) == [(0,), (1,), (2,)]


class TestSelectCombinations:
    """Selection count, exhaustiveness and balance."""

    def test_non_positive_count_is_empty(self):
        assert select_combinations([[1, 2], [1, 2]], 0) == []
        assert select_combinations([[1, 2], [1, 2]], -3) == []

    def test_malformed_sources_are_empty(self):
        assert select_combinations([], 5) == []
        assert select_combinations([[1, 2], []], 5) == []

    def test_count_above_product_returns_every_tuple_once(self):
        result = select_combinations([[0, 1], [0, 1]], 10)
        assert sorted(result) == [(0, 0), (0, 1), (1, 0), (1, 1)]
        assert len(set(result)) == 4

    def test_count_is_capped(self):
        sources = [[1, 2, 3], [1, 2], [1, 2]]
        for count in range(1, 15):
            assert len(select_combinations(sources, count)) == min(count, 12)

    def test_single_source_uses_distinct_items(self):
        result = select_combinations([["A", "B", "C"]], 2)
        assert len(result) == 2
        assert len(set(result)) == 2

    def test_greedy_order_and_tie_break(self):
        """Lowest load wins; ties go to the first tuple in product order."""
        result = select_evenly_distributed(cartesian_product([[0, 1, 2], [0, 1]]), 3)
        assert result == [(0, 0), (1, 1), (2, 0)]

    def test_usage_is_balanced(self):
        a = list(range(4))
        b = list(range(6))
        result = select_combinations([a, b], 12)

        a_usage = Counter(combo[0] for combo in result)
        b_usage = Counter(combo[1] for combo in result)
        assert max(a_usage.values()) - min(a_usage.values()) <= 1
        assert max(b_usage.values()) - min(b_usage.values()) <= 1
        assert set(b_usage) == set(b)

    def test_result_tuples_are_distinct(self):
        result = select_combinations([[1, 2, 3], [1, 2, 3], [1, 2]], 10)
        assert len(result) == len(set(result))

    def test_sort_applies_to_partial_selection(self):
        result = select_combinations([[0, 1, 2], [0, 1]], 3, SortSpec(priority=[1, 0]))
        assert result == [(0, 0), (2, 0), (1, 1)]


class TestSortCombinations:

    def test_descending_on_one_position(self):
        combos = [(0, 1), (1, 0), (0, 0), (1, 1)]
        order = SortSpec(priority=[0, 1], ascending=[False, True])
        assert sort_combinations(combos, order) == [(1, 0), (1, 1), (0, 0), (0, 1)]

    def test_short_direction_list_defaults_to_ascending(self):
        combos = [(1, 1), (1, 0), (0, 1)]
        order = SortSpec(priority=[0, 1], ascending=[True])
        assert sort_combinations(combos, order) == [(0, 1), (1, 0), (1, 1)]

    def test_out_of_range_positions_are_ignored(self):
        combos = [(2,), (0,), (1,)]
        assert sort_combinations(combos, SortSpec(priority=[5, 0])) == [(0,), (1,), (2,)]

    def test_sort_is_stable(self):
        combos = [(0, 2), (0, 0), (0, 1)]
        assert sort_combinations(combos, SortSpec(priority=[0])) == combos

    @pytest.mark.parametrize("ascending", [True, [True, True]])
    def test_bool_or_list_direction(self, ascending):
        combos = [(1, 0), (0, 1)]
        assert sort_combinations(combos, SortSpec(priority=[0], ascending=ascending)) == [(0, 1), (1, 0)]
