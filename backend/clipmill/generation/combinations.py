"""
Balanced multi-source combination selection.

Given N ordered source lists (e.g. cover images, A videos, B videos) pick a
requested number of index tuples, one index per source, so that every
source item is used as evenly as possible.

Algorithm:
- count >= product of list sizes: the full Cartesian product, in
  lexicographic index order (first source outermost).
- otherwise: greedy selection over the full product. Each round takes the
  unused tuple with the lowest load (sum of per-position usage counts).
  Ties go to the first tuple in product order, so low indices win ties.

Malformed input (no sources, an empty source, count <= 0) yields an empty
list, never an exception.
"""

import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from itertools import product
from math import prod
from typing import List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

CombinationTuple = Tuple[int, ...]


@dataclass(frozen=True)
class SortSpec:
    """
    Ordering applied to the selected tuples.

    Attributes:
        priority: Source positions to compare, most significant first
        ascending: One flag for every position, or one flag per priority entry
    """

    priority: List[int] = field(default_factory=list)
    ascending: Union[bool, List[bool]] = True

    def direction(self, i: int) -> bool:
        """Ascending flag for the i-th priority entry."""
        if isinstance(self.ascending, bool):
            return self.ascending
        if i < len(self.ascending):
            return bool(self.ascending[i])
        return True


def max_combinations(sources: Sequence[Sequence[object]]) -> int:
    """Size of the full Cartesian product of ``sources`` (0 when empty)."""
    if not sources:
        return 0
    return prod(len(source) for source in sources)


def cartesian_product(sources: Sequence[Sequence[object]]) -> List[CombinationTuple]:
    """
    Every index tuple over ``sources``, first source outermost.

    Returns:
        Tuples in lexicographic index order; empty if any source is empty
    """
    if not sources:
        return []
    return list(product(*(range(len(source)) for source in sources)))


def select_evenly_distributed(
    combinations: Sequence[CombinationTuple],
    count: int,
) -> List[CombinationTuple]:
    """
    Greedily pick ``count`` distinct tuples with the most even item usage.

    Args:
        combinations: Candidate tuples in product order
        count: Number of tuples wanted

    Returns:
        The selected tuples in selection order
    """
    if count <= 0 or not combinations:
        return []
    if len(combinations) <= count:
        return list(combinations)

    width = len(combinations[0])
    usage: List[List[int]] = []
    for position in range(width):
        highest = max(combo[position] for combo in combinations)
        usage.append([0] * (highest + 1))

    taken = [False] * len(combinations)
    results: List[CombinationTuple] = []

    for _ in range(count):
        best_idx = -1
        best_load = None

        for j, combo in enumerate(combinations):
            if taken[j]:
                continue
            load = sum(usage[k][combo[k]] for k in range(width))
            # Strictly lower only: the first tuple wins ties
            if best_load is None or load < best_load:
                best_load = load
                best_idx = j

        if best_idx < 0:
            break

        chosen = combinations[best_idx]
        taken[best_idx] = True
        results.append(chosen)
        for k in range(width):
            usage[k][chosen[k]] += 1

    return results


def sort_combinations(
    combinations: List[CombinationTuple],
    sort_spec: SortSpec,
) -> List[CombinationTuple]:
    """
    Stable sort of ``combinations`` by the positions named in ``sort_spec``.

    Positions outside the tuple width are ignored.
    """

    def compare(a: CombinationTuple, b: CombinationTuple) -> int:
        for i, position in enumerate(sort_spec.priority):
            if position < 0 or position >= len(a):
                continue
            if a[position] != b[position]:
                diff = a[position] - b[position]
                return diff if sort_spec.direction(i) else -diff
        return 0

    return sorted(combinations, key=cmp_to_key(compare))


def select_combinations(
    sources: Sequence[Sequence[object]],
    count: int,
    sort_spec: Optional[SortSpec] = None,
) -> List[CombinationTuple]:
    """
    Select ``count`` balanced index tuples across ``sources``.

    Args:
        sources: Ordered source lists; only their lengths matter
        count: Number of tuples requested
        sort_spec: Optional ordering applied to the result

    Returns:
        ``min(count, max_combinations)`` distinct tuples, or ``[]`` for
        malformed input
    """
    if count <= 0 or not sources:
        return []
    if any(not source for source in sources):
        return []

    total = max_combinations(sources)
    all_combinations = cartesian_product(sources)

    if count >= total:
        results = all_combinations
    else:
        results = select_evenly_distributed(all_combinations, count)

    if sort_spec is not None and sort_spec.priority:
        results = sort_combinations(results, sort_spec)

    logger.debug(
        f"[Combinations] Selected {len(results)} of {total} combinations "
        f"across {len(sources)} sources"
    )
    return results
