"""
1:1 pairing of two source lists.

The longer list is walked once; the shorter list cycles by modulo.
"""

from typing import List, NamedTuple, Sequence, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class Pair(NamedTuple):
    """One pairing; ``index`` is the position in the longer-list walk."""

    a: object
    b: object
    index: int


def build_pairs(list_a: Sequence[T], list_b: Sequence[U]) -> List[Pair]:
    """
    Pair every item of the longer list with a cycled item of the shorter one.

    Example:
        build_pairs(["a1", "a2"], ["b1", "b2", "b3"])
        -> [("a1", "b1", 0), ("a2", "b2", 1), ("a1", "b3", 2)]

    Returns:
        ``max(len(list_a), len(list_b))`` pairs, or ``[]`` if either is empty
    """
    n = len(list_a)
    m = len(list_b)
    if n == 0 or m == 0:
        return []

    if m >= n:
        return [Pair(list_a[i % n], list_b[i], i) for i in range(m)]
    return [Pair(list_a[i], list_b[i % m], i) for i in range(n)]
