import itertools
import math
from typing import Iterator, Sequence, TypeVar

T = TypeVar("T")


def combinations(items: Sequence[T], k: int) -> Iterator[tuple[T, ...]]:
    """
    Yields every k-element subset of items exactly once, in lexicographic index order.
    Yields a single empty tuple for k == 0 and nothing when k > len(items).
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    return itertools.combinations(items, k)


def count_combinations(n: int, k: int) -> int:
    if k < 0 or k > n:
        return 0
    return math.comb(n, k)
