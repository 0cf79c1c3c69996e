from collections import Counter
from typing import Iterable

from grouping_puzzles.bank import GroupBank


def membership_counts(pool: Iterable[int], bank: GroupBank) -> Counter[int]:
    """How many bank groups contained in the pool each pool entity belongs to."""
    pool_set = set(pool)
    counts: Counter[int] = Counter({entity_id: 0 for entity_id in pool_set})
    for group in bank.groups_within(pool_set):
        counts.update(group.members)
    return counts


def overlap_score(pool: Iterable[int], bank: GroupBank) -> int:
    """
    Number of pool entities that belong to two or more candidate groups within the pool.
    Higher values mean more red herrings; zero means every entity has a single home.
    """
    return sum(1 for count in membership_counts(pool, bank).values() if count >= 2)
