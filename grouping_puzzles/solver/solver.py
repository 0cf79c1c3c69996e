from typing import Iterable

from grouping_puzzles.bank import GroupBank
from grouping_puzzles.models import GROUP_COUNT, Group, SolveResult


class Solver:
    """
    Counts exact covers of a pool by GROUP_COUNT disjoint bank groups.

    Only groups fully contained in the pool are considered, and the search stops
    once max_solutions covers are found: telling "exactly one" apart from
    "more than one" never needs the full count.
    """

    def __init__(self, bank: GroupBank, max_solutions: int = 2):
        if max_solutions < 1:
            raise ValueError("max_solutions must be at least 1")
        self.bank = bank
        self.max_solutions = max_solutions

    def solve(self, pool: Iterable[int]) -> SolveResult:
        pool_set = frozenset(pool)
        candidates = self.bank.groups_within(pool_set)
        if len(candidates) < GROUP_COUNT:
            return SolveResult(is_unique=False, solutions=[])

        # Bit per pool entity, so disjointness and coverage are integer ops
        bit = {entity_id: 1 << i for i, entity_id in enumerate(sorted(pool_set))}
        full_mask = (1 << len(pool_set)) - 1
        masks = []
        for group in candidates:
            mask = 0
            for member in group.members:
                mask |= bit[member]
            masks.append(mask)

        solutions: list[tuple[str, ...]] = []
        chosen: list[Group] = []

        def search(start: int, used: int) -> bool:
            if len(chosen) == GROUP_COUNT:
                if used == full_mask:
                    solutions.append(tuple(g.id for g in chosen))
                    return len(solutions) >= self.max_solutions
                return False

            for i in range(start, len(candidates)):
                if masks[i] & used:
                    continue
                chosen.append(candidates[i])
                done = search(i + 1, used | masks[i])
                chosen.pop()
                if done:
                    return True
            return False

        search(0, 0)
        return SolveResult(is_unique=len(solutions) == 1, solutions=solutions)


def count_solutions(pool: Iterable[int], bank: GroupBank, max_solutions: int = 2) -> SolveResult:
    return Solver(bank, max_solutions=max_solutions).solve(pool)


def confirms(result: SolveResult, groups: Iterable[Group]) -> bool:
    """True when the result is unique and its single cover is exactly these groups."""
    if not result.is_unique:
        return False
    return set(result.solutions[0]) == {g.id for g in groups}
