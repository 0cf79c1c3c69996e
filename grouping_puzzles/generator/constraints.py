from abc import ABC, abstractmethod
from collections import Counter
from typing import Optional

from grouping_puzzles.bank import GroupBank
from grouping_puzzles.models import Puzzle
from grouping_puzzles.score import overlap_score


class Constraint(ABC):
    @abstractmethod
    def check(self, puzzle: Puzzle, bank: GroupBank) -> bool:
        pass

    @property
    def name(self) -> str:
        return type(self).__name__


class OverlapBand(Constraint):
    """Rejects pools that are too easy (little overlap) or too ambiguous (lots of it)."""

    def __init__(self, min_overlap: Optional[int] = None, max_overlap: Optional[int] = None):
        self.min_overlap = min_overlap
        self.max_overlap = max_overlap

    def check(self, puzzle: Puzzle, bank: GroupBank) -> bool:
        score = overlap_score(puzzle.pool, bank)

        if self.min_overlap is not None and score < self.min_overlap:
            return False
        if self.max_overlap is not None and score > self.max_overlap:
            return False

        return True


class UsesDimension(Constraint):
    def __init__(self, dimension: str, min_count: int = 1):
        self.dimension = dimension
        self.min_count = min_count

    def check(self, puzzle: Puzzle, bank: GroupBank) -> bool:
        count = sum(1 for g in puzzle.groups if g.dimension == self.dimension)
        return count >= self.min_count

    @property
    def name(self) -> str:
        return f"UsesDimension({self.dimension})"


class MaxGroupsPerDimension(Constraint):
    def __init__(self, max_count: int):
        self.max_count = max_count

    def check(self, puzzle: Puzzle, bank: GroupBank) -> bool:
        counts = Counter(g.dimension for g in puzzle.groups)
        return max(counts.values()) <= self.max_count
