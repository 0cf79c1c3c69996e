import time
from typing import Callable


class SearchBudget:
    """
    Step and wall-clock limit for one search, polled by the search itself at every
    recursion step. Once exhausted it stays exhausted.
    """

    def __init__(
        self,
        max_steps: int | None = None,
        time_limit_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_steps = max_steps
        self.clock = clock
        self.deadline = clock() + time_limit_seconds if time_limit_seconds is not None else None
        self.steps = 0
        self.exhausted = False

    def tick(self) -> bool:
        """Counts one step. Returns True if the budget is now exhausted."""
        if self.exhausted:
            return True
        self.steps += 1
        if self.max_steps is not None and self.steps > self.max_steps:
            self.exhausted = True
        elif self.deadline is not None and self.clock() >= self.deadline:
            self.exhausted = True
        return self.exhausted
