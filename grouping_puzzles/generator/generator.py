import multiprocessing
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from joblib import effective_n_jobs

from grouping_puzzles.bank import GroupBank
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.generator.budget import SearchBudget
from grouping_puzzles.generator.constraints import Constraint
from grouping_puzzles.models import GROUP_COUNT, POOL_SIZE, Group, Puzzle, Rule
from grouping_puzzles.rules import Predicate, predicate_for
from grouping_puzzles.solver import Solver, confirms
from grouping_puzzles.validation import validate_puzzle


class AttemptStatus(Enum):
    ACCEPTED = "ACCEPTED"
    INFEASIBLE = "INFEASIBLE"
    TIMEOUT = "TIMEOUT"
    NOT_UNIQUE = "NOT_UNIQUE"
    BAD_POOL = "BAD_POOL"
    LOW_DIVERSITY = "LOW_DIVERSITY"
    INVALID = "INVALID"
    REJECTED_CONSTRAINT = "REJECTED_CONSTRAINT"


@dataclass
class AttemptResult:
    status: AttemptStatus
    puzzle: Puzzle | None = None
    groups: tuple[Group, ...] = ()
    steps: int = 0
    failing_constraint: str | None = None


@dataclass
class GenerationStats:
    puzzles_successfully_generated: int = 0
    puzzles_rejected_infeasible: int = 0
    puzzles_rejected_timeout: int = 0
    puzzles_rejected_not_unique: int = 0
    puzzles_rejected_bad_pool: int = 0
    puzzles_rejected_low_diversity: int = 0
    puzzles_rejected_invalid: int = 0
    puzzles_rejected_constraints: int = 0
    rejections_per_constraint: dict[str, int] = field(default_factory=dict)

    @property
    def total_attempts(self) -> int:
        return (
            self.puzzles_successfully_generated
            + self.puzzles_rejected_infeasible
            + self.puzzles_rejected_timeout
            + self.puzzles_rejected_not_unique
            + self.puzzles_rejected_bad_pool
            + self.puzzles_rejected_low_diversity
            + self.puzzles_rejected_invalid
            + self.puzzles_rejected_constraints
        )

    def record(self, result: AttemptResult) -> None:
        counter = {
            AttemptStatus.ACCEPTED: "puzzles_successfully_generated",
            AttemptStatus.INFEASIBLE: "puzzles_rejected_infeasible",
            AttemptStatus.TIMEOUT: "puzzles_rejected_timeout",
            AttemptStatus.NOT_UNIQUE: "puzzles_rejected_not_unique",
            AttemptStatus.BAD_POOL: "puzzles_rejected_bad_pool",
            AttemptStatus.LOW_DIVERSITY: "puzzles_rejected_low_diversity",
            AttemptStatus.INVALID: "puzzles_rejected_invalid",
            AttemptStatus.REJECTED_CONSTRAINT: "puzzles_rejected_constraints",
        }[result.status]
        setattr(self, counter, getattr(self, counter) + 1)
        if result.failing_constraint is not None:
            self.rejections_per_constraint[result.failing_constraint] = (
                self.rejections_per_constraint.get(result.failing_constraint, 0) + 1
            )

    def merge(self, other: "GenerationStats") -> None:
        self.puzzles_successfully_generated += other.puzzles_successfully_generated
        self.puzzles_rejected_infeasible += other.puzzles_rejected_infeasible
        self.puzzles_rejected_timeout += other.puzzles_rejected_timeout
        self.puzzles_rejected_not_unique += other.puzzles_rejected_not_unique
        self.puzzles_rejected_bad_pool += other.puzzles_rejected_bad_pool
        self.puzzles_rejected_low_diversity += other.puzzles_rejected_low_diversity
        self.puzzles_rejected_invalid += other.puzzles_rejected_invalid
        self.puzzles_rejected_constraints += other.puzzles_rejected_constraints
        for name, val in other.rejections_per_constraint.items():
            self.rejections_per_constraint[name] = self.rejections_per_constraint.get(name, 0) + val


@dataclass
class GenerationSettings:
    min_dimensions: int = 3
    max_steps: int | None = 20000
    time_limit_seconds: float | None = 5.0
    candidate_limit: int | None = None
    prefer_rare_values: bool = True
    strict_cross_check: bool = True
    dimension_priority: dict[str, int] = field(default_factory=dict)
    constraints: list[Constraint] = field(default_factory=list)


@dataclass(frozen=True)
class SearchState:
    selected: tuple[Group, ...]
    used_dimensions: frozenset[str]
    remaining_pool: frozenset[int]
    candidates: tuple[Group, ...]
    locked: frozenset[int] = frozenset()


class Generator:
    """
    Builds puzzles by picking groups one at a time. After each pick, every entity
    outside the group that satisfies the group's rule is pruned from the pool, so
    no entity left in the pool could also belong to an already chosen group.
    A finished selection is only accepted once the solver confirms it is the
    single exact cover of its pool.
    """

    def __init__(self, catalog: Catalog, bank: GroupBank, settings: GenerationSettings | None = None):
        self.catalog = catalog
        self.bank = bank.restrict_to(catalog.ids)
        self.settings = settings if settings is not None else GenerationSettings()
        self.solver = Solver(self.bank)
        self._predicates: dict[Rule, Predicate] = {}
        self._rule_frequency: dict[Rule, int] = {}
        for group in self.bank:
            if group.rule not in self._rule_frequency:
                predicate = self._predicate(group.rule)
                self._rule_frequency[group.rule] = sum(1 for e in catalog if predicate(e))

    def __getstate__(self) -> dict[str, Any]:
        # Predicates are closures and cannot be pickled into worker processes
        state = self.__dict__.copy()
        state["_predicates"] = {}
        return state

    def _predicate(self, rule: Rule) -> Predicate:
        predicate = self._predicates.get(rule)
        if predicate is None:
            predicate = predicate_for(rule)
            self._predicates[rule] = predicate
        return predicate

    def order_candidates(self, rng: random.Random) -> list[Group]:
        """
        Shuffled bank, stably sorted so that high priority dimensions and rare values come
        first: they prune more of the pool per pick.
        """
        groups = list(self.bank.groups)
        rng.shuffle(groups)

        priority = self.settings.dimension_priority
        if self.settings.prefer_rare_values:
            groups.sort(key=lambda g: (priority.get(g.dimension, 0), self._rule_frequency[g.rule]))
        else:
            groups.sort(key=lambda g: priority.get(g.dimension, 0))

        if self.settings.candidate_limit is not None:
            groups = groups[: self.settings.candidate_limit]
        return groups

    def generate(
        self,
        seed: int | None = None,
        max_attempts: int = 100,
        _stats: GenerationStats | None = None,
    ) -> tuple[Puzzle | None, GenerationStats]:
        rng = random.Random(seed)
        stats = _stats if _stats is not None else GenerationStats()

        while max_attempts == -1 or stats.total_attempts < max_attempts:
            result = self.generate_attempt(rng)
            stats.record(result)
            if result.status == AttemptStatus.ACCEPTED:
                return result.puzzle, stats

        return None, stats

    def generate_attempt(self, rng: random.Random) -> AttemptResult:
        budget = SearchBudget(
            max_steps=self.settings.max_steps,
            time_limit_seconds=self.settings.time_limit_seconds,
        )
        initial = SearchState(
            selected=(),
            used_dimensions=frozenset(),
            remaining_pool=self.catalog.ids,
            candidates=tuple(self.order_candidates(rng)),
        )

        groups = self._search(initial, budget)
        if groups is None:
            status = AttemptStatus.TIMEOUT if budget.exhausted else AttemptStatus.INFEASIBLE
            return AttemptResult(status=status, steps=budget.steps)

        result = self._accept(groups)
        result.steps = budget.steps
        return result

    def _search(self, state: SearchState, budget: SearchBudget) -> tuple[Group, ...] | None:
        if len(state.selected) == GROUP_COUNT:
            return state.selected

        slots_after = GROUP_COUNT - len(state.selected) - 1
        for candidate in state.candidates:
            if not self._is_eligible(state, candidate, slots_after):
                continue
            if budget.tick():
                return None

            child = self._select(state, candidate)
            if len(child.remaining_pool) < POOL_SIZE or len(child.candidates) < slots_after:
                continue

            found = self._search(child, budget)
            if found is not None:
                return found

        return None

    def _is_eligible(self, state: SearchState, candidate: Group, slots_after: int) -> bool:
        members = candidate.member_set
        if not members <= state.remaining_pool:
            return False
        if not members.isdisjoint(state.locked):
            return False

        # Diversity floor must still be reachable with the slots left after this pick
        dimensions_after = len(state.used_dimensions | {candidate.dimension})
        if dimensions_after + slots_after < self.settings.min_dimensions:
            return False

        if self.settings.strict_cross_check:
            predicate = self._predicate(candidate.rule)
            if any(predicate(self.catalog[i]) for i in state.locked):
                return False

        return True

    def _select(self, state: SearchState, candidate: Group) -> SearchState:
        predicate = self._predicate(candidate.rule)
        locked = state.locked | candidate.member_set

        # Keep every locked member; drop anything else that fits this group's rule
        remaining = frozenset(
            i for i in state.remaining_pool if i in locked or not predicate(self.catalog[i])
        )
        candidates = tuple(
            c
            for c in state.candidates
            if c.id != candidate.id and c.member_set <= remaining and c.member_set.isdisjoint(locked)
        )
        return SearchState(
            selected=state.selected + (candidate,),
            used_dimensions=state.used_dimensions | {candidate.dimension},
            remaining_pool=remaining,
            candidates=candidates,
            locked=locked,
        )

    def _accept(self, groups: tuple[Group, ...]) -> AttemptResult:
        pool: set[int] = set()
        for group in groups:
            pool |= group.member_set

        if len(pool) != POOL_SIZE:
            return AttemptResult(status=AttemptStatus.BAD_POOL, groups=groups)

        if len({g.dimension for g in groups}) < self.settings.min_dimensions:
            return AttemptResult(status=AttemptStatus.LOW_DIVERSITY, groups=groups)

        if not self.pruning_holds(groups):
            return AttemptResult(status=AttemptStatus.INVALID, groups=groups)

        puzzle = Puzzle.from_groups(groups)

        # The solver is the only judge of uniqueness
        solve_result = self.solver.solve(puzzle.pool)
        if not confirms(solve_result, groups):
            return AttemptResult(status=AttemptStatus.NOT_UNIQUE, groups=groups)

        if not validate_puzzle(puzzle, self.catalog).is_valid:
            return AttemptResult(status=AttemptStatus.INVALID, groups=groups)

        failing_constraint = self._get_failing_constraint(puzzle, self.settings.constraints)
        if failing_constraint is not None:
            return AttemptResult(
                status=AttemptStatus.REJECTED_CONSTRAINT,
                groups=groups,
                failing_constraint=failing_constraint.name,
            )

        return AttemptResult(status=AttemptStatus.ACCEPTED, puzzle=puzzle, groups=groups)

    def pruning_holds(self, groups: tuple[Group, ...] | list[Group]) -> bool:
        """No entity of the puzzle satisfies the rule of a group it is not in."""
        pool: set[int] = set()
        for group in groups:
            pool |= group.member_set

        for group in groups:
            predicate = self._predicate(group.rule)
            for entity_id in pool - group.member_set:
                if predicate(self.catalog[entity_id]):
                    return False
        return True

    def _get_failing_constraint(self, puzzle: Puzzle, constraints: list[Constraint]) -> Constraint | None:
        for c in constraints:
            if not c.check(puzzle, self.bank):
                return c
        return None

    def generate_many(
        self,
        count: int,
        seed: int | None = None,
        n_jobs: int = 1,
        max_attempts: int = 100,
        timeout_seconds: int = 600,
    ) -> tuple[list[Puzzle], GenerationStats]:
        """
        Runs independent single-attempt tasks, each with its own seed, until `count`
        distinct puzzles are accepted or `max_attempts` attempts have been made.
        """
        base_seed = seed if seed is not None else random.SystemRandom().randrange(2**32)
        n_workers = effective_n_jobs(n_jobs)
        puzzles: list[Puzzle] = []
        seen: set[frozenset[str]] = set()
        total_stats = GenerationStats()
        last_logged_attempts = 0
        next_task = 0

        def collect(res_puzzle: Puzzle | None, res_stats: GenerationStats) -> None:
            nonlocal last_logged_attempts
            total_stats.merge(res_stats)
            if res_puzzle is not None and res_puzzle.group_ids not in seen:
                seen.add(res_puzzle.group_ids)
                puzzles.append(res_puzzle)

            if total_stats.total_attempts >= (last_logged_attempts + 10):
                print(
                    f"[Generator] Attempts: {total_stats.total_attempts} | Generated: {len(puzzles)}/{count} | "
                    f"Rejected (I:{total_stats.puzzles_rejected_infeasible}, "
                    f"U:{total_stats.puzzles_rejected_not_unique}, "
                    f"C:{total_stats.puzzles_rejected_constraints}, "
                    f"T:{total_stats.puzzles_rejected_timeout})"
                )
                last_logged_attempts = total_stats.total_attempts

        if n_workers == 1:
            while len(puzzles) < count and next_task < max_attempts:
                collect(*self.generate(seed=base_seed + next_task, max_attempts=1))
                next_task += 1
            return puzzles, total_stats

        # Use multiprocessing.Pool to allow immediate termination of workers
        pool = multiprocessing.Pool(processes=n_workers)
        pending_results: list[tuple[float, Any]] = []

        def submit() -> None:
            nonlocal next_task
            pending_results.append(
                (
                    time.time(),
                    pool.apply_async(self.generate, kwds={"seed": base_seed + next_task, "max_attempts": 1}),
                )
            )
            next_task += 1

        try:
            for _ in range(min(n_workers, max_attempts)):
                submit()

            while len(puzzles) < count and pending_results:
                completed_indices = []
                now = time.time()
                for i, (start_time, res) in enumerate(pending_results):
                    if res.ready():
                        completed_indices.append(i)
                    elif now - start_time > timeout_seconds:
                        print(f"[Generator] Task timed out after {timeout_seconds}s")
                        completed_indices.append(i)

                if not completed_indices:
                    time.sleep(0.05)
                    continue

                for i in sorted(completed_indices, reverse=True):
                    start_time, res = pending_results.pop(i)
                    if not res.ready():
                        timeout_stats = GenerationStats()
                        timeout_stats.puzzles_rejected_timeout += 1
                        collect(None, timeout_stats)
                    else:
                        collect(*res.get())

                    if len(puzzles) < count and next_task < max_attempts:
                        submit()

        finally:
            pool.terminate()
            pool.join()

        return puzzles[:count], total_stats
