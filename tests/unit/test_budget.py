from grouping_puzzles.generator import SearchBudget


def test_step_limit() -> None:
    budget = SearchBudget(max_steps=3)

    assert [budget.tick() for _ in range(3)] == [False, False, False]
    assert budget.tick() is True
    assert budget.exhausted
    # Stays exhausted without counting further
    assert budget.tick() is True
    assert budget.steps == 4


def test_deadline_uses_clock() -> None:
    now = [100.0]
    budget = SearchBudget(time_limit_seconds=2.0, clock=lambda: now[0])

    assert budget.tick() is False
    now[0] = 101.9
    assert budget.tick() is False
    now[0] = 102.0
    assert budget.tick() is True


def test_unlimited_budget_never_exhausts() -> None:
    budget = SearchBudget()
    assert not any(budget.tick() for _ in range(1000))
    assert budget.steps == 1000
