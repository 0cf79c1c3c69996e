from grouping_puzzles.bank import Dimension, GroupBank, build_group_bank
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.score import membership_counts, overlap_score


def test_overlap_score_is_zero_without_shared_members(clean_bank: GroupBank) -> None:
    assert overlap_score(range(1, 17), clean_bank) == 0


def test_overlap_score_counts_entities_in_two_or_more_groups(
    twin_catalog: Catalog, dimensions: list[Dimension]
) -> None:
    bank = build_group_bank(twin_catalog, dimensions)
    pool = range(1, 17)

    counts = membership_counts(pool, bank)
    assert counts[1] == 2  # Type: fire and Color: red
    assert counts[5] == 1
    assert overlap_score(pool, bank) == 4


def test_overlap_score_ignores_groups_outside_pool() -> None:
    records = [{"id": i, "name": f"mon{i}", "types": ["fire"]} for i in range(1, 6)]
    records += [{"id": i, "name": f"mon{i}"} for i in range(6, 18)]
    catalog = Catalog.from_records(records)
    bank = build_group_bank(catalog, [Dimension(name="type", attribute="types")])

    # Only one of the five fire groups lies in this pool
    pool = [1, 2, 3, 4] + list(range(6, 18))
    assert overlap_score(pool, bank) == 0
    # All five fire entities: every one of them is in several groups
    assert overlap_score([1, 2, 3, 4, 5] + list(range(6, 17)), bank) == 5
