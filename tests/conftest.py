from typing import Any

import pytest

from grouping_puzzles.bank import Dimension, GroupBank, build_group_bank
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.models import RuleKind

DIMENSIONS = [
    Dimension(name="type", attribute="types"),
    Dimension(name="habitat", attribute="habitat"),
    Dimension(name="color", attribute="color"),
    Dimension(name="egg", attribute="eggGroups"),
]


def clean_records() -> list[dict[str, Any]]:
    """16 entities forming exactly one group per dimension, with no shared categories."""
    records: list[dict[str, Any]] = []
    for i in range(1, 5):
        records.append({"id": i, "name": f"fire{i}", "types": ["fire"]})
    for i in range(5, 9):
        records.append({"id": i, "name": f"forest{i}", "habitat": "forest"})
    for i in range(9, 13):
        records.append({"id": i, "name": f"blue{i}", "color": "blue"})
    for i in range(13, 17):
        records.append({"id": i, "name": f"dragon{i}", "eggGroups": ["dragon"]})
    return records


@pytest.fixture
def dimensions() -> list[Dimension]:
    return list(DIMENSIONS)


@pytest.fixture
def clean_catalog() -> Catalog:
    return Catalog.from_records(clean_records())


@pytest.fixture
def clean_bank(clean_catalog: Catalog, dimensions: list[Dimension]) -> GroupBank:
    return build_group_bank(clean_catalog, dimensions)


@pytest.fixture
def twin_catalog() -> Catalog:
    # fire1..fire4 are also the only red entities: two rules select the same 4 members
    records = clean_records()
    for record in records[:4]:
        record["color"] = "red"
    return Catalog.from_records(records)


@pytest.fixture
def speed_dimension() -> Dimension:
    return Dimension(
        name="speed",
        attribute="baseStats.speed",
        rule=RuleKind.ATTRIBUTE_AT_LEAST,
        values=(100,),
    )


@pytest.fixture
def rich_catalog() -> Catalog:
    # Twice as many fire and forest entities as a puzzle can use
    records = clean_records()
    records += [{"id": i, "name": f"fire{i}", "types": ["fire"]} for i in range(17, 21)]
    records += [{"id": i, "name": f"forest{i}", "habitat": "forest"} for i in range(21, 25)]
    return Catalog.from_records(records)


@pytest.fixture
def rich_bank(rich_catalog: Catalog, dimensions: list[Dimension]) -> GroupBank:
    return build_group_bank(rich_catalog, dimensions)
