import logging
import math
from pathlib import Path

import pytest

from grouping_puzzles.bank import (
    ConfigError,
    Dimension,
    GroupBank,
    build_group_bank,
    dimension_priorities,
    group_id,
    load_dimensions,
)
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.models import RuleKind, SchemaError


def _fire_catalog(n: int) -> Catalog:
    return Catalog.from_records([{"id": i, "name": f"mon{i}", "types": ["fire"]} for i in range(1, n + 1)])


def test_build_enumerates_all_four_subsets() -> None:
    bank = build_group_bank(_fire_catalog(6), [Dimension(name="type", attribute="types")])

    assert len(bank) == math.comb(6, 4)
    assert all(g.dimension == "type" and g.rule.value == "fire" for g in bank)
    assert len({g.member_set for g in bank}) == len(bank)


def test_build_skips_values_with_fewer_than_four_entities() -> None:
    bank = build_group_bank(_fire_catalog(3), [Dimension(name="type", attribute="types")])
    assert len(bank) == 0


def test_group_ids_are_content_derived() -> None:
    assert group_id("type", "fire", [7, 3, 12, 1]) == "type:fire:1-3-7-12"

    catalog = _fire_catalog(5)
    dims = [Dimension(name="type", attribute="types")]
    first = build_group_bank(catalog, dims)
    second = build_group_bank(catalog, dims)

    assert [g.id for g in first] == [g.id for g in second]
    assert [g.members for g in first] == [g.members for g in second]
    assert "type:fire:1-2-3-4" in first


def test_build_covers_every_dimension(clean_catalog: Catalog, dimensions: list[Dimension]) -> None:
    bank = build_group_bank(clean_catalog, dimensions)

    assert sorted(g.id for g in bank) == [
        "color:blue:9-10-11-12",
        "egg:dragon:13-14-15-16",
        "habitat:forest:5-6-7-8",
        "type:fire:1-2-3-4",
    ]
    assert bank.get("type:fire:1-2-3-4").name == "Type: fire"


def test_threshold_dimension(speed_dimension: Dimension) -> None:
    catalog = Catalog.from_records(
        [{"id": i, "name": f"mon{i}", "baseStats": {"speed": 90 + 5 * i}} for i in range(1, 7)]
    )
    bank = build_group_bank(catalog, [speed_dimension])

    # speeds 95..120, five of them at least 100
    assert len(bank) == math.comb(5, 4)
    assert all(1 not in g.members for g in bank)


def test_max_groups_per_value() -> None:
    bank = build_group_bank(_fire_catalog(8), [Dimension(name="type", attribute="types")], max_groups_per_value=3)
    assert len(bank) == 3


def test_max_total_groups_prefers_rare_values() -> None:
    records = [{"id": i, "name": f"mon{i}", "types": ["water"]} for i in range(1, 9)]
    records += [{"id": i, "name": f"mon{i}", "types": ["ice"]} for i in range(9, 13)]
    catalog = Catalog.from_records(records)

    bank = build_group_bank(catalog, [Dimension(name="type", attribute="types")], max_total_groups=2)

    assert len(bank) == 2
    assert bank.groups[0].rule.value == "ice"


def test_unknown_rule_kind_is_logged_not_fatal(caplog: pytest.LogCaptureFixture) -> None:
    dims = [
        Dimension.from_dict({"name": "evo", "rule": "evolutionStage", "attribute": "evoStage"}),
        Dimension(name="type", attribute="types"),
    ]
    with caplog.at_level(logging.WARNING):
        bank = build_group_bank(_fire_catalog(4), dims)

    assert len(bank) == 1
    assert dims[0].rule == RuleKind.UNKNOWN
    assert "evolutionStage" in caplog.text


def test_groups_within_and_entity_index(clean_bank: GroupBank) -> None:
    within = clean_bank.groups_within(range(1, 13))
    assert sorted(g.id for g in within) == [
        "color:blue:9-10-11-12",
        "habitat:forest:5-6-7-8",
        "type:fire:1-2-3-4",
    ]

    index = clean_bank.entity_index()
    assert index[1] == ["type:fire:1-2-3-4"]
    assert len(index) == 16
    assert [g.id for g in clean_bank.groups_for_entity(13)] == ["egg:dragon:13-14-15-16"]
    assert clean_bank.groups_for_entity(99) == ()


def test_restrict_to_drops_groups_outside(clean_bank: GroupBank) -> None:
    restricted = clean_bank.restrict_to(range(1, 9))
    assert len(restricted) == 2
    assert clean_bank.dimensions() == {"type": 1, "habitat": 1, "color": 1, "egg": 1}


def test_bank_rejects_duplicate_ids(clean_bank: GroupBank) -> None:
    records = clean_bank.to_records()
    with pytest.raises(SchemaError, match="Duplicate"):
        GroupBank.from_records(records + records[:1])


def test_load_dimensions(tmp_path: Path) -> None:
    config = tmp_path / "dimensions.yaml"
    config.write_text(
        "- name: type\n"
        "  attribute: types\n"
        "- name: speed\n"
        "  rule: attribute-at-least\n"
        "  attribute: baseStats.speed\n"
        "  values: [100]\n"
        "  priority: 3\n",
        encoding="utf-8",
    )
    dims = load_dimensions(config)

    assert [d.name for d in dims] == ["type", "speed"]
    assert dims[0].rule == RuleKind.ATTRIBUTE_EQUALS
    assert dims[0].values is None
    assert dims[1].values == (100,)
    assert dimension_priorities(dims) == {"type": 0, "speed": 3}


def test_load_default_dimensions() -> None:
    dims = load_dimensions()
    assert "type" in {d.name for d in dims}


@pytest.mark.parametrize(
    "content",
    [
        "name: type\n",
        "- attribute: types\n",
        "- name: speed\n  rule: attribute-at-least\n  attribute: speed\n",
        "- name: type\n- name: type\n",
        "- name: [unclosed\n",
    ],
)
def test_load_dimensions_rejects_malformed_files(tmp_path: Path, content: str) -> None:
    config = tmp_path / "dimensions.yaml"
    config.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_dimensions(config)
