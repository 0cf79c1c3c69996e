import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml

from grouping_puzzles.catalog import Catalog
from grouping_puzzles.models import GROUP_SIZE, Group, Rule, RuleKind, Scalar, SchemaError
from grouping_puzzles.rules import describe_rule, predicate_for
from grouping_puzzles.utils import combinations

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS_FILE = Path(__file__).parent.parent / "config" / "dimensions.yaml"


class ConfigError(ValueError):
    """Raised when a dimensions file is malformed."""


@dataclass(frozen=True)
class Dimension:
    """An attribute axis groups are built over, e.g. type or habitat."""

    name: str
    attribute: str
    rule: RuleKind = RuleKind.ATTRIBUTE_EQUALS
    values: tuple[Scalar, ...] | None = None
    priority: int = 0
    tags: tuple[str, ...] = ()
    raw_rule: str | None = None

    def rule_for(self, value: Scalar) -> Rule:
        return Rule(kind=self.rule, value=value, attribute=self.attribute, raw_kind=self.raw_rule)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Dimension":
        if not isinstance(data, dict):
            raise ConfigError(f"Dimension entry must be a mapping, got {data!r}")
        if "name" not in data:
            raise ConfigError(f"Dimension entry is missing 'name': {data}")

        name = str(data["name"])
        raw_rule = str(data.get("rule", RuleKind.ATTRIBUTE_EQUALS.value))
        try:
            kind = RuleKind(raw_rule)
        except ValueError:
            kind = RuleKind.UNKNOWN

        values = data.get("values")
        if values is not None and not isinstance(values, list):
            raise ConfigError(f"Dimension '{name}': values must be a list")
        if kind == RuleKind.ATTRIBUTE_AT_LEAST and not values:
            raise ConfigError(f"Dimension '{name}': threshold rules need explicit values")

        return cls(
            name=name,
            attribute=str(data.get("attribute", name)),
            rule=kind,
            values=tuple(values) if values is not None else None,
            priority=int(data.get("priority", 0)),
            tags=tuple(data.get("tags", [name])),
            raw_rule=raw_rule if kind == RuleKind.UNKNOWN else None,
        )


def load_dimensions(config_file: str | Path | None = None) -> list[Dimension]:
    """
    Load dimension declarations from a YAML file.

    Args:
        config_file: Path to the YAML file. If None, uses config/dimensions.yaml

    Returns:
        The declared dimensions, in file order
    """
    if config_file is None:
        config_file = DEFAULT_DIMENSIONS_FILE
    else:
        config_file = Path(config_file)

    with open(config_file, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing {config_file}: {e}") from e

    if isinstance(data, dict):
        data = data.get("dimensions")
    if not isinstance(data, list):
        raise ConfigError(f"{config_file} must contain a list of dimensions")

    dimensions = [Dimension.from_dict(d) for d in data]
    names = [d.name for d in dimensions]
    duplicates = sorted(n for n, c in Counter(names).items() if c > 1)
    if duplicates:
        raise ConfigError(f"Duplicate dimension names: {', '.join(duplicates)}")
    return dimensions


def dimension_priorities(dimensions: Iterable[Dimension]) -> dict[str, int]:
    return {d.name: d.priority for d in dimensions}


def group_id(dimension: str, value: Scalar, members: Iterable[int]) -> str:
    return f"{dimension}:{value}:{'-'.join(str(m) for m in sorted(members))}"


class GroupBank:
    """Read-only set of candidate groups with lookups by id and by member."""

    def __init__(self, groups: Iterable[Group]):
        self.groups: tuple[Group, ...] = tuple(groups)
        self._by_id: dict[str, Group] = {}
        self._position: dict[str, int] = {}
        self._by_entity: dict[int, list[Group]] = {}

        for i, group in enumerate(self.groups):
            if group.id in self._by_id:
                raise SchemaError(f"Duplicate group id {group.id} in bank")
            self._by_id[group.id] = group
            self._position[group.id] = i
            for member in group.members:
                self._by_entity.setdefault(member, []).append(group)

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(self.groups)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._by_id

    def get(self, group_id: str) -> Group:
        return self._by_id[group_id]

    def groups_for_entity(self, entity_id: int) -> tuple[Group, ...]:
        return tuple(self._by_entity.get(entity_id, ()))

    def groups_within(self, pool: Iterable[int]) -> list[Group]:
        """Groups whose members all lie in the pool, in bank order."""
        pool_set = pool if isinstance(pool, (set, frozenset)) else set(pool)
        found: dict[str, Group] = {}
        for entity_id in pool_set:
            for group in self._by_entity.get(entity_id, ()):
                if group.id not in found and all(m in pool_set for m in group.members):
                    found[group.id] = group
        return sorted(found.values(), key=lambda g: self._position[g.id])

    def restrict_to(self, entity_ids: Iterable[int]) -> "GroupBank":
        return GroupBank(self.groups_within(entity_ids))

    def dimensions(self) -> Counter[str]:
        return Counter(g.dimension for g in self.groups)

    def entity_index(self) -> dict[int, list[str]]:
        return {entity_id: [g.id for g in groups] for entity_id, groups in sorted(self._by_entity.items())}

    @classmethod
    def from_records(cls, records: Any) -> "GroupBank":
        if not isinstance(records, list):
            raise SchemaError(f"Group bank must be an array of groups, got {type(records).__name__}")
        bank = cls(Group.from_dict(r) for r in records)

        unknown = Counter(g.rule.raw_kind for g in bank.groups if g.rule.kind == RuleKind.UNKNOWN)
        for tag, count in sorted(unknown.items()):
            logger.warning("Group bank has %d groups with unknown rule kind '%s'; they never match", count, tag)
        return bank

    def to_records(self) -> list[dict[str, Any]]:
        return [g.to_dict() for g in self.groups]


def _dimension_values(dimension: Dimension, catalog: Catalog) -> list[Scalar]:
    if dimension.values is not None:
        return list(dict.fromkeys(dimension.values))
    counts = catalog.attribute_values(dimension.attribute)
    return sorted(counts, key=str)


def build_group_bank(
    catalog: Catalog,
    dimensions: Iterable[Dimension],
    max_groups_per_value: int | None = None,
    max_total_groups: int | None = None,
) -> GroupBank:
    """
    Enumerate every group of 4 entities sharing a rule value within a dimension.

    For a value matched by n entities this yields C(n, 4) groups, so both caps exist
    to bound the bank. When max_total_groups is set, values are visited rarest first.
    """
    buckets: list[tuple[Dimension, Scalar, list[int]]] = []
    for dimension in dimensions:
        if dimension.rule == RuleKind.UNKNOWN:
            logger.warning(
                "Dimension '%s' uses unknown rule kind '%s'; no groups generated",
                dimension.name,
                dimension.raw_rule,
            )
            continue

        values = _dimension_values(dimension, catalog)
        if not values:
            logger.warning("Dimension '%s' has no values in the catalog", dimension.name)
            continue

        for value in values:
            predicate = predicate_for(dimension.rule_for(value))
            ids = sorted(e.id for e in catalog if predicate(e))
            if len(ids) < GROUP_SIZE:
                continue
            buckets.append((dimension, value, ids))

    if max_total_groups is not None:
        buckets.sort(key=lambda b: (len(b[2]), b[0].priority, b[0].name, str(b[1])))

    groups: list[Group] = []
    for dimension, value, ids in buckets:
        rule = dimension.rule_for(value)
        name = describe_rule(rule, dimension.name)
        made = 0
        for combo in combinations(ids, GROUP_SIZE):
            if max_groups_per_value is not None and made >= max_groups_per_value:
                break
            if max_total_groups is not None and len(groups) >= max_total_groups:
                break
            groups.append(
                Group(
                    id=group_id(dimension.name, value, combo),
                    name=name,
                    members=combo,
                    dimension=dimension.name,
                    rule=rule,
                    tags=dimension.tags,
                )
            )
            made += 1
        logger.debug("%s=%s: %d entities, %d groups", dimension.name, value, len(ids), made)

        if max_total_groups is not None and len(groups) >= max_total_groups:
            logger.warning("Group bank capped at %d groups", max_total_groups)
            break

    return GroupBank(groups)
