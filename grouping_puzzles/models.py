from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Any, Mapping

GROUP_SIZE = 4
GROUP_COUNT = 4
POOL_SIZE = GROUP_SIZE * GROUP_COUNT

Scalar = str | int | float | bool


class SchemaError(ValueError):
    """Raised when catalog, bank or puzzle data does not have the expected shape."""


class RuleKind(str, Enum):
    ATTRIBUTE_EQUALS = "attribute-equals"
    ATTRIBUTE_AT_LEAST = "attribute-at-least"
    UNKNOWN = "unknown"


# Tags written by older bank builders
LEGACY_RULE_KINDS: dict[str, tuple[RuleKind, str]] = {
    "typeEquals": (RuleKind.ATTRIBUTE_EQUALS, "types"),
}


@dataclass(frozen=True)
class Entity:
    id: int
    name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 1:
            raise SchemaError(f"Entity id must be a positive integer, got {self.id!r}")
        if not isinstance(self.name, str) or not self.name:
            raise SchemaError(f"Entity {self.id} has no name")
        # Read-only view over a private copy
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __reduce__(self) -> tuple[Any, ...]:
        # mappingproxy cannot be pickled into worker processes
        return (type(self), (self.id, self.name, dict(self.attributes)))

    def get(self, attribute: str, default: Any = None) -> Any:
        return self.attributes.get(attribute, default)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Entity":
        if not isinstance(data, Mapping):
            raise SchemaError(f"Entity record must be an object, got {type(data).__name__}")
        for key in ("id", "name"):
            if key not in data:
                raise SchemaError(f"Entity record is missing '{key}': {dict(data)}")

        attributes: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("id", "name"):
                continue
            _flatten_attribute(attributes, key, value)
        return cls(id=data["id"], name=data["name"], attributes=attributes)

    def to_dict(self) -> dict[str, Any]:
        res: dict[str, Any] = {"id": self.id, "name": self.name}
        for key, value in self.attributes.items():
            res[key] = list(value) if isinstance(value, tuple) else value
        return res


def _flatten_attribute(target: dict[str, Any], key: str, value: Any) -> None:
    # Nested objects become dotted keys, e.g. baseStats.speed
    if isinstance(value, Mapping):
        for sub_key, sub_value in value.items():
            _flatten_attribute(target, f"{key}.{sub_key}", sub_value)
    elif isinstance(value, list):
        target[key] = tuple(value)
    else:
        target[key] = value


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


@dataclass(frozen=True)
class Rule:
    kind: RuleKind
    value: Scalar
    attribute: str = ""
    raw_kind: str | None = None

    def __str__(self) -> str:
        if self.kind == RuleKind.ATTRIBUTE_EQUALS:
            return f"{self.attribute} = {self.value}"
        if self.kind == RuleKind.ATTRIBUTE_AT_LEAST:
            return f"{self.attribute} >= {self.value}"
        return f"{self.raw_kind or self.kind.value}({self.value})"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        if not isinstance(data, Mapping) or "kind" not in data or "value" not in data:
            raise SchemaError(f"Rule must be an object with 'kind' and 'value', got {data!r}")

        tag = data["kind"]
        if not isinstance(tag, str):
            raise SchemaError(f"Rule kind must be a string, got {tag!r}")
        value = data["value"]
        if not _is_scalar(value):
            raise SchemaError(f"Rule value must be a string, number or boolean, got {value!r}")
        attribute = data.get("attribute", "")
        if not isinstance(attribute, str):
            raise SchemaError(f"Rule attribute must be a string, got {attribute!r}")
        if tag in LEGACY_RULE_KINDS:
            kind, default_attribute = LEGACY_RULE_KINDS[tag]
            return cls(kind=kind, value=value, attribute=attribute or default_attribute)

        try:
            kind = RuleKind(tag)
        except ValueError:
            kind = RuleKind.UNKNOWN
        if kind == RuleKind.UNKNOWN:
            return cls(kind=kind, value=value, attribute=attribute, raw_kind=str(tag))
        return cls(kind=kind, value=value, attribute=attribute)

    def to_dict(self) -> dict[str, Any]:
        kind = self.raw_kind if self.kind == RuleKind.UNKNOWN and self.raw_kind else self.kind.value
        return {"kind": kind, "value": self.value, "attribute": self.attribute}


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    members: tuple[int, ...]
    dimension: str
    rule: Rule
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.members) != GROUP_SIZE:
            raise SchemaError(f"Group {self.id} has {len(self.members)} members, expected {GROUP_SIZE}")
        if len(set(self.members)) != GROUP_SIZE:
            raise SchemaError(f"Group {self.id} has duplicate members: {list(self.members)}")
        if not self.dimension:
            raise SchemaError(f"Group {self.id} has no dimension")

    @cached_property
    def member_set(self) -> frozenset[int]:
        return frozenset(self.members)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Group":
        if not isinstance(data, Mapping):
            raise SchemaError(f"Group record must be an object, got {type(data).__name__}")
        for key in ("id", "name", "members", "dimension", "rule"):
            if key not in data:
                raise SchemaError(f"Group record is missing '{key}': {data.get('id', '?')}")
        members = data["members"]
        if not isinstance(members, list) or not all(
            isinstance(m, int) and not isinstance(m, bool) for m in members
        ):
            raise SchemaError(f"Group {data['id']} members must be a list of integers")
        return cls(
            id=data["id"],
            name=data["name"],
            members=tuple(members),
            dimension=data["dimension"],
            rule=Rule.from_dict(data["rule"]),
            tags=tuple(data.get("tags", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": list(self.members),
            "tags": list(self.tags),
            "dimension": self.dimension,
            "rule": self.rule.to_dict(),
        }


@dataclass(frozen=True)
class Puzzle:
    groups: tuple[Group, ...]
    pool: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.groups) != GROUP_COUNT:
            raise SchemaError(f"Puzzle has {len(self.groups)} groups, expected {GROUP_COUNT}")
        if len(self.pool) != POOL_SIZE or len(set(self.pool)) != POOL_SIZE:
            raise SchemaError(f"Puzzle pool must hold {POOL_SIZE} distinct ids, got {len(set(self.pool))}")

        seen: set[int] = set()
        for group in self.groups:
            overlap = seen & group.member_set
            if overlap:
                raise SchemaError(f"Group {group.id} overlaps other groups on {sorted(overlap)}")
            seen |= group.member_set
        if seen != set(self.pool):
            raise SchemaError("Puzzle pool is not the union of its groups' members")

    @classmethod
    def from_groups(cls, groups: list[Group] | tuple[Group, ...]) -> "Puzzle":
        pool: list[int] = []
        for group in groups:
            pool.extend(group.members)
        return cls(groups=tuple(groups), pool=tuple(sorted(set(pool))))

    @property
    def group_ids(self) -> frozenset[str]:
        return frozenset(g.id for g in self.groups)

    @property
    def dimensions(self) -> set[str]:
        return {g.dimension for g in self.groups}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Puzzle":
        if not isinstance(data, Mapping) or "groups" not in data or "pool" not in data:
            raise SchemaError("Puzzle record must be an object with 'groups' and 'pool'")
        groups = tuple(Group.from_dict(g) for g in data["groups"])
        return cls(groups=groups, pool=tuple(data["pool"]))

    def to_dict(self) -> dict[str, Any]:
        return {"groups": [g.to_dict() for g in self.groups], "pool": list(self.pool)}

    def to_string(self, names: Mapping[int, str] | None = None) -> str:
        def label(entity_id: int) -> str:
            if names is not None and entity_id in names:
                return names[entity_id]
            return str(entity_id)

        width = max(len(label(i)) for i in self.pool)
        res = []
        border = "+" + "+".join(["-" * (width + 2)] * GROUP_SIZE) + "+"
        res.append(border)
        for group in self.groups:
            row_str = "|"
            for member in group.members:
                row_str += f" {label(member).ljust(width)} |"
            res.append(f"{row_str}  {group.name}")
            res.append(border)
        return "\n".join(res) + "\n"


@dataclass
class SolveResult:
    is_unique: bool
    solutions: list[tuple[str, ...]] = field(default_factory=list)
