from collections import Counter
from typing import Any, Callable, Iterable, Iterator

from grouping_puzzles.models import Entity, SchemaError


class Catalog:
    """Read-only collection of entities, indexed by id."""

    def __init__(self, entities: Iterable[Entity]):
        self._entities: dict[int, Entity] = {}
        for entity in entities:
            if entity.id in self._entities:
                raise SchemaError(f"Duplicate entity id {entity.id} in catalog")
            self._entities[entity.id] = entity

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __getitem__(self, entity_id: int) -> Entity:
        return self._entities[entity_id]

    def get(self, entity_id: int) -> Entity | None:
        return self._entities.get(entity_id)

    @property
    def ids(self) -> frozenset[int]:
        return frozenset(self._entities)

    def names(self) -> dict[int, str]:
        return {entity_id: entity.name for entity_id, entity in self._entities.items()}

    def filter(self, predicate: Callable[[Entity], bool]) -> "Catalog":
        return Catalog(e for e in self._entities.values() if predicate(e))

    def where(self, **conditions: Any) -> "Catalog":
        """
        Subset of entities whose attributes equal (or, for multi-valued attributes,
        contain) the given values, e.g. catalog.where(generation=1, types="fire").
        """

        def holds(actual: Any, expected: Any) -> bool:
            if isinstance(expected, list):
                expected = tuple(expected)
            if isinstance(actual, tuple) and not isinstance(expected, tuple):
                return expected in actual
            return bool(actual == expected)

        def check(entity: Entity) -> bool:
            return all(holds(entity.get(key), value) for key, value in conditions.items())

        return self.filter(check)

    def attribute_values(self, attribute: str) -> Counter[Any]:
        """Counts how many entities carry each value of an attribute."""
        counts: Counter[Any] = Counter()
        for entity in self._entities.values():
            value = entity.get(attribute)
            if value is None:
                continue
            if isinstance(value, tuple):
                counts.update(set(value))
            else:
                counts[value] += 1
        return counts

    @classmethod
    def from_records(cls, records: Any) -> "Catalog":
        if isinstance(records, dict):
            for key in ("entities", "pokemon"):
                if key in records:
                    records = records[key]
                    break
            else:
                raise SchemaError("Catalog object must contain an 'entities' array")
        if not isinstance(records, list):
            raise SchemaError(f"Catalog must be an array of entities, got {type(records).__name__}")
        return cls(Entity.from_dict(r) for r in records)

    def to_records(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._entities.values()]
