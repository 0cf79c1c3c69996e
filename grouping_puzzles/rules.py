from numbers import Real
from typing import Any, Callable

from grouping_puzzles.models import Entity, Rule, RuleKind

Predicate = Callable[[Entity], bool]


def _never(entity: Entity) -> bool:
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def predicate_for(rule: Rule) -> Predicate:
    """
    Returns a pure predicate telling whether an entity satisfies the rule.

    Unknown rule kinds yield a predicate that is always false, so bulk filtering
    over data written by newer tools never raises.
    """
    attribute = rule.attribute
    expected = rule.value

    if rule.kind == RuleKind.ATTRIBUTE_EQUALS:

        def attribute_equals(entity: Entity) -> bool:
            actual = entity.attributes.get(attribute)
            if actual is None:
                return False
            if isinstance(actual, (tuple, list, frozenset, set)):
                return expected in actual
            return bool(actual == expected)

        return attribute_equals

    if rule.kind == RuleKind.ATTRIBUTE_AT_LEAST:
        if not _is_number(expected):
            return _never

        def attribute_at_least(entity: Entity) -> bool:
            actual = entity.attributes.get(attribute)
            return _is_number(actual) and actual >= expected

        return attribute_at_least

    return _never


def matches(rule: Rule, entity: Entity) -> bool:
    return predicate_for(rule)(entity)


def describe_rule(rule: Rule, dimension: str) -> str:
    label = dimension.replace("_", " ").replace("-", " ").capitalize()
    if rule.kind == RuleKind.ATTRIBUTE_EQUALS:
        return f"{label}: {rule.value}"
    if rule.kind == RuleKind.ATTRIBUTE_AT_LEAST:
        return f"{label} ≥ {rule.value}"
    return f"{label}: {rule}"
