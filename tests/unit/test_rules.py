from grouping_puzzles.models import Entity, Rule, RuleKind
from grouping_puzzles.rules import describe_rule, matches, predicate_for


def _entity(**attributes: object) -> Entity:
    return Entity.from_dict({"id": 1, "name": "mon", **attributes})


def test_attribute_equals_multi_valued() -> None:
    rule = Rule(kind=RuleKind.ATTRIBUTE_EQUALS, value="poison", attribute="types")
    predicate = predicate_for(rule)

    assert predicate(_entity(types=["grass", "poison"])) is True
    assert predicate(_entity(types=["grass"])) is False
    assert predicate(_entity()) is False


def test_attribute_equals_scalar() -> None:
    rule = Rule(kind=RuleKind.ATTRIBUTE_EQUALS, value="forest", attribute="habitat")

    assert matches(rule, _entity(habitat="forest")) is True
    assert matches(rule, _entity(habitat="cave")) is False


def test_attribute_at_least() -> None:
    rule = Rule(kind=RuleKind.ATTRIBUTE_AT_LEAST, value=100, attribute="baseStats.speed")

    assert matches(rule, _entity(baseStats={"speed": 100})) is True
    assert matches(rule, _entity(baseStats={"speed": 130})) is True
    assert matches(rule, _entity(baseStats={"speed": 99})) is False
    assert matches(rule, _entity(baseStats={"speed": "fast"})) is False
    assert matches(rule, _entity()) is False


def test_attribute_at_least_with_non_numeric_threshold_never_matches() -> None:
    rule = Rule(kind=RuleKind.ATTRIBUTE_AT_LEAST, value="high", attribute="speed")
    assert matches(rule, _entity(speed=500)) is False


def test_unknown_rule_kind_is_always_false() -> None:
    rule = Rule.from_dict({"kind": "evolutionStage", "value": 1, "attribute": "evoStage"})
    predicate = predicate_for(rule)

    assert predicate(_entity(evoStage=1)) is False
    assert predicate(_entity()) is False


def test_predicate_is_pure() -> None:
    rule = Rule(kind=RuleKind.ATTRIBUTE_EQUALS, value="fire", attribute="types")
    predicate = predicate_for(rule)
    fire = _entity(types=["fire"])
    water = _entity(types=["water"])

    results = [predicate(fire), predicate(water)] * 3
    assert results == [True, False] * 3


def test_describe_rule() -> None:
    equals = Rule(kind=RuleKind.ATTRIBUTE_EQUALS, value="fire", attribute="types")
    at_least = Rule(kind=RuleKind.ATTRIBUTE_AT_LEAST, value=100, attribute="baseStats.speed")

    assert describe_rule(equals, "type") == "Type: fire"
    assert describe_rule(at_least, "speed") == "Speed ≥ 100"
