from dataclasses import dataclass, field

from grouping_puzzles.catalog import Catalog
from grouping_puzzles.models import Puzzle
from grouping_puzzles.rules import predicate_for


@dataclass
class Conflict:
    entity_id: int
    entity_name: str
    group_id: str
    conflicting_group_ids: list[str]


@dataclass
class ValidationReport:
    """
    Outcome of checking a puzzle against the catalog.

    errors are hard violations (a member fails its own group's rule, or is not in the
    catalog) and make the puzzle invalid. warnings flag members that would also fit
    another group of the same puzzle; they are reported but do not block acceptance.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_puzzle(puzzle: Puzzle, catalog: Catalog) -> ValidationReport:
    report = ValidationReport()
    predicates = {g.id: predicate_for(g.rule) for g in puzzle.groups}

    for group in puzzle.groups:
        for member in group.members:
            entity = catalog.get(member)
            if entity is None:
                report.errors.append(f"Entity {member} in {group.name} is not in the catalog")
                continue

            if not predicates[group.id](entity):
                report.errors.append(
                    f"{entity.name} ({member}) is in {group.name} but does not satisfy {group.rule}"
                )

            others = [o for o in puzzle.groups if o.id != group.id and predicates[o.id](entity)]
            if others:
                report.conflicts.append(
                    Conflict(
                        entity_id=member,
                        entity_name=entity.name,
                        group_id=group.id,
                        conflicting_group_ids=[o.id for o in others],
                    )
                )
                names = ", ".join(o.name for o in others)
                report.warnings.append(f"{entity.name} ({member}) in {group.name} could also belong to: {names}")

    return report
