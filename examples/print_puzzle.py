# Copyright (C) 2026 Lukas Huwald
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from grouping_puzzles.bank import Dimension, build_group_bank
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.generator import Generator
from grouping_puzzles.models import RuleKind


def main() -> None:
    # A small catalog with one obvious group per dimension plus a few decoys
    records = [
        {"id": 4, "name": "charmander", "types": ["fire"], "color": "red"},
        {"id": 37, "name": "vulpix", "types": ["fire"], "color": "brown"},
        {"id": 58, "name": "growlithe", "types": ["fire"], "color": "brown"},
        {"id": 77, "name": "ponyta", "types": ["fire"], "color": "yellow"},
        {"id": 126, "name": "magmar", "types": ["fire"], "color": "red"},
        {"id": 7, "name": "squirtle", "types": ["water"], "color": "blue"},
        {"id": 54, "name": "psyduck", "types": ["water"], "color": "yellow"},
        {"id": 60, "name": "poliwag", "types": ["water"], "color": "blue"},
        {"id": 90, "name": "shellder", "types": ["water"], "color": "purple"},
        {"id": 16, "name": "pidgey", "types": ["normal", "flying"], "baseStats": {"speed": 56}},
        {"id": 22, "name": "fearow", "types": ["normal", "flying"], "baseStats": {"speed": 100}},
        {"id": 101, "name": "electrode", "types": ["electric"], "baseStats": {"speed": 150}},
        {"id": 135, "name": "jolteon", "types": ["electric"], "baseStats": {"speed": 130}},
        {"id": 65, "name": "alakazam", "types": ["psychic"], "baseStats": {"speed": 120}},
        {"id": 92, "name": "gastly", "types": ["ghost", "poison"], "color": "purple"},
        {"id": 109, "name": "koffing", "types": ["poison"], "color": "purple"},
        {"id": 41, "name": "zubat", "types": ["poison", "flying"], "color": "purple"},
        {"id": 88, "name": "grimer", "types": ["poison"], "color": "purple"},
    ]
    catalog = Catalog.from_records(records)
    dimensions = [
        Dimension(name="type", attribute="types"),
        Dimension(name="color", attribute="color", priority=1),
        Dimension(name="speed", attribute="baseStats.speed", rule=RuleKind.ATTRIBUTE_AT_LEAST, values=(100,)),
    ]
    bank = build_group_bank(catalog, dimensions)

    puzzle, stats = Generator(catalog, bank).generate(seed=1, max_attempts=50)
    if puzzle is None:
        print(f"No puzzle found: {stats}")
        return

    print("Example grouping puzzle:")
    print(puzzle.to_string(catalog.names()))


if __name__ == "__main__":
    main()
