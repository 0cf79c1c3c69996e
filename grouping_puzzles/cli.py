import argparse
import logging
import sys
from collections import Counter
from typing import Any

import yaml

from grouping_puzzles.bank import ConfigError, build_group_bank, dimension_priorities, load_dimensions
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.generator import Constraint, GenerationSettings, Generator, OverlapBand
from grouping_puzzles.io import (
    read_catalog,
    read_group_bank,
    read_puzzles,
    write_entity_index,
    write_group_bank,
    write_puzzles,
)
from grouping_puzzles.models import SchemaError
from grouping_puzzles.score import overlap_score
from grouping_puzzles.solver import count_solutions
from grouping_puzzles.validation import validate_puzzle


def parse_conditions(items: list[str]) -> dict[str, Any]:
    """Turns ["evoStage=1", "habitat=forest"] into {"evoStage": 1, "habitat": "forest"}."""
    conditions: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Invalid condition '{item}', expected key=value")
        conditions[key] = yaml.safe_load(raw)
    return conditions


def _load_catalog(path: str, where: list[str]) -> Catalog:
    catalog = read_catalog(path)
    if where:
        catalog = catalog.where(**parse_conditions(where))
        print(f"Filtered catalog to {len(catalog)} entities")
    return catalog


def cmd_build_bank(args: argparse.Namespace) -> int:
    catalog = _load_catalog(args.catalog, args.where)
    dimensions = load_dimensions(args.dimensions)

    print(f"Building group bank from {len(catalog)} entities and {len(dimensions)} dimensions...")
    bank = build_group_bank(
        catalog,
        dimensions,
        max_groups_per_value=args.max_groups_per_value,
        max_total_groups=args.max_total_groups,
    )

    write_group_bank(bank, args.output)
    print(f"Wrote {len(bank)} groups to {args.output}")
    if args.index:
        write_entity_index(bank, args.index)
        print(f"Wrote entity index to {args.index}")
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    catalog = _load_catalog(args.catalog, args.where)
    bank = read_group_bank(args.bank)

    constraints: list[Constraint] = []
    if args.min_overlap is not None or args.max_overlap is not None:
        constraints.append(OverlapBand(min_overlap=args.min_overlap, max_overlap=args.max_overlap))

    settings = GenerationSettings(
        min_dimensions=args.min_dimensions,
        max_steps=args.max_steps,
        time_limit_seconds=args.time_limit,
        candidate_limit=args.candidate_limit,
        constraints=constraints,
    )
    settings.dimension_priority = dimension_priorities(load_dimensions(args.dimensions))

    gen = Generator(catalog, bank, settings)
    print(f"Generating {args.count} puzzle(s) from {len(catalog)} entities and {len(gen.bank)} groups...")

    puzzles, stats = gen.generate_many(
        count=args.count,
        seed=args.seed,
        n_jobs=args.jobs,
        max_attempts=args.max_attempts,
        timeout_seconds=args.timeout,
    )

    names = catalog.names()
    for i, puzzle in enumerate(puzzles, 1):
        print(f"\nPuzzle #{i} (overlap score {overlap_score(puzzle.pool, gen.bank)}):")
        print(puzzle.to_string(names))

    print("Generation Statistics:")
    print(f"  Puzzles successfully generated: {stats.puzzles_successfully_generated}")
    print(f"  Rejected as infeasible: {stats.puzzles_rejected_infeasible}")
    print(f"  Rejected by search budget: {stats.puzzles_rejected_timeout}")
    print(f"  Rejected as not unique: {stats.puzzles_rejected_not_unique}")
    print(f"  Rejected for low diversity: {stats.puzzles_rejected_low_diversity}")
    print(f"  Rejected as invalid: {stats.puzzles_rejected_invalid + stats.puzzles_rejected_bad_pool}")
    print(f"  Rejected by constraints: {stats.puzzles_rejected_constraints}")
    for name, count in stats.rejections_per_constraint.items():
        print(f"    - {name}: {count}")

    if args.output and puzzles:
        write_puzzles(puzzles, args.output)
        print(f"Wrote {len(puzzles)} puzzle(s) to {args.output}")

    if len(puzzles) < args.count:
        print(f"Could only generate {len(puzzles)}/{args.count} puzzles within {args.max_attempts} attempts")
        return 1
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    puzzles = read_puzzles(args.puzzles)
    bank = read_group_bank(args.bank)
    catalog = read_catalog(args.catalog) if args.catalog else None

    failed = 0
    for i, puzzle in enumerate(puzzles, 1):
        result = count_solutions(puzzle.pool, bank)
        print(f"Puzzle #{i}: unique={result.is_unique} solutions={[list(s) for s in result.solutions]}")
        ok = result.is_unique

        if catalog is not None:
            report = validate_puzzle(puzzle, catalog)
            for error in report.errors:
                print(f"  ERROR: {error}")
            for warning in report.warnings:
                print(f"  WARNING: {warning}")
            ok = ok and report.is_valid

        if not ok:
            failed += 1

    print(f"{len(puzzles) - failed}/{len(puzzles)} puzzles passed")
    return 1 if failed else 0


def cmd_inspect(args: argparse.Namespace) -> int:
    bank = read_group_bank(args.bank)
    print(f"{len(bank)} groups, {len(bank.entity_index())} entities")

    print("Dimension distribution:")
    for dimension, count in sorted(bank.dimensions().items()):
        print(f"  {dimension}: {count} groups")

    if args.values:
        values: Counter[str] = Counter(f"{g.dimension}: {g.rule.value}" for g in bank)
        print("Groups per value:")
        for label, count in sorted(values.items()):
            print(f"  {label}: {count}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grouping-puzzles", description="Generate and check grouping puzzles")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build-bank", help="Enumerate candidate groups from a catalog")
    p.add_argument("catalog", help="Path to catalog JSON")
    p.add_argument("--dimensions", help="Dimensions YAML (default: config/dimensions.yaml)")
    p.add_argument("--output", required=True, help="Where to write the group bank JSON")
    p.add_argument("--index", help="Where to write the entity -> group ids index")
    p.add_argument("--where", action="append", default=[], metavar="KEY=VALUE", help="Only use matching entities")
    p.add_argument("--max-groups-per-value", type=int)
    p.add_argument("--max-total-groups", type=int)
    p.set_defaults(func=cmd_build_bank)

    p = sub.add_parser("generate", help="Generate puzzles with a unique solution")
    p.add_argument("catalog", help="Path to catalog JSON")
    p.add_argument("bank", help="Path to group bank JSON")
    p.add_argument("--count", type=int, default=1, help="Number of puzzles to generate")
    p.add_argument("--max-attempts", type=int, default=100, help="Total attempt budget")
    p.add_argument("--seed", type=int)
    p.add_argument("--jobs", type=int, default=1, help="Worker processes (-1 for all cores)")
    p.add_argument("--time-limit", type=float, default=5.0, help="Search seconds per attempt")
    p.add_argument("--timeout", type=int, default=600, help="Seconds before a worker task is abandoned")
    p.add_argument("--max-steps", type=int, default=20000, help="Search steps per attempt")
    p.add_argument("--candidate-limit", type=int)
    p.add_argument("--min-dimensions", type=int, default=3)
    p.add_argument("--min-overlap", type=int)
    p.add_argument("--max-overlap", type=int)
    p.add_argument("--dimensions", help="Dimensions YAML with search priorities (default: config/dimensions.yaml)")
    p.add_argument("--where", action="append", default=[], metavar="KEY=VALUE", help="Only use matching entities")
    p.add_argument("--output", help="Where to write the puzzles JSON")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("validate", help="Check that puzzles have exactly one solution")
    p.add_argument("puzzles", help="Puzzle JSON (single puzzle or {puzzles: [...]})")
    p.add_argument("bank", help="Path to group bank JSON")
    p.add_argument("--catalog", help="Catalog JSON, enables rule consistency checks")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("inspect", help="Summarize a group bank")
    p.add_argument("bank", help="Path to group bank JSON")
    p.add_argument("--values", action="store_true", help="Also list group counts per rule value")
    p.set_defaults(func=cmd_inspect)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return int(args.func(args))
    except (SchemaError, ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
