import json
from pathlib import Path
from typing import Any

from grouping_puzzles.bank import GroupBank
from grouping_puzzles.catalog import Catalog
from grouping_puzzles.models import Puzzle, SchemaError


def _read_json(file_path: str | Path) -> Any:
    with open(file_path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise SchemaError(f"{file_path} is not valid JSON: {e}") from e


def _write_json(data: Any, file_path: str | Path) -> None:
    path = Path(file_path)
    if not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def read_catalog(file_path: str | Path) -> Catalog:
    return Catalog.from_records(_read_json(file_path))


def write_catalog(catalog: Catalog, file_path: str | Path) -> None:
    _write_json(catalog.to_records(), file_path)


def read_group_bank(file_path: str | Path) -> GroupBank:
    return GroupBank.from_records(_read_json(file_path))


def write_group_bank(bank: GroupBank, file_path: str | Path) -> None:
    _write_json(bank.to_records(), file_path)


def write_entity_index(bank: GroupBank, file_path: str | Path) -> None:
    index = {str(entity_id): group_ids for entity_id, group_ids in bank.entity_index().items()}
    _write_json(index, file_path)


def read_puzzles(file_path: str | Path) -> list[Puzzle]:
    """Reads either a single puzzle object or a {"puzzles": [...]} wrapper."""
    data = _read_json(file_path)
    if isinstance(data, dict) and "puzzles" in data:
        records = data["puzzles"]
        if not isinstance(records, list):
            raise SchemaError(f"{file_path}: 'puzzles' must be an array")
        return [Puzzle.from_dict(r) for r in records]
    return [Puzzle.from_dict(data)]


def read_puzzle(file_path: str | Path) -> Puzzle:
    puzzles = read_puzzles(file_path)
    if len(puzzles) != 1:
        raise SchemaError(f"{file_path} holds {len(puzzles)} puzzles, expected 1")
    return puzzles[0]


def write_puzzles(puzzles: list[Puzzle], file_path: str | Path) -> None:
    _write_json({"puzzles": [p.to_dict() for p in puzzles]}, file_path)


def write_puzzle(puzzle: Puzzle, file_path: str | Path) -> None:
    if str(file_path).endswith(".txt"):
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(puzzle.to_string())
    else:
        _write_json(puzzle.to_dict(), file_path)
