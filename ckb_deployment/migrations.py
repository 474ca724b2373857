"""
Append-only migration ledger.

Each deployment or upgrade writes one JSON file into the migration directory:

    {
      "sequence": 3,
      "cell_recipes": [
        {"name": ..., "tx_hash": ..., "index": 0, "data_hash": ..., "type_id": null}
      ]
    }

Files are never rewritten or removed. The most recent record for a contract
is the one in the file with the highest embedded sequence number. A file that
carries no sequence (e.g. written by ckb-cli) ranks with the highest sequence
among the files named before it, and the file name breaks ties, so it is newer
than everything that precedes it by name.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Tuple

from ckb_deployment.constants import MIGRATION_FILE_SUFFIX, MIGRATION_FILENAME_FORMAT
from ckb_deployment.errors import InvalidMigrationFile
from ckb_deployment.utils import _dump_json, _load_json

SEQUENCE_KEY = "sequence"
CELL_RECIPES_KEY = "cell_recipes"


class MigrationRecord(NamedTuple):
    """Where a contract binary was placed on chain by a single deployment or upgrade."""

    name: str
    tx_hash: str
    index: int
    data_hash: str
    type_id: Optional[str] = None

    def to_recipe(self) -> dict:
        return {
            "name": self.name,
            "tx_hash": self.tx_hash,
            "index": self.index,
            "data_hash": self.data_hash,
            "type_id": self.type_id,
        }

    @classmethod
    def from_recipe(cls, recipe: dict) -> "MigrationRecord":
        return cls(
            name=recipe["name"],
            tx_hash=recipe["tx_hash"],
            index=int(recipe["index"]),
            data_hash=recipe["data_hash"],
            type_id=recipe.get("type_id"),
        )


class _MigrationFile(NamedTuple):
    filepath: Path
    sequence: Optional[int]
    records: List[MigrationRecord]


def _migration_filepaths(directory: Path) -> List[Path]:
    return sorted(p for p in directory.glob(f"*{MIGRATION_FILE_SUFFIX}") if p.is_file())


def _read_migration_file(filepath: Path) -> _MigrationFile:
    try:
        data = _load_json(filepath)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidMigrationFile(filepath, str(e)) from e

    if not isinstance(data, dict) or not isinstance(data.get(CELL_RECIPES_KEY), list):
        raise InvalidMigrationFile(filepath, f"missing '{CELL_RECIPES_KEY}' list")

    sequence = data.get(SEQUENCE_KEY)
    if sequence is not None and not isinstance(sequence, int):
        raise InvalidMigrationFile(filepath, f"'{SEQUENCE_KEY}' must be an integer")

    try:
        records = [MigrationRecord.from_recipe(recipe) for recipe in data[CELL_RECIPES_KEY]]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidMigrationFile(filepath, f"malformed cell recipe ({e})") from e

    return _MigrationFile(filepath=filepath, sequence=sequence, records=records)


def _read_migration_files(directory: Path) -> Iterator[Tuple[Tuple[int, str], _MigrationFile]]:
    """
    Yields (order, migration file) in file name order. A file without a
    sequence takes the highest sequence seen so far.
    """
    highest = 0
    for filepath in _migration_filepaths(directory):
        migration_file = _read_migration_file(filepath)
        if migration_file.sequence is None:
            sequence = highest
        else:
            sequence = migration_file.sequence
        highest = max(highest, sequence)
        yield (sequence, filepath.name), migration_file


def check_migration_directory(directory: Path) -> None:
    """Raises InvalidMigrationFile if any file in an existing directory cannot be read."""
    directory = Path(directory)
    if directory.is_dir():
        list(_read_migration_files(directory))


def find_latest_migration(directory: Path, contract_name: str) -> Optional[MigrationRecord]:
    """
    Returns the most recent migration record for contract_name,
    or None if the directory does not exist or holds no such record.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None

    latest = None
    latest_order = None
    for order, migration_file in _read_migration_files(directory):
        matches = [r for r in migration_file.records if r.name == contract_name]
        if not matches:
            continue
        if latest_order is None or order > latest_order:
            latest, latest_order = matches[-1], order
    return latest


def generate_migration_filename(existing: List[str], now: Optional[datetime] = None) -> str:
    """
    Returns a timestamped file name that sorts after every name in existing.
    Appending "_1" to a stem always sorts after the stem itself, since "_" > ".".
    """
    now = now or datetime.now()
    filename = f"{now.strftime(MIGRATION_FILENAME_FORMAT)}{MIGRATION_FILE_SUFFIX}"
    if existing:
        greatest = max(existing)
        if filename <= greatest:
            stem = greatest[: -len(MIGRATION_FILE_SUFFIX)]
            filename = f"{stem}_1{MIGRATION_FILE_SUFFIX}"
    return filename


def _next_sequence(directory: Path) -> int:
    sequences = [order[0] for order, _ in _read_migration_files(directory)]
    return max(sequences, default=0) + 1


def append_migration(directory: Path, record: MigrationRecord) -> Path:
    """Writes record as the sole content of a new migration file; never overwrites."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    existing = [p.name for p in _migration_filepaths(directory)]
    filepath = directory / generate_migration_filename(existing)
    data = {
        SEQUENCE_KEY: _next_sequence(directory),
        CELL_RECIPES_KEY: [record.to_recipe()],
    }

    # "x" refuses to clobber a file that appeared since the directory was listed
    with open(filepath, "x") as file:
        file.write(_dump_json(data))

    print(f"(i) Migration for {record.name} written to {filepath}")
    return filepath
