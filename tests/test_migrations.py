import json
from datetime import datetime

import pytest

from ckb_deployment.errors import InvalidMigrationFile
from ckb_deployment.migrations import (
    MigrationRecord,
    append_migration,
    check_migration_directory,
    find_latest_migration,
    generate_migration_filename,
)


def _record(name="foo", tx_hash="0xaa", index=0):
    return MigrationRecord(name=name, tx_hash=tx_hash, index=index, data_hash="0xbb", type_id=None)


def test_missing_directory_has_no_record(tmp_path):
    assert find_latest_migration(tmp_path / "missing", "foo") is None


def test_append_then_find(tmp_path):
    migrations = tmp_path / "migrations"
    record = _record()
    filepath = append_migration(migrations, record)

    assert filepath.parent == migrations
    assert find_latest_migration(migrations, "foo") == record


def test_append_writes_cell_recipes(tmp_path):
    filepath = append_migration(tmp_path, _record(tx_hash="0x01", index=2))
    data = json.loads(filepath.read_text())
    assert data["sequence"] == 1
    assert data["cell_recipes"] == [
        {"name": "foo", "tx_hash": "0x01", "index": 2, "data_hash": "0xbb", "type_id": None}
    ]
    assert filepath.read_text().startswith('{\n  "sequence"')


def test_latest_of_many_appends(tmp_path):
    for i in range(5):
        append_migration(tmp_path, _record(tx_hash=f"0x{i:02x}"))

    filenames = sorted(p.name for p in tmp_path.iterdir())
    assert len(filenames) == 5
    latest = json.loads((tmp_path / filenames[-1]).read_text())
    assert latest["sequence"] == 5
    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x04"


def test_latest_ignores_other_contracts(tmp_path):
    append_migration(tmp_path, _record(name="foo", tx_hash="0x01"))
    append_migration(tmp_path, _record(name="bar", tx_hash="0x02"))

    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x01"
    assert find_latest_migration(tmp_path, "bar").tx_hash == "0x02"
    assert find_latest_migration(tmp_path, "baz") is None


def test_sequence_wins_over_file_name(tmp_path):
    (tmp_path / "9999-01-01-000000.json").write_text(
        json.dumps({"sequence": 1, "cell_recipes": [_record(tx_hash="0x01").to_recipe()]})
    )
    (tmp_path / "0000-01-01-000000.json").write_text(
        json.dumps({"sequence": 2, "cell_recipes": [_record(tx_hash="0x02").to_recipe()]})
    )
    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x02"


def test_file_name_breaks_ties_for_unsequenced_files(tmp_path):
    (tmp_path / "2023-01-01-000000.json").write_text(
        json.dumps({"cell_recipes": [_record(tx_hash="0x01").to_recipe()]})
    )
    (tmp_path / "2023-06-01-000000.json").write_text(
        json.dumps({"cell_recipes": [_record(tx_hash="0x02").to_recipe()]})
    )
    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x02"


def test_invalid_migration_file(tmp_path):
    (tmp_path / "2023-01-01-000000.json").write_text("{not json")
    with pytest.raises(InvalidMigrationFile):
        find_latest_migration(tmp_path, "foo")


def test_migration_file_without_recipes(tmp_path):
    (tmp_path / "2023-01-01-000000.json").write_text(json.dumps({"dep_group_recipes": []}))
    with pytest.raises(InvalidMigrationFile):
        find_latest_migration(tmp_path, "foo")


def test_generated_name_sorts_after_existing():
    now = datetime(2024, 1, 1, 12, 0, 0)
    assert generate_migration_filename([], now=now) == "2024-01-01-120000.json"

    later = ["2030-01-01-000000.json"]
    name = generate_migration_filename(later, now=now)
    assert name == "2030-01-01-000000_1.json"
    assert name > later[0]

    again = generate_migration_filename([*later, name], now=now)
    assert again > name


def test_append_never_overwrites(tmp_path):
    existing = tmp_path / "2999-01-01-000000.json"
    existing.write_text(json.dumps({"cell_recipes": [_record(tx_hash="0x01").to_recipe()]}))
    before = existing.read_text()

    filepath = append_migration(tmp_path, _record(tx_hash="0x02"))

    assert filepath != existing
    assert existing.read_text() == before
    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x02"


def test_unsequenced_file_after_appended_one_is_latest(tmp_path):
    append_migration(tmp_path, _record(tx_hash="0x01"))
    (tmp_path / "2999-01-01-000000.json").write_text(
        json.dumps({"cell_recipes": [_record(tx_hash="0x02").to_recipe()]})
    )

    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x02"


def test_append_after_unsequenced_file(tmp_path):
    append_migration(tmp_path, _record(tx_hash="0x01"))
    (tmp_path / "2999-01-01-000000.json").write_text(
        json.dumps({"cell_recipes": [_record(tx_hash="0x02").to_recipe()]})
    )
    filepath = append_migration(tmp_path, _record(tx_hash="0x03"))

    assert json.loads(filepath.read_text())["sequence"] == 2
    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x03"


def test_unsequenced_file_named_first_is_oldest(tmp_path):
    (tmp_path / "0000-01-01-000000.json").write_text(
        json.dumps({"cell_recipes": [_record(tx_hash="0x01").to_recipe()]})
    )
    append_migration(tmp_path, _record(tx_hash="0x02"))

    assert find_latest_migration(tmp_path, "foo").tx_hash == "0x02"


def test_check_migration_directory(tmp_path):
    check_migration_directory(tmp_path / "missing")
    append_migration(tmp_path, _record())
    check_migration_directory(tmp_path)

    (tmp_path / "notes.json").write_text("{not json")
    with pytest.raises(InvalidMigrationFile):
        check_migration_directory(tmp_path)
