import json

import pytest

from enumber_checker import reference_table
from enumber_checker.codes import ECode
from enumber_checker.errors import ReferenceDataError
from enumber_checker.reference_table import (
    ReferenceEntry,
    ReferenceTable,
    get_reference_table,
    load_reference_table,
)


def write_json(tmp_path, data):
    path = tmp_path / "table.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_bundled_table_loads():
    table = load_reference_table()
    assert len(table) > 100

    curcumin = table.lookup(ECode("E100"))
    assert curcumin.name == "Curcumin"
    assert curcumin.vegan is True

    assert table.lookup("E120").vegan is False
    assert table.lookup("E199") is None


def test_lookup_accepts_any_spelling():
    table = load_reference_table()
    assert table.lookup("e160a") == table.lookup("E-160A")
    assert table.lookup("e160a") is not None
    assert "E 322" in table
    assert "not a code" not in table
    assert 100 not in table


def test_vegan_codes():
    table = ReferenceTable([
        ReferenceEntry(ECode("E100"), "Curcumin", True),
        ReferenceEntry(ECode("E120"), "Cochineal", False),
    ])
    assert table.vegan_codes() == [ECode("E100")]
    assert repr(table) == "ReferenceTable(entries=2, vegan=1)"


def test_duplicate_codes_are_rejected(tmp_path):
    path = write_json(tmp_path, [
        {"code": "E100", "name": "Curcumin", "vegan": True},
        {"code": "e100", "name": "Curcumin again", "vegan": False},
    ])
    with pytest.raises(ReferenceDataError):
        load_reference_table(path)


@pytest.mark.parametrize("record", [
    {"name": "Curcumin", "vegan": True},
    {"code": "E10", "name": "Too short", "vegan": True},
    {"code": "E100", "name": "  ", "vegan": True},
    {"code": "E100", "name": "Curcumin", "vegan": "yes"},
    "E100",
])
def test_malformed_records_are_rejected(tmp_path, record):
    with pytest.raises(ReferenceDataError):
        load_reference_table(write_json(tmp_path, [record]))


def test_malformed_files_are_rejected(tmp_path):
    with pytest.raises(ReferenceDataError):
        load_reference_table(write_json(tmp_path, {"E100": True}))

    bad = tmp_path / "bad.json"
    bad.write_text("[{", encoding="utf-8")
    with pytest.raises(ReferenceDataError):
        load_reference_table(bad)

    with pytest.raises(ReferenceDataError):
        load_reference_table(tmp_path / "missing.json")


def test_reference_table_is_loaded_once(monkeypatch):
    monkeypatch.setattr(reference_table, "_table_instance", None)
    first = get_reference_table()
    assert get_reference_table() is first
