import json

import pandas as pd
import pytest

from sosdash.loader import SnapshotError, load_snapshot, records_from_frame, records_from_json


def test_json_page_dump(tmp_path):
    path = tmp_path / "page.json"
    path.write_text(json.dumps({"success": True, "data": [
        {"id": "a", "district": "Colombo", "numberOfPeople": 3, "hasChildren": True},
        {"id": "b", "district": "Kandy"},
    ]}), encoding="utf-8")

    records = load_snapshot(str(path))

    assert [r.id for r in records] == ["a", "b"]
    assert records[0].number_of_people == 3
    assert records[0].has_children
    assert records[1].number_of_people == 0


def test_json_bare_list_and_records_key():
    assert [r.id for r in records_from_json([{"id": "x"}, "junk"])] == ["x"]
    assert [r.id for r in records_from_json({"records": [{"id": "y"}]})] == ["y"]
    with pytest.raises(SnapshotError):
        records_from_json({"rows": []})


def test_csv_with_loose_headers(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text(
        "ID,District,Status,Number Of People,emergency_type,Has Elderly,Created At\n"
        "1,Galle,PENDING,4,MEDICAL_EMERGENCY,true,2024-05-01T10:00:00Z\n"
        "2,,RESCUED,,,,\n",
        encoding="utf-8",
    )

    records = load_snapshot(str(path))

    assert len(records) == 2
    first, second = records
    assert (first.id, first.district, first.status) == ("1", "Galle", "PENDING")
    assert first.number_of_people == 4
    assert first.emergency_type == "MEDICAL_EMERGENCY"
    assert first.has_elderly
    assert first.created_at == "2024-05-01T10:00:00Z"
    assert second.district == ""
    assert second.district_key() == "Unknown"
    assert second.number_of_people == 0
    assert second.created_at is None


def test_frame_without_district_column():
    records = records_from_frame(pd.DataFrame({"people": ["2"], "type": ["TRAPPED"], "extra": ["x"]}))
    assert records[0].number_of_people == 2
    assert records[0].emergency_type == "TRAPPED"
    assert records[0].district_key() == "Unknown"


def test_unsupported_and_missing_files(tmp_path):
    with pytest.raises(SnapshotError):
        load_snapshot(str(tmp_path / "data.parquet"))
    with pytest.raises(SnapshotError):
        load_snapshot(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(SnapshotError):
        load_snapshot(str(bad))
