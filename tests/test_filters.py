from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_record
from sosdash.filters import FilterState, apply_filters, filter_options, within_time_range


@pytest.fixture
def records():
    return [
        make_record(district="Colombo", status="PENDING", priority="CRITICAL", emergencyType="TRAPPED",
                    fullName="Nimal Perera", referenceNumber="SOS-001", hasChildren=True),
        make_record(district="Gampaha", status="RESCUED", priority="HIGH", emergencyType="MEDICAL_EMERGENCY",
                    fullName="Kamala Silva", phoneNumber="0771234567", hasElderly=True),
        make_record(district="Colombo", status="VERIFIED", priority="LOW", emergencyType="OTHER",
                    address="12 Galle Road", hasMedicalEmergency=True),
    ]


def test_default_state_keeps_everything(records):
    state = FilterState()
    assert not state.is_active()
    assert apply_filters(records, state) == records


def test_choice_filters_are_exact(records):
    state = FilterState().with_value("district", "Colombo")
    assert [r.district for r in apply_filters(records, state)] == ["Colombo", "Colombo"]

    state = state.with_value("status", "VERIFIED")
    assert [r.status for r in apply_filters(records, state)] == ["VERIFIED"]

    assert apply_filters(records, FilterState().with_value("district", "colombo")) == []


def test_flag_filters(records):
    yes = FilterState().with_value("has_children", "yes")
    assert [r.full_name for r in apply_filters(records, yes)] == ["Nimal Perera"]

    no = FilterState().with_value("has_elderly", "no")
    assert len(apply_filters(records, no)) == 2


def test_search_is_case_insensitive_over_several_fields(records):
    assert len(apply_filters(records, FilterState(search="perera"))) == 1
    assert len(apply_filters(records, FilterState(search="sos-00"))) == 1
    assert len(apply_filters(records, FilterState(search="0771"))) == 1
    assert len(apply_filters(records, FilterState(search="galle"))) == 1
    assert len(apply_filters(records, FilterState(search="GAMPAHA"))) == 1
    assert apply_filters(records, FilterState(search="kandy")) == []


def test_with_value_validates():
    with pytest.raises(ValueError):
        FilterState().with_value("colour", "red")
    with pytest.raises(ValueError):
        FilterState().with_value("has_children", "maybe")


def test_active_lists_only_changed_filters():
    state = FilterState().with_value("priority", "HIGH").with_value("search", "x")
    assert state.active() == {"priority": "HIGH", "search": "x"}
    assert state.with_value("priority", "all").active() == {"search": "x"}


def test_filter_options_are_distinct_and_sorted(records):
    opts = filter_options(records)
    assert opts["district"] == ["Colombo", "Gampaha"]
    assert opts["status"] == ["PENDING", "RESCUED", "VERIFIED"]
    assert set(opts) == {"district", "status", "priority", "emergency_type"}


def test_within_time_range():
    now = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
    recent = make_record(createdAt=(now - timedelta(hours=2)).isoformat())
    week = make_record(createdAt=(now - timedelta(days=3)).isoformat())
    old = make_record(createdAt=(now - timedelta(days=30)).isoformat())
    undated = make_record()
    recs = [recent, week, old, undated]

    assert within_time_range(recs, "all", now) == recs
    assert within_time_range(recs, "7d", now) == [recent, week]
    assert within_time_range(recs, "24h", now) == [recent]
    with pytest.raises(ValueError):
        within_time_range(recs, "1y", now)
