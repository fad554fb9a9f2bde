from datetime import timedelta, timezone

import pytest

from sosdash import timeline
from sosdash.models import parse_timestamp

from conftest import make_record

UTC = timezone.utc


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-05-01T10:15:00Z", UTC).hour == 10
    assert parse_timestamp("2024-05-01T10:15:00.123Z", UTC).minute == 15
    assert parse_timestamp("2024-05-01T10:15:00+05:30", UTC).hour == 4
    assert parse_timestamp("", UTC) is None
    assert parse_timestamp(None, UTC) is None
    assert parse_timestamp("not a date", UTC) is None


def test_daily_key_uses_viewer_timezone():
    colombo = timezone(timedelta(hours=5, minutes=30))
    assert timeline.daily_key("2024-05-01T20:00:00Z", UTC) == "2024-05-01"
    assert timeline.daily_key("2024-05-01T20:00:00Z", colombo) == "2024-05-02"


def test_daily_counts_are_sparse_and_sorted():
    recs = [
        make_record(createdAt="2024-05-03T08:00:00Z"),
        make_record(createdAt="2024-05-01T08:00:00Z"),
        make_record(createdAt="2024-05-01T23:59:59Z"),
        make_record(createdAt="broken"),
        make_record(),
    ]
    buckets = timeline.daily_counts(recs, UTC)
    assert [(b.key, b.count) for b in buckets] == [("2024-05-01", 2), ("2024-05-03", 1)]
    assert timeline.peak(buckets) == 2
    assert timeline.peak([]) == 0


def test_hourly_counts_zero_minutes():
    recs = [
        make_record(createdAt="2024-05-01T08:05:00Z"),
        make_record(createdAt="2024-05-01T08:59:00Z"),
        make_record(createdAt="2024-05-01T09:00:00Z"),
    ]
    assert [(b.key, b.count) for b in timeline.hourly_counts(recs, UTC)] == [
        ("2024-05-01 08:00", 2),
        ("2024-05-01 09:00", 1),
    ]


def test_cumulative_counts():
    recs = [make_record(createdAt=f"2024-05-0{d}T12:00:00Z") for d in (3, 1, 1, 2, 3, 3)]
    out = timeline.cumulative_counts(recs, UTC)
    assert [(b.key, b.count, b.cumulative) for b in out] == [
        ("2024-05-01", 2, 2),
        ("2024-05-02", 1, 3),
        ("2024-05-03", 3, 6),
    ]


def test_daily_breakdowns():
    recs = [
        make_record(createdAt="2024-05-01T01:00:00Z", status="PENDING", priority="HIGH", source="WEB"),
        make_record(createdAt="2024-05-01T02:00:00Z", status="PENDING", priority="", source=""),
        make_record(createdAt="2024-05-02T02:00:00Z", status="", priority="LOW", source="SMS"),
    ]
    status = timeline.daily_status_breakdown(recs, UTC)
    assert [(b.key, b.counts) for b in status] == [("2024-05-01", {"PENDING": 2})]
    prio = timeline.daily_priority_breakdown(recs, UTC)
    assert [(b.key, b.counts) for b in prio] == [("2024-05-01", {"HIGH": 1}), ("2024-05-02", {"LOW": 1})]
    src = timeline.source_over_time(recs, UTC)
    assert src[0].counts == {"WEB": 1, "OTHER": 1}


def test_district_activity_top_n():
    recs = (
        [make_record(district="A", createdAt="2024-05-01T00:00:00Z") for _ in range(3)]
        + [make_record(district="B", createdAt="2024-05-02T00:00:00Z") for _ in range(2)]
        + [make_record(district="C", createdAt="2024-05-02T00:00:00Z")]
    )
    assert timeline.top_districts(recs, 2) == ["A", "B"]
    out = timeline.district_activity(recs, top_n=2, tz=UTC)
    assert [(b.key, b.counts) for b in out] == [("2024-05-01", {"A": 3}), ("2024-05-02", {"B": 2})]


def test_rescues_over_time():
    recs = [
        make_record(status="RESCUED", rescuedAt="2024-05-02T10:00:00Z"),
        make_record(status="COMPLETED", completedAt="2024-05-02T11:00:00Z"),
        make_record(status="RESCUED", updatedAt="2024-05-03T11:00:00Z"),
        make_record(status="PENDING", updatedAt="2024-05-03T11:00:00Z"),
        make_record(status="RESCUED"),
    ]
    out = timeline.rescues_over_time(recs, UTC)
    assert [(b.key, b.rescued, b.completed, b.total) for b in out] == [
        ("2024-05-02", 1, 1, 2),
        ("2024-05-03", 1, 0, 1),
    ]



def test_hourly_key_is_wall_clock_across_dst_fall_back():
    zoneinfo = pytest.importorskip("zoneinfo")
    try:
        new_york = zoneinfo.ZoneInfo("America/New_York")
    except zoneinfo.ZoneInfoNotFoundError:
        pytest.skip("tz database not available")
    # 05:30Z and 06:30Z are both 01:30 local on 2024-11-03
    first = timeline.hourly_key("2024-11-03T05:30:00Z", new_york)
    second = timeline.hourly_key("2024-11-03T06:30:00Z", new_york)
    assert first == second == "2024-11-03 01:00"
    assert timeline.hourly_key("2024-11-03T05:30:00Z", UTC) != timeline.hourly_key("2024-11-03T06:30:00Z", UTC)
