"""
Time-bucketing aggregators
==========================

Group records by a key derived from `createdAt`:
- daily key:  "YYYY-MM-DD" in the viewer's timezone
- hourly key: "YYYY-MM-DD HH:00" (wall-clock hour, no UTC offset)

Records without a parseable timestamp are left out of every series here
(they still count in the district/source aggregates). Output is sparse:
days/hours with no records do not appear, so consumers must not assume
contiguous dates.

`tz` defaults to the local timezone; callers may pass an explicit one.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .classify import classify_status
from .models import SOSRecord, Status, parse_timestamp


@dataclass(frozen=True)
class TimeBucket:
    key: str
    count: int

@dataclass(frozen=True)
class CumulativeBucket:
    key: str
    count: int
    cumulative: int

@dataclass(frozen=True)
class BreakdownBucket:
    """Per-bucket counts split by a category (status, priority, district, ...)."""
    key: str
    counts: Dict[str, int] = field(default_factory=dict)

@dataclass(frozen=True)
class RescueBucket:
    key: str
    rescued: int
    completed: int

    @property
    def total(self) -> int:
        return self.rescued + self.completed


def daily_key(value: Optional[str], tz: Optional[tzinfo] = None) -> Optional[str]:
    dt = parse_timestamp(value, tz)
    return dt.strftime("%Y-%m-%d") if dt else None

def hourly_key(value: Optional[str], tz: Optional[tzinfo] = None) -> Optional[str]:
    """Wall-clock hour in `tz`.

    The key carries no UTC offset, so the repeated hour of a DST fall-back
    collapses into one bucket (as a clock on the wall would show it). Pass a
    fixed-offset `tz` such as UTC for strictly hourly buckets.
    """
    dt = parse_timestamp(value, tz)
    if dt is None:
        return None
    return dt.replace(minute=0, second=0, microsecond=0).strftime("%Y-%m-%d %H:00")


def _count_by(records: Iterable[SOSRecord], key_of: Callable[[SOSRecord], Optional[str]]) -> List[TimeBucket]:
    counts: Counter = Counter()
    for r in records:
        k = key_of(r)
        if k is not None:
            counts[k] += 1
    return [TimeBucket(key=k, count=counts[k]) for k in sorted(counts)]

def daily_counts(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[TimeBucket]:
    return _count_by(records, lambda r: daily_key(r.created_at, tz))

def hourly_counts(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[TimeBucket]:
    return _count_by(records, lambda r: hourly_key(r.created_at, tz))

def cumulative_counts(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[CumulativeBucket]:
    """Daily counts ascending by date with a running total."""
    out: List[CumulativeBucket] = []
    running = 0
    for b in daily_counts(records, tz):
        running += b.count
        out.append(CumulativeBucket(key=b.key, count=b.count, cumulative=running))
    return out

def peak(buckets: Sequence[TimeBucket]) -> int:
    return max((b.count for b in buckets), default=0)


def _breakdown_by(
    records: Iterable[SOSRecord],
    key_of: Callable[[SOSRecord], Optional[str]],
    label_of: Callable[[SOSRecord], Optional[str]],
) -> List[BreakdownBucket]:
    acc: Dict[str, Counter] = {}
    for r in records:
        k = key_of(r)
        label = label_of(r)
        if k is None or not label:
            continue
        acc.setdefault(k, Counter())[label] += 1
    return [BreakdownBucket(key=k, counts=dict(acc[k])) for k in sorted(acc)]

def daily_status_breakdown(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[BreakdownBucket]:
    return _breakdown_by(records, lambda r: daily_key(r.created_at, tz), lambda r: r.status)

def daily_priority_breakdown(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[BreakdownBucket]:
    return _breakdown_by(records, lambda r: daily_key(r.created_at, tz), lambda r: r.priority)

def source_over_time(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[BreakdownBucket]:
    return _breakdown_by(records, lambda r: daily_key(r.created_at, tz), lambda r: r.source_key())

def top_districts(records: Iterable[SOSRecord], top_n: int = 5) -> List[str]:
    """Districts with the most records (records without district are skipped)."""
    counts = Counter(r.district for r in records if r.district)
    return [d for d, _ in counts.most_common(top_n)]

def district_activity(records: Sequence[SOSRecord], top_n: int = 5, tz: Optional[tzinfo] = None) -> List[BreakdownBucket]:
    """Per-day counts for the `top_n` busiest districts."""
    keep = set(top_districts(records, top_n))
    return _breakdown_by(
        records,
        lambda r: daily_key(r.created_at, tz),
        lambda r: r.district if r.district in keep else None,
    )

def rescues_over_time(records: Iterable[SOSRecord], tz: Optional[tzinfo] = None) -> List[RescueBucket]:
    """Daily rescued/completed counts keyed by rescuedAt, completedAt or updatedAt."""
    acc: Dict[str, List[int]] = {}
    for r in records:
        status = classify_status(r.status)
        done = status in (Status.RESCUED, Status.COMPLETED)
        if not (r.rescued_at or r.completed_at or done):
            continue
        k = daily_key(r.rescued_at or r.completed_at or r.updated_at, tz)
        if k is None:
            continue
        cell = acc.setdefault(k, [0, 0])
        if status is Status.RESCUED:
            cell[0] += 1
        elif status is Status.COMPLETED:
            cell[1] += 1
    return [RescueBucket(key=k, rescued=acc[k][0], completed=acc[k][1]) for k in sorted(acc)]
