"""
Aggregators (district rollups and cross-tabs)
=============================================

Every function here is a pure fold over a sequence of `SOSRecord`s:
- it never mutates its input,
- it returns freshly built objects (calling it twice gives equal results),
- it never raises on malformed records (missing numbers count as 0,
  missing flags as False).

Main entry points:
- `district_summary(records)`  -> one `DistrictSummary` per district
- `calculate_totals(summaries)` -> the synthetic "TOTAL" row
- `district_type_matrix(records)` -> district x emergency-type points
- `source_*_breakdown(records)` -> per-source category counts
- `source_comparison(records)` -> per-source comparison table
- `response_times(records)` -> average hours to resolution per district
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import math

from .classify import classify, classify_priority, classify_status
from .models import COUNTER_FIELDS, DistrictSummary, Priority, SOSRecord, Status, parse_timestamp

TOTAL_LABEL = "TOTAL"
UNKNOWN_LABEL = "UNKNOWN"

# Response-time samples outside (0, MAX_RESPONSE_HOURS] are data-entry outliers
MAX_RESPONSE_HOURS = 720.0


def round1(x: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(x * 10 + 0.5) / 10


# ---------------- District rollup ----------------
def district_summary(records: Iterable[SOSRecord]) -> List[DistrictSummary]:
    """Fold records into one summary row per district.

    The key is the trimmed district (case-sensitive); empty -> "Unknown".
    Rows are ordered by total (descending); ties keep first-seen order.
    """
    # dicts keep insertion order, so ties fall back to encounter order
    counters: Dict[str, Counter] = {}
    for r in records:
        c = counters.setdefault(r.district_key(), Counter())
        c.update(classify(r).buckets())
        c["total_people"] += r.number_of_people or 0

    rows = [_summary_from_counter(name, c) for name, c in counters.items()]
    return sorted(rows, key=lambda s: s.total, reverse=True)

def _summary_from_counter(district: str, c: Counter) -> DistrictSummary:
    return DistrictSummary(district=district, **{name: c.get(name, 0) for name in COUNTER_FIELDS})

def calculate_totals(summaries: Iterable[DistrictSummary]) -> DistrictSummary:
    """Sum every numeric field into one row labelled "TOTAL"."""
    acc: Counter = Counter()
    for s in summaries:
        for name in COUNTER_FIELDS:
            acc[name] += getattr(s, name)
    return _summary_from_counter(TOTAL_LABEL, acc)


# ---------------- District x emergency type ----------------
@dataclass(frozen=True)
class DistrictTypePoint:
    district: str
    emergency_type: str
    people_sum: int
    request_count: int

def district_type_matrix(records: Iterable[SOSRecord]) -> List[DistrictTypePoint]:
    """One point per non-empty (district, emergencyType) combination.

    Unlike `district_summary`, records missing either field are dropped here.
    """
    acc: Dict[Tuple[str, str], List[int]] = {}
    for r in records:
        d = r.district.strip()
        t = r.emergency_type.strip()
        if not d or not t:
            continue
        cell = acc.setdefault((d, t), [0, 0])
        cell[0] += r.number_of_people or 0
        cell[1] += 1
    return [
        DistrictTypePoint(district=d, emergency_type=t, people_sum=p, request_count=n)
        for (d, t), (p, n) in acc.items()
    ]


# ---------------- Source breakdowns ----------------
@dataclass(frozen=True)
class SourceBreakdown:
    """Counts of one category (status, priority or type) for one source."""
    source: str
    total: int
    counts: Dict[str, int] = field(default_factory=dict)

def _source_fold(records: Iterable[SOSRecord], label_of) -> List[SourceBreakdown]:
    acc: Dict[str, Counter] = {}
    for r in records:
        acc.setdefault(r.source_key(), Counter())[label_of(r)] += 1
    return [SourceBreakdown(source=s, total=sum(c.values()), counts=dict(c)) for s, c in acc.items()]

def source_status_breakdown(records: Iterable[SOSRecord]) -> List[SourceBreakdown]:
    rows = _source_fold(records, lambda r: r.status or UNKNOWN_LABEL)
    return sorted(rows, key=lambda b: b.total, reverse=True)

def source_priority_breakdown(records: Iterable[SOSRecord]) -> List[SourceBreakdown]:
    """Sorted by the number of CRITICAL (and HIGHLY_CRITICAL) requests."""
    rows = _source_fold(records, lambda r: r.priority or UNKNOWN_LABEL)
    return sorted(
        rows,
        key=lambda b: b.counts.get("CRITICAL", 0) + b.counts.get("HIGHLY_CRITICAL", 0),
        reverse=True,
    )

def source_type_breakdown(records: Iterable[SOSRecord]) -> List[SourceBreakdown]:
    rows = _source_fold(records, lambda r: r.emergency_type or "OTHER")
    return sorted(rows, key=lambda b: b.total, reverse=True)

def source_distribution(records: Sequence[SOSRecord]) -> List[Tuple[str, int, float]]:
    """(source, count, percentage of all records) sorted by count."""
    counts = Counter(r.source_key() for r in records)
    n = len(records)
    rows = [(s, c, round1(c * 100.0 / n) if n else 0.0) for s, c in counts.items()]
    return sorted(rows, key=lambda row: row[1], reverse=True)


@dataclass(frozen=True)
class SourceStats:
    """One row of the source comparison table."""
    source: str
    total: int = 0
    people: int = 0
    critical: int = 0
    rescued: int = 0
    pending: int = 0
    verified: int = 0
    cannot_contact: int = 0
    with_children: int = 0
    with_elderly: int = 0
    with_medical: int = 0

    @property
    def rescue_rate(self) -> float:
        return round1(self.rescued * 100.0 / self.total) if self.total else 0.0

    @property
    def avg_people(self) -> float:
        return round1(self.people / self.total) if self.total else 0.0

def source_comparison(records: Iterable[SOSRecord]) -> List[SourceStats]:
    """Per-source comparison table, sorted by total.

    Here `verified` is the literal VERIFIED status (not the complementary rule
    used by district rollups) and `critical` also counts HIGHLY_CRITICAL.
    """
    acc: Dict[str, Counter] = {}
    for r in records:
        c = acc.setdefault(r.source_key(), Counter())
        status = classify_status(r.status)
        c["total"] += 1
        c["people"] += r.number_of_people or 0
        if classify_priority(r.priority) is Priority.CRITICAL or r.priority.upper() == "HIGHLY_CRITICAL":
            c["critical"] += 1
        if status is Status.RESCUED:
            c["rescued"] += 1
        if status is Status.PENDING:
            c["pending"] += 1
        if status is Status.VERIFIED:
            c["verified"] += 1
        if status is Status.CANNOT_CONTACT:
            c["cannot_contact"] += 1
        c["with_children"] += int(bool(r.has_children))
        c["with_elderly"] += int(bool(r.has_elderly))
        c["with_medical"] += int(bool(r.has_medical_emergency))
    rows = [SourceStats(source=s, **dict(c)) for s, c in acc.items()]
    return sorted(rows, key=lambda s: s.total, reverse=True)


# ---------------- Response time ----------------
@dataclass(frozen=True)
class ResponseTime:
    district: str
    avg_hours: float
    count: int

def response_hours(record: SOSRecord) -> Optional[float]:
    """Hours from creation to resolution, or None if not measurable/outlier."""
    created = parse_timestamp(record.created_at)
    resolved = parse_timestamp(record.resolved_at())
    if created is None or resolved is None:
        return None
    hours = (resolved - created).total_seconds() / 3600.0
    if hours <= 0 or hours > MAX_RESPONSE_HOURS:
        return None
    return hours

def response_times(records: Iterable[SOSRecord], limit: Optional[int] = None) -> List[ResponseTime]:
    """Average response time per district, fastest first."""
    acc: Dict[str, List[float]] = {}
    for r in records:
        d = r.district.strip()
        if not d:
            continue
        hours = response_hours(r)
        if hours is None:
            continue
        cell = acc.setdefault(d, [0.0, 0])
        cell[0] += hours
        cell[1] += 1
    rows = [ResponseTime(district=d, avg_hours=round1(total / n), count=int(n)) for d, (total, n) in acc.items()]
    rows.sort(key=lambda row: row.avg_hours)
    return rows[:limit] if limit is not None else rows

def overall_average_hours(rows: Sequence[ResponseTime]) -> float:
    """Mean of the per-district averages (0 when there are none)."""
    if not rows:
        return 0.0
    return round1(sum(r.avg_hours for r in rows) / len(rows))
