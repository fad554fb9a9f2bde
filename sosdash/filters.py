"""
Record filters
==============

The global filter applied before any aggregation. A `FilterState` is an
immutable value; changing a filter means building a new state (see
`FilterState.with_value`), which keeps undo/redo in the engine trivial.

Matching rules:
- district/status/priority/emergency type: exact match on the raw value,
  "all" disables the filter
- children/elderly/medical flags: "any" | "yes" | "no"
- search: case-insensitive substring over name, reference, phone, address
  and district
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from .models import SOSRecord, parse_timestamp

ALL = "all"
ANY = "any"
FLAG_VALUES = (ANY, "yes", "no")

TIME_RANGES: Dict[str, Optional[timedelta]] = {
    "all": None,
    "7d": timedelta(days=7),
    "24h": timedelta(hours=24),
}

_CHOICE_FIELDS = ("district", "status", "priority", "emergency_type")
_FLAG_FIELDS = ("has_children", "has_elderly", "has_medical_emergency")


@dataclass(frozen=True)
class FilterState:
    district: str = ALL
    status: str = ALL
    priority: str = ALL
    emergency_type: str = ALL
    has_children: str = ANY
    has_elderly: str = ANY
    has_medical_emergency: str = ANY
    search: str = ""

    def with_value(self, name: str, value: str) -> "FilterState":
        """Return a copy with one filter changed (validates name/value)."""
        if name not in {f.name for f in fields(self)}:
            raise ValueError(f"Unknown filter: {name}")
        if name in _FLAG_FIELDS and value not in FLAG_VALUES:
            raise ValueError(f"{name} must be one of: {', '.join(FLAG_VALUES)}")
        return replace(self, **{name: value})

    def active(self) -> Dict[str, str]:
        """Filters that differ from their defaults."""
        default = FilterState()
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) != getattr(default, f.name)}

    def is_active(self) -> bool:
        return bool(self.active())

    def matches(self, r: SOSRecord) -> bool:
        for name in _CHOICE_FIELDS:
            want = getattr(self, name)
            if want != ALL and getattr(r, name) != want:
                return False
        for name in _FLAG_FIELDS:
            want = getattr(self, name)
            have = bool(getattr(r, name))
            if (want == "yes" and not have) or (want == "no" and have):
                return False
        if self.search:
            q = self.search.lower()
            haystack = (r.full_name, r.reference_number, r.phone_number, r.address, r.district)
            if not any(q in h.lower() for h in haystack if h):
                return False
        return True


def apply_filters(records: Iterable[SOSRecord], state: FilterState) -> List[SOSRecord]:
    """Records matching `state`, in their original order."""
    if not state.is_active():
        return list(records)
    return [r for r in records if state.matches(r)]

def filter_options(records: Iterable[SOSRecord]) -> Dict[str, List[str]]:
    """Distinct non-empty values per choice filter, sorted."""
    out: Dict[str, set] = {name: set() for name in _CHOICE_FIELDS}
    for r in records:
        for name in _CHOICE_FIELDS:
            v = getattr(r, name)
            if v:
                out[name].add(v)
    return {name: sorted(vals) for name, vals in out.items()}

def within_time_range(records: Iterable[SOSRecord], time_range: str, now: datetime) -> List[SOSRecord]:
    """Records created within `time_range` ("all", "7d", "24h") before `now`.

    "all" keeps every record; the windowed ranges drop records without a
    parseable createdAt. `now` must be timezone-aware.
    """
    if time_range not in TIME_RANGES:
        raise ValueError(f"time range must be one of: {', '.join(TIME_RANGES)}")
    window = TIME_RANGES[time_range]
    if window is None:
        return list(records)
    cutoff = now - window
    out: List[SOSRecord] = []
    for r in records:
        dt = parse_timestamp(r.created_at)
        if dt is not None and dt >= cutoff:
            out.append(r)
    return out
