"""
Record classifier
=================

Pure functions mapping one record's raw strings to the buckets it
contributes to. Nothing here raises on bad input: anything that does not
match a known value becomes the enum's fallback member.

Rules:
- Status and priority use exact, case-insensitive matching. Padded values
  such as " PENDING " are not trimmed and stay unrecognized.
- Emergency type uses case-insensitive *substring* matching, checked in a
  fixed order (TRAPPED, FOOD/WATER, MEDICAL, RESCUE, MISSING, else OTHER).
  The first match wins.
- "Verified" is complementary: every status except PENDING, CANCELLED and
  CANNOT_CONTACT counts as verified, including unrecognized/absent ones.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .models import EmergencyType, Priority, SOSRecord, Source, Status

_STATUS_BY_NAME: Dict[str, Status] = {s.value: s for s in Status if s is not Status.UNRECOGNIZED}
_PRIORITY_BY_NAME: Dict[str, Priority] = {p.value: p for p in Priority if p is not Priority.UNRECOGNIZED}
_SOURCE_BY_NAME: Dict[str, Source] = {s.value: s for s in Source}

# Order matters: a type containing both RESCUE and MEDICAL resolves to MEDICAL.
_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], EmergencyType], ...] = (
    (("TRAPPED",), EmergencyType.TRAPPED),
    (("FOOD", "WATER"), EmergencyType.FOOD_WATER),
    (("MEDICAL",), EmergencyType.MEDICAL),
    (("RESCUE",), EmergencyType.RESCUE_ASSISTANCE),
    (("MISSING",), EmergencyType.MISSING_PERSON),
)

_NOT_VERIFIED = frozenset({Status.PENDING, Status.CANCELLED, Status.CANNOT_CONTACT})

# DistrictSummary counters incremented directly by a status
STATUS_BUCKETS: Dict[Status, Tuple[str, ...]] = {
    Status.PENDING: ("pending",),
    Status.ACKNOWLEDGED: ("acknowledged",),
    Status.IN_PROGRESS: ("in_progress",),
    Status.RESCUED: ("rescued",),
    Status.COMPLETED: ("completed", "rescued"),
    Status.CANNOT_CONTACT: ("cannot_contact",),
}

PRIORITY_BUCKETS: Dict[Priority, str] = {
    Priority.CRITICAL: "critical",
    Priority.HIGH: "high",
    Priority.MEDIUM: "medium",
    Priority.LOW: "low",
}

TYPE_BUCKETS: Dict[EmergencyType, Tuple[str, ...]] = {
    EmergencyType.TRAPPED: ("trapped",),
    EmergencyType.FOOD_WATER: ("food_water",),
    EmergencyType.MEDICAL: ("medical",),
    EmergencyType.RESCUE_ASSISTANCE: ("rescue_assistance",),
    EmergencyType.MISSING_PERSON: ("missing_person", "missing"),
    EmergencyType.OTHER: ("other",),
}


def _upper(value: Optional[str]) -> str:
    return (value or "").upper()

def classify_status(value: Optional[str]) -> Status:
    return _STATUS_BY_NAME.get(_upper(value), Status.UNRECOGNIZED)

def classify_priority(value: Optional[str]) -> Priority:
    return _PRIORITY_BY_NAME.get(_upper(value), Priority.UNRECOGNIZED)

def classify_source(value: Optional[str]) -> Source:
    return _SOURCE_BY_NAME.get(_upper(value), Source.OTHER)

def classify_emergency_type(value: Optional[str]) -> EmergencyType:
    t = _upper(value)
    for needles, bucket in _TYPE_RULES:
        if any(n in t for n in needles):
            return bucket
    return EmergencyType.OTHER

def is_verified(status: Status) -> bool:
    """Complementary rule: anything not PENDING/CANCELLED/CANNOT_CONTACT."""
    return status not in _NOT_VERIFIED


@dataclass(frozen=True)
class Classification:
    """All buckets one record falls into."""
    status: Status
    priority: Priority
    emergency_type: EmergencyType
    verified: bool
    has_children: bool
    has_elderly: bool
    has_disabled: bool
    has_medical_emergency: bool

    def buckets(self) -> Tuple[str, ...]:
        """DistrictSummary counter names to increment by one (people excluded)."""
        out = ["total"]
        out.extend(STATUS_BUCKETS.get(self.status, ()))
        if self.verified:
            out.append("verified")
        if self.priority in PRIORITY_BUCKETS:
            out.append(PRIORITY_BUCKETS[self.priority])
        out.extend(TYPE_BUCKETS[self.emergency_type])
        for name in ("has_children", "has_elderly", "has_disabled", "has_medical_emergency"):
            if getattr(self, name):
                out.append(name)
        return tuple(out)


def classify(record: SOSRecord) -> Classification:
    status = classify_status(record.status)
    return Classification(
        status=status,
        priority=classify_priority(record.priority),
        emergency_type=classify_emergency_type(record.emergency_type),
        verified=is_verified(status),
        has_children=bool(record.has_children),
        has_elderly=bool(record.has_elderly),
        has_disabled=bool(record.has_disabled),
        has_medical_emergency=bool(record.has_medical_emergency),
    )
