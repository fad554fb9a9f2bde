"""
Data model (SOSRecord, DistrictSummary)
=======================================

Each case returned by the SOS API is converted into an `SOSRecord` object.
We keep it immutable (`frozen=True`) so that:
- records cannot be accidentally modified after fetching, and
- filters/aggregations build new views instead of editing data.

`DistrictSummary` is the derived row type. Summaries are rebuilt from a
record collection every time; nothing patches a summary in place.

The closed enums (`Status`, `Priority`, `EmergencyType`, `Source`) each have
an explicit fallback member so that classification is total.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class Status(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    IN_PROGRESS = "IN_PROGRESS"
    RESCUED = "RESCUED"
    COMPLETED = "COMPLETED"
    CANNOT_CONTACT = "CANNOT_CONTACT"
    CANCELLED = "CANCELLED"
    UNRECOGNIZED = "UNRECOGNIZED"


class Priority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNRECOGNIZED = "UNRECOGNIZED"


class EmergencyType(str, Enum):
    TRAPPED = "TRAPPED"
    FOOD_WATER = "FOOD_WATER"
    MEDICAL = "MEDICAL"
    RESCUE_ASSISTANCE = "RESCUE_ASSISTANCE"
    MISSING_PERSON = "MISSING_PERSON"
    OTHER = "OTHER"


class Source(str, Enum):
    WEB = "WEB"
    SMS = "SMS"
    HELAKURU_APP = "HELAKURU_APP"
    PUBLIC = "PUBLIC"
    OTHER = "OTHER"


SOURCE_LABELS: Dict[str, str] = {
    "WEB": "Web Portal",
    "SMS": "SMS",
    "HELAKURU_APP": "Helakuru App",
    "PUBLIC": "Public",
}

UNKNOWN_DISTRICT = "Unknown"

_TRUTHY = ("1", "true", "yes", "y", "t")


def _to_str(x: Any) -> str:
    if x is None:
        return ""
    return str(x).strip()

def _to_raw(x: Any) -> str:
    """Status/priority keep their padding; matching on them is exact."""
    return "" if x is None else str(x)

def _to_opt_str(x: Any) -> Optional[str]:
    s = _to_str(x)
    return s or None

def _to_count(x: Any) -> int:
    """People counts: absent/invalid/negative -> 0."""
    if x is None or isinstance(x, bool):
        return 0
    try:
        n = int(float(x))
    except (TypeError, ValueError):
        return 0
    return n if n > 0 else 0

def _to_flag(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if x is None:
        return False
    if isinstance(x, (int, float)):
        # any non-zero number is set; NaN is not
        return x == x and x != 0
    return str(x).strip().lower() in _TRUTHY


def parse_timestamp(value: Optional[str], tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp and convert it to `tz` (local time when None).

    Returns None for missing or unparseable values; callers treat that as
    "exclude from time-bucketed views".
    """
    s = _to_str(value)
    if not s:
        return None
    if s[-1] in ("Z", "z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    try:
        return dt.astimezone(tz)
    except (OverflowError, OSError, ValueError):
        return None


@dataclass(frozen=True)
class SOSRecord:
    """One SOS case as returned by the API.

    Raw strings are kept as-is; classification happens in `classify.py`.
    """
    id: str
    district: str = ""
    status: str = ""
    priority: str = ""
    emergency_type: str = ""
    number_of_people: int = 0
    has_children: bool = False
    has_elderly: bool = False
    has_disabled: bool = False
    has_medical_emergency: bool = False
    source: str = ""
    created_at: Optional[str] = None
    rescued_at: Optional[str] = None
    completed_at: Optional[str] = None
    updated_at: Optional[str] = None
    reference_number: str = ""
    full_name: str = ""
    phone_number: str = ""
    address: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "SOSRecord":
        """Build a record from one API JSON object. Unknown keys are ignored."""
        get = payload.get
        rid = get("id", get("_id"))
        return cls(
            id=_to_str(rid) or _to_str(get("referenceNumber")),
            district=_to_str(get("district")),
            status=_to_raw(get("status")),
            priority=_to_raw(get("priority")),
            emergency_type=_to_str(get("emergencyType")),
            number_of_people=_to_count(get("numberOfPeople")),
            has_children=_to_flag(get("hasChildren")),
            has_elderly=_to_flag(get("hasElderly")),
            has_disabled=_to_flag(get("hasDisabled")),
            has_medical_emergency=_to_flag(get("hasMedicalEmergency")),
            source=_to_str(get("source")),
            created_at=_to_opt_str(get("createdAt")),
            rescued_at=_to_opt_str(get("rescuedAt")),
            completed_at=_to_opt_str(get("completedAt")),
            updated_at=_to_opt_str(get("updatedAt")),
            reference_number=_to_str(get("referenceNumber")),
            full_name=_to_str(get("fullName")),
            phone_number=_to_str(get("phoneNumber")),
            address=_to_str(get("address")),
        )

    def district_key(self) -> str:
        """Grouping key for district rollups (empty -> "Unknown")."""
        return self.district.strip() or UNKNOWN_DISTRICT

    def source_key(self) -> str:
        return self.source.strip() or Source.OTHER.value

    def resolved_at(self) -> Optional[str]:
        """Resolution timestamp: rescuedAt, falling back to completedAt."""
        return self.rescued_at or self.completed_at


@dataclass(frozen=True)
class DistrictSummary:
    """Aggregated counters for one district (or the synthetic TOTAL row)."""
    district: str
    total: int = 0
    total_people: int = 0
    pending: int = 0
    verified: int = 0
    acknowledged: int = 0
    in_progress: int = 0
    rescued: int = 0
    completed: int = 0
    cannot_contact: int = 0
    missing: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    trapped: int = 0
    food_water: int = 0
    medical: int = 0
    rescue_assistance: int = 0
    missing_person: int = 0
    other: int = 0
    has_children: int = 0
    has_elderly: int = 0
    has_disabled: int = 0
    has_medical_emergency: int = 0

    def as_api_dict(self) -> Dict[str, Any]:
        """camelCase view, matching the dashboard's JSON shape."""
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


COUNTER_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(DistrictSummary) if f.name != "district")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)
