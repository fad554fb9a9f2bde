"""
Snapshot loader (JSON / CSV / Excel -> SOSRecord list)
======================================================

The dashboard normally pages through the live API. For offline work it can
instead load a saved export:

- `.json`: an API page (`{"data": [...]}`), a combined dump
  (`{"records": [...]}`) or a bare list of record objects
- `.csv` / `.xlsx`: one record per row

Key ideas:
- We accept several spellings of each column (`numberOfPeople`,
  `number_of_people`, `Number Of People`...) by normalizing names.
- Blank cells become None before conversion, so the usual defaulting rules
  of `SOSRecord.from_api` apply (missing people -> 0, flags -> False).
- The loader never edits the snapshot file.
"""

from __future__ import annotations
from typing import Any, Dict, List
import json
import logging
import os
import re

import pandas as pd

from .models import SOSRecord

log = logging.getLogger(__name__)

# API key for every accepted (normalized) column spelling
_API_KEYS = (
    "id", "referenceNumber", "fullName", "phoneNumber", "address", "district",
    "status", "priority", "emergencyType", "numberOfPeople", "hasChildren",
    "hasElderly", "hasDisabled", "hasMedicalEmergency", "source",
    "createdAt", "rescuedAt", "completedAt", "updatedAt",
)


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read as SOS records."""


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

_KEY_BY_NORM: Dict[str, str] = {_norm(k): k for k in _API_KEYS}
_KEY_BY_NORM.update({"people": "numberOfPeople", "type": "emergencyType"})

def _cell(x: Any) -> Any:
    """Convert pandas blanks (NaN/NaT) to None."""
    if x is None:
        return None
    try:
        if pd.isna(x):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(x, pd.Timestamp):
        return x.isoformat()
    return x

def records_from_frame(df: pd.DataFrame) -> List[SOSRecord]:
    rename = {}
    for c in df.columns:
        key = _KEY_BY_NORM.get(_norm(c))
        if key and key not in rename.values():
            rename[c] = key
    if "district" not in rename.values():
        log.warning("snapshot has no district column; all rows will roll up under 'Unknown'")
    df = df[list(rename)].rename(columns=rename)
    out: List[SOSRecord] = []
    for row in df.to_dict(orient="records"):
        out.append(SOSRecord.from_api({k: _cell(v) for k, v in row.items()}))
    return out

def records_from_json(payload: Any) -> List[SOSRecord]:
    if isinstance(payload, dict):
        payload = payload.get("data", payload.get("records"))
    if not isinstance(payload, list):
        raise SnapshotError("JSON snapshot must be a list of records or an object with 'data'/'records'")
    return [SOSRecord.from_api(r) for r in payload if isinstance(r, dict)]


def load_snapshot(path: str) -> List[SOSRecord]:
    """Load records from a saved export; format is chosen by file extension."""
    ext = os.path.splitext(path)[1].lower()
    try:
        if ext == ".json":
            with open(path, "r", encoding="utf-8") as f:
                records = records_from_json(json.load(f))
        elif ext == ".csv":
            records = records_from_frame(pd.read_csv(path, dtype=str, keep_default_na=True))
        elif ext == ".xlsx":
            records = records_from_frame(pd.read_excel(path, engine="openpyxl", dtype=str))
        else:
            raise SnapshotError(f"Unsupported snapshot format: {ext or '(none)'} (use .json, .csv or .xlsx)")
    except (OSError, ValueError) as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e
    log.info("loaded %d records from %s", len(records), path)
    return records
