"""
Dashboard controller (SOSDash)
==============================

This is the heart of the project. The `Dashboard` object owns all mutable
state; there are no module-level globals:

1) Records arrive page by page from a `FetchLoop` (or at once from a snapshot)
2) A `FilterState` selects the records in view
3) After *every* change (page arrived, filter changed, undo/redo) the
   derived views are rebuilt from scratch by `_recompute()`
4) Cross-tabs / time series / exports read the current view

Filter history uses two stacks (undo/redo) of immutable `FilterState`s.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import csv
import json
import logging
import threading

from . import aggregate, timeline
from .client import PageResult, SOSApiClient
from .config import settings
from .fetcher import FetchLoop, FetchProgress, FetchState
from .filters import FilterState, apply_filters, within_time_range
from .models import DistrictSummary, SOSRecord

log = logging.getLogger(__name__)

# Fixed CSV column order: (header, DistrictSummary field)
CSV_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("District", "district"),
    ("Total Cases", "total"),
    ("Total People", "total_people"),
    ("Pending", "pending"),
    ("Verified", "verified"),
    ("Rescued", "rescued"),
    ("Cannot Contact", "cannot_contact"),
    ("Missing", "missing"),
    ("Critical", "critical"),
    ("High", "high"),
    ("Medium", "medium"),
    ("Low", "low"),
    ("Trapped", "trapped"),
    ("Food/Water", "food_water"),
    ("Medical", "medical"),
    ("Rescue", "rescue_assistance"),
    ("Missing Person", "missing_person"),
    ("Other", "other"),
)


@dataclass(frozen=True)
class DashboardView:
    """Everything derived from (records, filters) at one point in time."""
    records_total: int
    filtered: Tuple[SOSRecord, ...]
    summaries: Tuple[DistrictSummary, ...]
    totals: DistrictSummary
    overall: DistrictSummary

    @property
    def filters_active(self) -> bool:
        return self.records_total > 0 and len(self.filtered) != self.records_total


def build_view(records: Sequence[SOSRecord], filters: FilterState) -> DashboardView:
    """Pure: the same (records, filters) always yields an equal view."""
    filtered = apply_filters(records, filters)
    summaries = aggregate.district_summary(filtered)
    overall = aggregate.calculate_totals(aggregate.district_summary(records)) if filters.is_active() \
        else aggregate.calculate_totals(summaries)
    return DashboardView(
        records_total=len(records),
        filtered=tuple(filtered),
        summaries=tuple(summaries),
        totals=aggregate.calculate_totals(summaries),
        overall=overall,
    )


@dataclass
class Dashboard:
    """SOS analytics dashboard state.

    The dashboard stores:
    - records: the raw collection (from the fetch loop or a snapshot)
    - filters: current FilterState
    - view: derived summaries for the filtered records

    Every mutation ends in `_recompute()`.
    """
    loop: Optional[FetchLoop] = None
    source_label: Optional[str] = None
    tz: Optional[tzinfo] = None
    on_update: Optional[Callable[[DashboardView], None]] = None
    # Commands that shaped the current view (for reports)
    command_log: List[str] = field(default_factory=list)

    records: Tuple[SOSRecord, ...] = field(default=(), init=False)
    filters: FilterState = field(default_factory=FilterState, init=False)
    view: DashboardView = field(init=False)
    last_progress: Optional[FetchProgress] = field(default=None, init=False)

    # Stacks for undo/redo (store previous FilterStates)
    _undo: List[FilterState] = field(default_factory=list, init=False)
    _redo: List[FilterState] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self._thread: Optional[threading.Thread] = None
        # records/filters/view change together; pages arrive on the fetch thread
        self._lock = threading.RLock()
        if self.loop is not None:
            self.loop.on_page = self._on_page
            self.loop.on_progress = self._on_progress
        self._recompute()

    @classmethod
    def from_api(cls, api_url: Optional[str] = None, *, page_size: Optional[int] = None, **kw: Any) -> "Dashboard":
        client = SOSApiClient(api_url)
        loop = FetchLoop(client.fetch_page, page_size=page_size or settings.page_size)
        return cls(loop=loop, source_label=client.api_url, **kw)

    @classmethod
    def from_records(cls, records: Sequence[SOSRecord], *, source_label: Optional[str] = None, **kw: Any) -> "Dashboard":
        d = cls(source_label=source_label, **kw)
        d.load_records(records)
        return d

    # ---------------- Data ----------------
    def load_records(self, records: Sequence[SOSRecord]) -> None:
        """Replace the collection (snapshot mode)."""
        with self._lock:
            self.records = tuple(records)
            self._recompute()

    def refresh(self) -> FetchProgress:
        """Re-fetch everything from the API (blocking)."""
        if self.loop is None:
            raise RuntimeError("Dashboard has no API source; it was loaded from a snapshot")
        return self.loop.run()

    def refresh_in_background(self) -> threading.Thread:
        """Start `refresh()` on a daemon thread. A newer refresh supersedes it."""
        if self.loop is None:
            raise RuntimeError("Dashboard has no API source; it was loaded from a snapshot")
        t = threading.Thread(target=self.loop.run, daemon=True, name="sos-fetch")
        self._thread = t
        t.start()
        return t

    def wait(self, timeout: Optional[float] = None) -> Optional[FetchProgress]:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.last_progress

    @property
    def fetching(self) -> bool:
        return self.last_progress is not None and self.last_progress.state is FetchState.FETCHING

    @property
    def stats(self) -> Dict[str, Any]:
        return self.loop.stats if self.loop is not None else {}

    def _on_page(self, _result: PageResult) -> None:
        with self._lock:
            self.records = self.loop.records
            self._recompute()

    def _on_progress(self, progress: FetchProgress) -> None:
        with self._lock:
            self.last_progress = progress
            if progress.state is FetchState.FETCHING and progress.current_page == 0:
                # a new run started: collection was reset
                self.records = ()
                self._recompute()

    # ---------------- Filters (with history) ----------------
    def _push_history(self) -> None:
        self._undo.append(self.filters)
        self._redo.clear()

    def set_filter(self, name: str, value: str) -> None:
        with self._lock:
            new = self.filters.with_value(name, value)
            self._push_history()
            self.filters = new
            self._recompute()

    def clear_filters(self) -> None:
        with self._lock:
            self._push_history()
            self.filters = FilterState()
            self._recompute()

    def undo(self) -> bool:
        with self._lock:
            if not self._undo:
                return False
            self._redo.append(self.filters)
            self.filters = self._undo.pop()
            self._recompute()
            return True

    def redo(self) -> bool:
        with self._lock:
            if not self._redo:
                return False
            self._undo.append(self.filters)
            self.filters = self._redo.pop()
            self._recompute()
            return True

    def _recompute(self) -> None:
        with self._lock:
            self.view = build_view(self.records, self.filters)
            view = self.view
        if self.on_update is not None:
            self.on_update(view)

    # ---------------- Derived views (current filtered records) ----------------
    def district_type_matrix(self) -> List[aggregate.DistrictTypePoint]:
        return aggregate.district_type_matrix(self.view.filtered)

    def source_comparison(self) -> List[aggregate.SourceStats]:
        return aggregate.source_comparison(self.view.filtered)

    def source_breakdown(self, by: str) -> List[aggregate.SourceBreakdown]:
        fns = {
            "status": aggregate.source_status_breakdown,
            "priority": aggregate.source_priority_breakdown,
            "type": aggregate.source_type_breakdown,
        }
        if by not in fns:
            raise ValueError("breakdown must be: status | priority | type")
        return fns[by](self.view.filtered)

    def response_times(self, limit: Optional[int] = None) -> List[aggregate.ResponseTime]:
        return aggregate.response_times(self.view.filtered, limit=limit)

    def source_distribution(self) -> List[Tuple[str, int, float]]:
        return aggregate.source_distribution(self.view.filtered)

    def series(self, mode: str = "daily", time_range: str = "all", now: Optional[datetime] = None) -> list:
        """Time series of the filtered view, optionally limited to a recent window."""
        recs = self.view.filtered
        if time_range != "all":
            recs = within_time_range(recs, time_range, now or datetime.now(timezone.utc))
        fns: Dict[str, Callable[..., list]] = {
            "daily": timeline.daily_counts,
            "hourly": timeline.hourly_counts,
            "cumulative": timeline.cumulative_counts,
            "rescues": timeline.rescues_over_time,
            "status": timeline.daily_status_breakdown,
            "priority": timeline.daily_priority_breakdown,
            "sources": timeline.source_over_time,
        }
        if mode == "districts":
            return timeline.district_activity(recs, settings.top_districts, self.tz)
        if mode not in fns:
            raise ValueError("mode must be: " + " | ".join(list(fns) + ["districts"]))
        return fns[mode](recs, self.tz)

    # ---------------- Export ----------------
    def export_csv(self, path: str) -> None:
        """One row per district (filtered view), columns in CSV_COLUMNS order."""
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow([h for h, _ in CSV_COLUMNS])
            for s in self.view.summaries:
                w.writerow([getattr(s, name) for _, name in CSV_COLUMNS])
        log.info("exported %d district rows to %s", len(self.view.summaries), path)

    def export_json(self, path: str) -> None:
        """Export the district summaries (and totals) as JSON, camelCase keys."""
        payload = {
            "filters": self.filters.active(),
            "totals": self.view.totals.as_api_dict(),
            "districts": [s.as_api_dict() for s in self.view.summaries],
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        log.info("exported %d district rows to %s", len(self.view.summaries), path)
