"""
Incremental fetch loop
======================

Pages through the SOS API and grows an in-memory record collection.

States:

    IDLE --run()--> FETCHING --last page--> COMPLETE
                        |
                        +--page failed--> ERROR

Key ideas:
- `run()` always starts over: records are cleared, the previous error is
  dropped and a new *generation* number is taken.
- After every successful page the records are appended (arrival order) and
  `on_page` is called so the owner can recompute its aggregates.
- Totals (expected records / pages) come from the first page and are kept
  for the rest of the run.
- The run is complete when the page just fetched is >= the total pages
  reported by that (most recent) response.
- Any failed page stops the loop in ERROR. Records from earlier pages stay.
  Nothing is retried; call `run()` again.
- A page that arrives for an older generation (a newer `run()` or a
  `cancel()` happened meanwhile) is discarded, so the last run wins.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .client import FetchError, PageResult
from .config import settings
from .models import SOSRecord

log = logging.getLogger(__name__)

PageFetcher = Callable[[int, int], PageResult]


class FetchState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class FetchProgress:
    """Snapshot handed to progress callbacks."""
    state: FetchState
    records_fetched: int = 0
    total_expected: int = 0
    current_page: int = 0
    total_pages: int = 0
    error: Optional[FetchError] = None
    generation: int = 0

    @property
    def complete(self) -> bool:
        return self.state is FetchState.COMPLETE

    @property
    def fraction(self) -> float:
        if not self.total_pages:
            return 1.0 if self.complete else 0.0
        return min(1.0, self.current_page / self.total_pages)


@dataclass
class FetchLoop:
    """Owns the record collection filled page by page from `fetch_page`."""
    fetch_page: PageFetcher
    page_size: int = settings.page_size
    on_page: Optional[Callable[[PageResult], None]] = None
    on_progress: Optional[Callable[[FetchProgress], None]] = None

    def __post_init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[SOSRecord] = []
        self._stats: Dict[str, Any] = {}
        self._generation = 0
        self._progress = FetchProgress(state=FetchState.IDLE)

    # ---------------- Read-only views ----------------
    @property
    def progress(self) -> FetchProgress:
        return self._progress

    @property
    def state(self) -> FetchState:
        return self._progress.state

    @property
    def error(self) -> Optional[FetchError]:
        return self._progress.error

    @property
    def records(self) -> Tuple[SOSRecord, ...]:
        with self._lock:
            return tuple(self._records)

    @property
    def stats(self) -> Dict[str, Any]:
        """The `stats` block of the first page of the current run."""
        return dict(self._stats)

    # ---------------- Transitions ----------------
    def run(self) -> FetchProgress:
        """Fetch every page; returns the final progress of *this* run."""
        gen = self._begin()
        page = 1
        while True:
            try:
                result = self.fetch_page(page, self.page_size)
            except FetchError as e:
                return self._fail(gen, e)
            except Exception as e:
                self._fail(gen, FetchError(f"{type(e).__name__}: {e}", "transport", page=page))
                raise
            if not self._accept(gen, page, result):
                return self._progress_of(gen)
            if page >= result.pagination.total_pages:
                return self._finish(gen)
            page += 1

    def cancel(self) -> None:
        """Abandon the in-flight run; its remaining pages are discarded."""
        with self._lock:
            self._generation += 1
            if self._progress.state is FetchState.FETCHING:
                self._progress = FetchProgress(
                    state=FetchState.IDLE,
                    records_fetched=len(self._records),
                    generation=self._generation,
                )
                log.info("fetch cancelled after %d records", len(self._records))

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            self._records = []
            self._stats = {}
            self._progress = FetchProgress(state=FetchState.FETCHING, generation=self._generation)
            gen = self._generation
        log.info("fetch started (generation %d, page size %d)", gen, self.page_size)
        self._notify(self._progress)
        return gen

    def _accept(self, gen: int, page: int, result: PageResult) -> bool:
        with self._lock:
            if gen != self._generation:
                log.info("discarding stale page %d from generation %d", page, gen)
                return False
            self._records.extend(result.records)
            prev = self._progress
            if page == 1:
                self._stats = dict(result.stats)
                total_expected = result.pagination.total_count
                total_pages = result.pagination.total_pages
            else:
                total_expected, total_pages = prev.total_expected, prev.total_pages
            self._progress = FetchProgress(
                state=FetchState.FETCHING,
                records_fetched=len(self._records),
                total_expected=total_expected,
                current_page=page,
                total_pages=total_pages,
                generation=gen,
            )
            progress = self._progress
        log.debug("page %d/%d: %d records so far", page, progress.total_pages, progress.records_fetched)
        if self.on_page is not None:
            self.on_page(result)
        self._notify(progress)
        return True

    def _finish(self, gen: int) -> FetchProgress:
        with self._lock:
            if gen != self._generation:
                return self._progress
            p = self._progress
            self._progress = FetchProgress(
                state=FetchState.COMPLETE,
                records_fetched=p.records_fetched,
                total_expected=p.total_expected,
                current_page=p.current_page,
                total_pages=p.total_pages,
                generation=gen,
            )
            progress = self._progress
        log.info("fetch complete: %d records in %d pages", progress.records_fetched, progress.current_page)
        self._notify(progress)
        return progress

    def _fail(self, gen: int, error: FetchError) -> FetchProgress:
        with self._lock:
            if gen != self._generation:
                log.info("ignoring failure from stale generation %d: %s", gen, error)
                return self._progress
            p = self._progress
            self._progress = FetchProgress(
                state=FetchState.ERROR,
                records_fetched=p.records_fetched,
                total_expected=p.total_expected,
                current_page=p.current_page,
                total_pages=p.total_pages,
                error=error,
                generation=gen,
            )
            progress = self._progress
        log.warning("fetch failed after %d records: %s", progress.records_fetched, error)
        self._notify(progress)
        return progress

    def _progress_of(self, gen: int) -> FetchProgress:
        # a superseded run reports where it stopped, not the newer run's state
        with self._lock:
            return FetchProgress(state=FetchState.IDLE, generation=gen) if gen != self._generation else self._progress

    def _notify(self, progress: FetchProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)
