from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple

import requests

from .config import settings
from .models import SOSRecord

log = logging.getLogger(__name__)

FailureKind = Literal["transport", "timeout", "logical", "malformed"]


@dataclass(eq=False)
class FetchError(Exception):
    """A page request that failed.

    kind:
    - transport: connection failure or non-2xx HTTP status
    - timeout:   no response within the per-page timeout
    - logical:   well-formed response with success=false
    - malformed: body is not the expected JSON shape
    """
    message: str
    kind: FailureKind | str
    page: Optional[int] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:
        base = f"{self.kind}: {self.message}"
        if self.page is not None:
            base += f" (page {self.page})"
        if self.http_status:
            base += f" (HTTP {self.http_status})"
        return base


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool = False
    has_prev_page: bool = False


@dataclass(frozen=True)
class PageResult:
    records: Tuple[SOSRecord, ...]
    pagination: Pagination
    stats: Dict[str, Any] = field(default_factory=dict)


def _int_field(obj: Dict[str, Any], name: str, default: Optional[int], page: int) -> int:
    val = obj.get(name, default)
    try:
        return int(val)
    except (TypeError, ValueError):
        raise FetchError(f"pagination.{name} is not an integer: {val!r}", "malformed", page=page) from None


def parse_page(payload: Any, page: int) -> PageResult:
    """Validate one decoded page body and convert its records."""
    if not isinstance(payload, dict):
        raise FetchError("response body is not a JSON object", "malformed", page=page)
    if not payload.get("success"):
        raise FetchError(str(payload.get("error") or "API returned success=false"), "logical", page=page)

    raw = payload.get("data", payload.get("records"))
    if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
        raise FetchError("records are missing or not a list of objects", "malformed", page=page)

    pg = payload.get("pagination")
    if not isinstance(pg, dict):
        raise FetchError("pagination block is missing", "malformed", page=page)
    pagination = Pagination(
        current_page=_int_field(pg, "currentPage", page, page),
        total_pages=_int_field(pg, "totalPages", None, page),
        total_count=_int_field(pg, "totalCount", len(raw), page),
        limit=_int_field(pg, "limit", len(raw), page),
        has_next_page=bool(pg.get("hasNextPage", False)),
        has_prev_page=bool(pg.get("hasPrevPage", False)),
    )
    stats = payload.get("stats")
    return PageResult(
        records=tuple(SOSRecord.from_api(r) for r in raw),
        pagination=pagination,
        stats=stats if isinstance(stats, dict) else {},
    )


class SOSApiClient:
    """
    Thin wrapper around the paginated SOS endpoint: GET {api_url}?page=N&limit=S.
    - every request carries a timeout (no indefinite hangs)
    - failures are raised as FetchError; nothing is retried here
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        *,
        timeout_s: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url or settings.api_url
        self.timeout_s = int(settings.request_timeout_s if timeout_s is None else timeout_s)
        self.session = session or requests.Session()
        self.headers = {"User-Agent": settings.user_agent, "Accept": "application/json"}

    def fetch_page(self, page: int, limit: int) -> PageResult:
        log.debug("GET %s page=%s limit=%s", self.api_url, page, limit)
        try:
            resp = self.session.get(
                self.api_url,
                params={"page": page, "limit": limit},
                headers=self.headers,
                timeout=self.timeout_s,
            )
        except requests.Timeout as e:
            raise FetchError(f"no response within {self.timeout_s}s", "timeout", page=page) from e
        except requests.RequestException as e:
            raise FetchError(f"{type(e).__name__}: {e}", "transport", page=page) from e

        if not 200 <= resp.status_code < 300:
            raise FetchError(f"API returned {resp.status_code}", "transport", page=page, http_status=resp.status_code)
        try:
            payload = resp.json()
        except ValueError as e:
            raise FetchError("response body is not valid JSON", "malformed", page=page) from e
        return parse_page(payload, page)

    def __call__(self, page: int, limit: int) -> PageResult:
        return self.fetch_page(page, limit)
