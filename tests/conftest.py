import json

import pytest

from sosdash.models import SOSRecord


def make_record(**kw):
    """SOSRecord from camelCase API keys, with a generated id."""
    kw.setdefault("id", f"r{make_record.counter}")
    make_record.counter += 1
    return SOSRecord.from_api(kw)

make_record.counter = 0


def page_payload(records, page, total_pages, total_count=None, success=True):
    return {
        "success": success,
        "data": records,
        "stats": {"totalPeople": sum(r.get("numberOfPeople", 0) for r in records)},
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalCount": total_count if total_count is not None else len(records) * total_pages,
            "limit": len(records),
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    def json(self):
        if self._text is not None:
            return json.loads(self._text)
        return self._payload


class FakeSession:
    """Stands in for requests.Session: returns queued responses per page."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        resp = self.responses[params["page"]]
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture
def scenario_records():
    return [
        make_record(district="Colombo", status="PENDING", priority="CRITICAL",
                    emergencyType="TRAPPED_UNDER_DEBRIS", numberOfPeople=3),
        make_record(district="Colombo", status="RESCUED", priority="HIGH",
                    emergencyType="FOOD_WATER_SHORTAGE", numberOfPeople=2),
        make_record(district="", status="VERIFIED", priority="LOW",
                    emergencyType="OTHER", numberOfPeople=1),
    ]
