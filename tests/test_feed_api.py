from __future__ import annotations

import json

import pytest

from app.api.v1.routes.feed import parse_feed_query
from app.models.audit_log import FeedRequestLog

RANGE = {"start": "2025-07-10", "end": "2025-07-12"}


def test_health(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_events_mode_is_default(client) -> None:
    r = client.get("/api/v1/feed", params=RANGE)

    assert r.status_code == 200
    body = r.json()
    assert body["tz"] == "Europe/Zagreb"
    assert [b["id"] for b in body["boats"]] == ["A", "B"]
    assert body["boats"][0]["name"] == "Yacht A"
    assert body["boats"][0]["events"] == [
        {"start": "2025-07-10T10:00:00+02:00", "end": "2025-07-10T14:00:00+02:00"},
        {"start": "2025-07-11T00:00:00+02:00", "end": "2025-07-11T23:59:59+02:00"},
    ]


def test_events_in_requested_zone(client) -> None:
    r = client.get("/api/v1/feed", params={**RANGE, "tz": "UTC"})

    # the all-day event is stored from Zagreb midnight, which falls on 10 July in UTC
    assert r.json()["boats"][0]["events"] == [
        {"start": "2025-07-10T00:00:00+00:00", "end": "2025-07-10T23:59:59+00:00"},
        {"start": "2025-07-10T08:00:00+00:00", "end": "2025-07-10T12:00:00+00:00"},
    ]
    assert r.json()["tz"] == "UTC"


def test_pricing_mode(client) -> None:
    r = client.get("/feed", params={"mode": "pricing", "user": "alice"})

    body = r.json()
    assert [b["id"] for b in body["boats"]] == ["A", "B"]
    assert body["pricingMethod"] == "dynamic"
    assert body["slotMinutes"] == 60
    assert list(body["specialDates"]) == ["2025-08-15", "2025-12-31"]
    assert "nameLookup" not in body


def test_combined_mode(client) -> None:
    r = client.get("/api/v1/feed", params={**RANGE, "mode": "combined"})

    body = r.json()
    assert body["tz"] == "Europe/Zagreb"
    assert body["range"] == {"start": "2025-07-10T00:00:00+02:00", "end": "2025-07-12T23:59:59+02:00"}
    assert [(b["id"], b["name"]) for b in body["boats"]] == [("A", "Sea Breeze"), ("B", "Blue Pearl")]
    assert len(body["boats"][0]["events"]) == 2
    assert body["pricing"]["defaultRoundTo"] == 10.0


@pytest.mark.parametrize(
    "params, message",
    [
        ({"start": "2025-07-10"}, "start and end are required"),
        ({**RANGE, "tz": "Mars/Olympus"}, "unknown time zone"),
        ({**RANGE, "mode": "weekly"}, "unknown mode"),
        ({"start": "10.07.2025", "end": "2025-07-12"}, "invalid date"),
        ({"mode": "pricing", "sheet": "Nope"}, "not found"),
    ],
)
def test_failures_are_tagged_errors_with_status_200(client, params, message: str) -> None:
    r = client.get("/api/v1/feed", params=params)

    assert r.status_code == 200
    assert set(r.json()) == {"error"}
    assert message in r.json()["error"]


def test_jsonp(client) -> None:
    r = client.get("/feed", params={**RANGE, "callback": "handleFeed"})

    assert r.headers["content-type"].startswith("application/javascript")
    assert r.text.startswith("handleFeed(")
    assert r.text.endswith(");")
    body = json.loads(r.text[len("handleFeed("):-2])
    assert body["tz"] == "Europe/Zagreb"


def test_jsonp_wraps_errors_too(client) -> None:
    r = client.get("/feed", params={"callback": "cb"})

    assert r.text.startswith('cb({"error": ')


def test_invalid_callback_is_rejected(client) -> None:
    r = client.get("/feed", params={**RANGE, "callback": "alert(1)"})

    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"error": "invalid callback name"}


def test_requests_are_recorded(client, db_session) -> None:
    client.get("/api/v1/feed", params={**RANGE, "user": "alice", "ua": "widget/2"})
    client.get("/api/v1/feed", params={"mode": "events"})

    ok = db_session.query(FeedRequestLog).filter(FeedRequestLog.status == "ok").one()
    failed = db_session.query(FeedRequestLog).filter(FeedRequestLog.status == "error").one()
    assert (ok.mode, ok.range_start, ok.range_end, ok.user) == ("events", "2025-07-10", "2025-07-12", "alice")
    assert ok.tz == "Europe/Zagreb"
    assert json.loads(ok.client_json) == {"ua": "widget/2"}
    assert ok.error is None
    assert "required" in failed.error


def test_parse_feed_query() -> None:
    q = parse_feed_query({"u": "bob", "sheetId": "summer", "mode": "", "ref": "x" * 600})

    assert q.user == "bob"
    assert q.sheet_id == "summer"
    assert q.mode == "events"
    assert q.client == {"ref": "x" * 500}
