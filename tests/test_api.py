"""End-to-end tests for the HTTP surface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from dayplan.main import app, mutation_log_repo, schedule_repo


@pytest.fixture(autouse=True)
def _clear_repos():
    """Reset in-memory repos before each test."""
    schedule_repo._store.clear()
    mutation_log_repo._entries.clear()
    yield
    schedule_repo._store.clear()
    mutation_log_repo._entries.clear()


@pytest.fixture()
def client():
    return TestClient(app)


DAY = "2026-03-02"


def _item(item_id: str, start: str, end: str, **overrides) -> dict:
    payload = {
        "id": item_id,
        "day": DAY,
        "title": f"Item {item_id}",
        "start_time": start,
        "end_time": end,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Engine routes
# ---------------------------------------------------------------------------


def test_post_conflicts(client: TestClient):
    schedule = {
        "day": DAY,
        "items": [
            _item("a", "09:00", "10:00", priority="high"),
            _item("b", "09:30", "10:30", priority="medium"),
        ],
    }
    resp = client.post("/conflicts", json=schedule)

    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 1
    assert body[0]["type"] == "overlap"
    assert body[0]["items"] == ["a", "b"]
    assert body[0]["severity"] == "medium"


def test_post_conflicts_rejects_malformed_time(client: TestClient):
    schedule = {"day": DAY, "items": [_item("a", "9:00", "10:00")]}
    resp = client.post("/conflicts", json=schedule)
    assert resp.status_code == 422


def test_post_statistics(client: TestClient):
    schedule = {"day": DAY, "items": [_item("t1", "09:00", "11:00")]}
    resp = client.post("/statistics", json=schedule)

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_hours"] == 2
    assert body["break_hours"] == 1
    assert body["utilization_percent"] == 25
    assert body["completion_percent"] == 0


def test_post_suggestions(client: TestClient):
    schedule = {
        "day": DAY,
        "items": [
            _item("m", "09:00", "12:00"),
            _item("e", "13:00", "14:00", is_locked=True),
            _item("l", "15:30", "18:00"),
        ],
    }
    resp = client.post(
        "/suggestions",
        json={"candidate": {"item_id": "new", "duration_minutes": 90}, "schedules": [schedule]},
    )

    assert resp.status_code == 200
    [suggestion] = resp.json()
    [slot] = suggestion["suggested_slots"]
    assert (slot["start_time"], slot["end_time"]) == ("14:00", "15:30")


def test_post_suggestions_without_room_is_empty(client: TestClient):
    schedule = {"day": DAY, "items": [_item("all", "09:00", "18:00")]}
    resp = client.post(
        "/suggestions",
        json={"candidate": {"item_id": "new", "duration_minutes": 30}, "schedules": [schedule]},
    )
    assert resp.status_code == 200
    assert resp.json() == []


def test_post_recurrence_expand(client: TestClient):
    resp = client.post(
        "/recurrence/expand",
        json={
            "pattern": {"frequency": "weekly", "interval": 1, "days_of_week": [1, 3]},
            "anchor": _item("standup", "09:30", "09:45", type="meeting"),
            "date_range": {"start": DAY, "end": "2026-03-15"},
        },
    )
    assert resp.status_code == 200
    assert [i["day"] for i in resp.json()] == [
        "2026-03-02",
        "2026-03-04",
        "2026-03-09",
        "2026-03-11",
    ]


def test_post_recurrence_custom_is_rejected(client: TestClient):
    resp = client.post(
        "/recurrence/expand",
        json={
            "pattern": {"frequency": "custom"},
            "anchor": _item("standup", "09:30", "09:45"),
            "date_range": {"start": DAY, "end": "2026-03-15"},
        },
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidRecurrencePattern"


# ---------------------------------------------------------------------------
# Stored schedules
# ---------------------------------------------------------------------------


def test_get_schedule_creates_default_day(client: TestClient):
    resp = client.get(f"/schedules/u1/{DAY}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["schedule"]["items"] == []
    assert body["schedule"]["working_hours"]["start_time"] == "09:00"
    assert body["conflicts"] == []
    assert body["statistics"]["utilization_percent"] == 0


def test_mutations_update_view_and_log(client: TestClient):
    resp = client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "create", "item": _item("a", "09:00", "10:00")},
    )
    assert resp.status_code == 200
    assert [i["id"] for i in resp.json()["schedule"]["items"]] == ["a"]

    resp = client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "create", "item": _item("b", "09:30", "10:30")},
    )
    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()["conflicts"]] == ["overlap-a-b"]

    resp = client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={
            "action": "move",
            "drag": {"item_id": "b", "drag_type": "move", "start_time": "10:00"},
        },
    )
    assert resp.status_code == 200
    assert resp.json()["conflicts"] == []

    log = client.get(f"/schedules/u1/{DAY}/mutations").json()
    assert [e["action"] for e in log] == ["create", "create", "move"]
    assert all(e["outcome"] == "applied" for e in log)


def test_mutation_on_unknown_item_is_404(client: TestClient):
    resp = client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "update", "item_id": "ghost", "changes": {"title": "x"}},
    )
    assert resp.status_code == 404


def test_invalid_resize_is_422(client: TestClient):
    client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "create", "item": _item("a", "09:00", "10:00")},
    )
    resp = client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={
            "action": "move",
            "drag": {"item_id": "a", "drag_type": "resize-end", "end_time": "08:00"},
        },
    )
    assert resp.status_code == 422

    log = client.get(f"/schedules/u1/{DAY}/mutations").json()
    assert log[-1]["outcome"] == "rejected"
    assert log[-1]["error"] == "InvalidInterval"


def test_owner_suggestions_over_stored_days(client: TestClient):
    client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "create", "item": _item("a", "09:00", "12:00")},
    )
    resp = client.post(
        "/schedules/u1/suggestions",
        json={
            "candidate": {"item_id": "new", "duration_minutes": 180},
            "date_range": {"start": DAY, "end": "2026-03-03"},
        },
    )
    assert resp.status_code == 200
    [suggestion] = resp.json()
    slots = [(s["day"], s["start_time"]) for s in suggestion["suggested_slots"]]
    # The exact morning fit on the empty second day outranks the first afternoon
    assert slots == [
        ("2026-03-03", "09:00"),
        ("2026-03-02", "13:00"),
        ("2026-03-03", "13:00"),
    ]


def test_owner_suggestions_range_is_limited(client: TestClient):
    resp = client.post(
        "/schedules/u1/suggestions",
        json={
            "candidate": {"item_id": "new", "duration_minutes": 30},
            "date_range": {"start": DAY, "end": "2026-04-15"},
        },
    )
    assert resp.status_code == 400


def test_post_recurrence_range_is_limited(client: TestClient):
    resp = client.post(
        "/recurrence/expand",
        json={
            "pattern": {"frequency": "daily"},
            "anchor": _item("standup", "09:30", "09:45"),
            "date_range": {"start": DAY, "end": "2126-03-02"},
        },
    )
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Working hours and range views
# ---------------------------------------------------------------------------


def test_put_working_hours_updates_stored_day(client: TestClient):
    client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "create", "item": _item("a", "08:00", "10:00")},
    )
    resp = client.put(
        f"/schedules/u1/{DAY}/working-hours",
        json={
            "start_time": "08:00",
            "end_time": "16:00",
            "break_times": [{"start_time": "12:00", "end_time": "12:30", "type": "lunch"}],
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["schedule"]["working_hours"]["start_time"] == "08:00"
    assert [i["id"] for i in body["schedule"]["items"]] == ["a"]
    assert body["statistics"]["break_hours"] == 0.5
    # 120 of 450 available minutes
    assert body["statistics"]["utilization_percent"] == 27

    log = client.get(f"/schedules/u1/{DAY}/mutations").json()
    assert log[-1]["action"] == "working-hours"


def test_put_working_hours_rejects_short_day(client: TestClient):
    resp = client.put(
        f"/schedules/u1/{DAY}/working-hours",
        json={"start_time": "09:00", "end_time": "11:00"},
    )
    assert resp.status_code == 422

    view = client.get(f"/schedules/u1/{DAY}").json()
    assert view["schedule"]["working_hours"]["end_time"] == "18:00"


def test_get_schedule_range(client: TestClient):
    client.post(
        f"/schedules/u1/{DAY}/mutations",
        json={"action": "create", "item": _item("a", "09:00", "10:00")},
    )
    resp = client.get("/schedules/u1", params={"start": DAY, "end": "2026-03-04"})

    assert resp.status_code == 200
    views = resp.json()
    assert [v["schedule"]["day"] for v in views] == ["2026-03-02", "2026-03-03", "2026-03-04"]
    assert [len(v["schedule"]["items"]) for v in views] == [1, 0, 0]
    assert views[0]["statistics"]["total_tasks"] == 1


def test_get_schedule_range_is_limited(client: TestClient):
    too_long = client.get("/schedules/u1", params={"start": DAY, "end": "2026-04-15"})
    backwards = client.get("/schedules/u1", params={"start": DAY, "end": "2026-03-01"})

    assert too_long.status_code == 400
    assert backwards.status_code == 400
