"""HTTP-level tests with the stores swapped for in-memory ones."""

import asyncio
from dataclasses import replace

from lifereset.errors import StorageError

HEADERS = {"X-User-Id": "Tester@Example.com"}
USER = "tester@example.com"


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_progress_initialises_user(client, store):
    response = client.get("/v1/progress", headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == USER
    assert body["current_day"] == 1
    assert body["streak"] == 0
    assert body["completed_days"] == []
    assert body["completion_rate"] == 3
    assert USER in store.progress


def test_missing_header_falls_back_to_demo_user(client, store):
    client.get("/v1/progress")
    assert "demo@lifereset30.com" in store.progress


def test_day_tasks_are_created_once(client, store):
    first = client.get("/v1/tasks/1", headers=HEADERS).json()
    second = client.get("/v1/tasks/1", headers=HEADERS).json()
    assert len(first["items"]) == 6
    assert [item["id"] for item in first["items"]] == [item["id"] for item in second["items"]]
    assert first["fully_complete"] is False
    assert len(store.tasks) == 6


def test_day_out_of_range(client):
    response = client.get("/v1/tasks/31", headers=HEADERS)
    assert response.status_code == 400
    assert "detail" in response.json()


def test_toggle_all_tasks_completes_day(client):
    client.get("/v1/progress", headers=HEADERS)
    items = client.get("/v1/tasks/1", headers=HEADERS).json()["items"]
    body = None
    for item in items:
        response = client.post(f"/v1/tasks/1/{item['id']}/toggle", headers=HEADERS)
        assert response.status_code == 200
        body = response.json()
    assert body["day_completed"] is True
    assert body["warning"] is None
    assert body["progress"]["current_day"] == 2
    assert body["progress"]["streak"] == 1
    assert body["progress"]["completed_days"] == [1]

    progress = client.get("/v1/progress", headers=HEADERS).json()
    assert progress["current_day"] == 2


def test_toggle_unknown_task(client):
    client.get("/v1/tasks/1", headers=HEADERS)
    response = client.post("/v1/tasks/1/nope/toggle", headers=HEADERS)
    assert response.status_code == 404


def test_create_and_delete_custom_task(client, store):
    response = client.post(
        "/v1/tasks",
        headers=HEADERS,
        json={"day": 1, "title": "Read 10 pages", "duration": 20, "category": "evening"},
    )
    assert response.status_code == 201
    created = response.json()["task"]
    assert created["origin"] == "custom"
    assert created["priority"] == "low"
    assert response.json()["warning"] is None

    response = client.delete(f"/v1/tasks/1/{created['id']}", headers=HEADERS)
    assert response.status_code == 200
    assert created["id"] not in {item["id"] for item in response.json()["items"]}
    assert (USER, created["id"]) not in store.tasks


def test_create_task_with_blank_title(client, store):
    response = client.post("/v1/tasks", headers=HEADERS, json={"day": 1, "title": "   ", "duration": 10})
    assert response.status_code == 400
    assert store.tasks == {}


def test_create_task_with_unknown_category(client):
    response = client.post(
        "/v1/tasks", headers=HEADERS, json={"day": 1, "title": "Walk", "duration": 10, "category": "night"}
    )
    assert response.status_code == 422


def test_delete_essential_task_forbidden(client, store):
    items = client.get("/v1/tasks/1", headers=HEADERS).json()["items"]
    response = client.delete(f"/v1/tasks/1/{items[0]['id']}", headers=HEADERS)
    assert response.status_code == 403
    assert len(store.tasks) == 6


def test_complete_day_with_open_tasks_forbidden(client):
    client.get("/v1/tasks/1", headers=HEADERS)
    response = client.post("/v1/progress/complete-day", headers=HEADERS, json={})
    assert response.status_code == 403


def test_complete_day_is_idempotent(client, store):
    items = client.get("/v1/tasks/1", headers=HEADERS).json()["items"]
    for item in items:
        key = (USER, item["id"])
        store.tasks[key] = replace(store.tasks[key], completed=True)

    first = client.post("/v1/progress/complete-day", headers=HEADERS, json={"day": 1}).json()
    second = client.post("/v1/progress/complete-day", headers=HEADERS, json={"day": 1}).json()
    assert first["day_completed"] is True
    assert second["day_completed"] is False
    assert second["progress"]["streak"] == 1
    assert second["progress"]["current_day"] == 2


def test_complete_future_day_forbidden(client):
    client.get("/v1/progress", headers=HEADERS)
    response = client.post("/v1/progress/complete-day", headers=HEADERS, json={"day": 5})
    assert response.status_code == 403


def test_milestones(client):
    body = client.get("/v1/progress/milestones", headers=HEADERS).json()
    assert [item["requirement"] for item in body["items"]] == [7, 14, 21, 30]
    assert not any(item["unlocked"] for item in body["items"])


def test_weekly_review(client):
    client.get("/v1/progress", headers=HEADERS)
    items = client.get("/v1/tasks/1", headers=HEADERS).json()["items"]
    client.post(f"/v1/tasks/1/{items[0]['id']}/toggle", headers=HEADERS)
    body = client.get("/v1/review/weekly", headers=HEADERS).json()
    assert body["days"] == [1]
    assert body["most_productive"]["day"] == 1
    assert body["most_productive"]["completed"] == 1
    assert body["total_minutes"] == items[0]["duration"]


def test_toggle_falls_back_to_cache(client, store, cache):
    items = client.get("/v1/tasks/1", headers=HEADERS).json()["items"]

    async def unavailable(user_id, task):
        raise StorageError("Storage unavailable")

    store.save_task = unavailable
    body = client.post(f"/v1/tasks/1/{items[0]['id']}/toggle", headers=HEADERS).json()
    assert body["warning"] == "sync failed"
    assert body["task"]["completed"] is True

    status = client.get("/v1/sync/status", headers=HEADERS).json()
    assert status == {"pending": 1, "last_error": "sync failed"}

    del store.save_task
    assert client.post("/v1/sync/run", headers=HEADERS).json() == {"ok": True, "flushed": 1}
    assert client.get("/v1/sync/status", headers=HEADERS).json()["pending"] == 0
    assert store.tasks[(USER, items[0]["id"])].completed is True


def test_progress_storage_error_maps_to_503(client, store):
    async def unavailable(user_id):
        raise StorageError("Storage unavailable")

    store.load_progress = unavailable
    response = client.get("/v1/progress", headers=HEADERS)
    assert response.status_code == 503
    assert response.json() == {"detail": "Storage unavailable"}


def test_sync_run_only_replays_caller(client, store, cache, make_task):
    other = make_task(user_id="someone@example.com")
    asyncio.run(cache.mirror_task("someone@example.com", other))

    assert client.post("/v1/sync/run", headers=HEADERS).json() == {"ok": True, "flushed": 0}
    assert len(cache.pending) == 1
    assert store.tasks == {}
