from datetime import datetime, timedelta, timezone

import pytest


def in_days(days: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.fixture
def payload(seed):
    return {
        "title": "Integration Test Task",
        "description": "Created by the API tests",
        "assignee_id": seed["alice"],
        "due_date": in_days(1),
        "priority": "High",
        "tag_ids": [seed["tags"]["bug"]],
    }


async def create(client, payload) -> dict:
    response = await client.post("/tasks/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Task Tracker API running"}


async def test_create_and_fetch_task(client, payload):
    task = await create(client, payload)

    assert task["status"] == "New"
    assert task["effective_status"] == "New"
    assert task["priority"] == "High"
    assert task["completed_at"] is None
    assert task["assignee_name"] == "Alice"
    assert task["tags"] == ["bug"]
    assert task["version"] == 1

    response = await client.get(f"/tasks/{task['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Integration Test Task"


async def test_create_strips_markup(client, payload):
    payload["title"] = "<b>Bold</b>   title"
    task = await create(client, payload)
    assert task["title"] == "Bold title"


async def test_create_rejection_lists_every_reason(client, payload):
    payload.update(title="ab", assignee_id=999, priority="Urgent")
    response = await client.post("/tasks/", json=payload)

    assert response.status_code == 400
    assert response.json()["errors"] == [
        "invalid title length",
        "assignee not found: 999",
        "invalid priority",
    ]
    listed = await client.get("/tasks/")
    assert listed.json() == []


async def test_get_missing_task_is_404(client):
    response = await client.get("/tasks/9999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Task 9999 not found"


async def test_patch_updates_only_sent_fields(client, payload, seed):
    task = await create(client, payload)

    response = await client.patch(
        f"/tasks/{task['id']}",
        json={"status": "Done", "tag_ids": [seed["tags"]["docs"], seed["tags"]["feature"]]},
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["status"] == "Done"
    assert updated["completed_at"] is not None
    assert sorted(updated["tags"]) == ["docs", "feature"]
    assert updated["title"] == task["title"]
    assert updated["priority"] == "High"
    assert updated["version"] == 2

    # null leaves a field alone; an empty string clears it
    kept = (await client.patch(f"/tasks/{task['id']}", json={"description": None})).json()
    assert kept["description"] == "Created by the API tests"
    assert kept["version"] == 2
    cleared = (await client.patch(f"/tasks/{task['id']}", json={"description": ""})).json()
    assert cleared["description"] == ""
    assert cleared["version"] == 3


async def test_patch_with_stale_version_is_409(client, payload):
    task = await create(client, payload)
    await client.patch(f"/tasks/{task['id']}", json={"priority": "Low", "version": 1})

    response = await client.patch(f"/tasks/{task['id']}", json={"priority": "Medium", "version": 1})
    assert response.status_code == 409


async def test_patch_unknown_tag_changes_nothing(client, payload):
    task = await create(client, payload)

    response = await client.patch(f"/tasks/{task['id']}", json={"title": "Renamed", "tag_ids": [404]})
    assert response.status_code == 400
    assert response.json()["errors"] == ["tags not found: 404"]

    unchanged = (await client.get(f"/tasks/{task['id']}")).json()
    assert unchanged["title"] == task["title"]
    assert unchanged["tags"] == ["bug"]


async def test_status_route(client, payload):
    task = await create(client, payload)

    response = await client.patch(f"/tasks/{task['id']}/status", params={"new_status": "in_progress"})
    assert response.status_code == 200
    body = response.json()
    assert body["changed"] is True
    assert body["task"]["status"] == "InProgress"

    response = await client.patch(f"/tasks/{task['id']}/status", params={"new_status": "Finished"})
    assert response.status_code == 400
    assert response.json()["detail"] == "invalid status: Finished"

    response = await client.patch("/tasks/9999/status", params={"new_status": "Done"})
    assert response.status_code == 404


async def test_delete_task(client, payload):
    task = await create(client, payload)

    response = await client.delete(f"/tasks/{task['id']}")
    assert response.status_code == 204

    assert (await client.get(f"/tasks/{task['id']}")).status_code == 404
    assert (await client.delete(f"/tasks/{task['id']}")).status_code == 404


async def test_list_filters(client, payload, seed):
    first = await create(client, payload)
    second = await create(client, {**payload, "assignee_id": seed["bob"], "tag_ids": [seed["tags"]["docs"]],
                                   "due_date": in_days(5)})

    response = await client.get("/tasks/", params={"assignee_id": seed["bob"]})
    assert [t["id"] for t in response.json()] == [second["id"]]

    response = await client.get("/tasks/", params={"tag_ids": [seed["tags"]["bug"], seed["tags"]["docs"]]})
    assert [t["id"] for t in response.json()] == [first["id"], second["id"]]

    response = await client.get("/tasks/", params={"due_before": in_days(2)})
    assert [t["id"] for t in response.json()] == [first["id"]]

    response = await client.get("/tasks/", params={"status": "no-such-status"})
    assert len(response.json()) == 2


async def test_overdue_and_reports(client, payload, seed):
    task = await create(client, payload)
    await client.patch(f"/tasks/{task['id']}/status", params={"new_status": "Done"})
    await create(client, {**payload, "title": "Still open"})

    assert (await client.get("/tasks/overdue")).json() == []

    summary = (await client.get("/reports/status-summary")).json()
    assert summary == {"New": 1, "InProgress": 0, "Done": 1, "Overdue": 0}

    assert (await client.get("/reports/overdue-by-assignee")).json() == {}

    average = (await client.get("/reports/average-completion")).json()
    assert average["average_completion_days"] is not None

    count = await client.get("/tasks/count-by-status", params={"status": "done"})
    assert count.json() == {"status": "done", "count": 1}
    bad = await client.get("/tasks/count-by-status", params={"status": "Overdue"})
    assert bad.status_code == 400

    csv = await client.get("/reports/csv")
    assert csv.status_code == 200
    assert csv.headers["content-type"].startswith("text/csv")
    assert len(csv.text.strip().splitlines()) == 3


async def test_users(client, seed):
    response = await client.post("/users/", json={"name": "Carol", "email": "carol@example.com"})
    assert response.status_code == 201
    carol = response.json()

    assert (await client.get(f"/users/{carol['id']}")).json()["email"] == "carol@example.com"
    assert len((await client.get("/users/")).json()) == 3
    assert (await client.get("/users/9999")).status_code == 404

    duplicate = await client.post("/users/", json={"name": "Alice 2", "email": "alice@example.com"})
    assert duplicate.status_code == 409

    invalid = await client.post("/users/", json={"name": "Dave", "email": "not-an-email"})
    assert invalid.status_code == 422


async def test_tags(client, seed):
    response = await client.post("/tags/", json={"name": "urgent"})
    assert response.status_code == 201
    assert response.json()["name"] == "urgent"

    names = [t["name"] for t in (await client.get("/tags/")).json()]
    assert names == ["bug", "feature", "refactor", "docs", "urgent"]

    assert (await client.post("/tags/", json={"name": "bug"})).status_code == 409
