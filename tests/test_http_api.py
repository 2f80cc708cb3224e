import pytest
from fastapi.testclient import TestClient

from taskmanager.adapters.memory.task_repo import InMemoryTaskRepository
from taskmanager.api.http.app import create_app
from taskmanager.core.config import Settings

PAST = "2020-01-01T00:00:00Z"
FUTURE = "2999-01-01T00:00:00Z"


@pytest.fixture
def client():
    app = create_app(Settings(), repository=InMemoryTaskRepository())
    with TestClient(app) as c:
        yield c


def create(client, **body):
    body.setdefault("userId", 1)
    response = client.post("/api/tasks", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_task_applies_defaults(client):
    task = create(client, title="  New Task ", description="d")

    assert task["id"] == 1
    assert task["title"] == "New Task"
    assert task["status"] == "pending"
    assert task["priority"] == "medium"
    assert task["userId"] == 1
    assert task["dueDate"] is None
    assert task["isOverdue"] is False
    assert task["isCompleted"] is False
    assert task["createdAt"].endswith("Z")


def test_create_ignores_client_status(client):
    task = create(client, title="A", status="completed")
    assert task["status"] == "pending"


@pytest.mark.parametrize(
    "body, message",
    [
        ({"title": "", "userId": 1}, "Title is required"),
        ({"userId": 1}, "Title is required"),
        ({"title": "X"}, "User ID is required"),
    ],
)
def test_create_validation_errors(client, body, message):
    response = client.post("/api/tasks", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_create_rejects_unknown_priority(client):
    response = client.post("/api/tasks", json={"title": "A", "userId": 1, "priority": "urgent"})
    assert response.status_code == 400
    assert "priority" in response.json()["error"]


def test_list_is_scoped_to_user_and_paginated(client):
    create(client, title="mine 1")
    create(client, title="mine 2")
    create(client, title="theirs", userId=2)

    body = client.get("/api/tasks", params={"userId": 1}).json()

    assert [t["title"] for t in body["tasks"]] == ["mine 2", "mine 1"]
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 2, "pages": 1}


def test_list_filters(client):
    create(client, title="late", dueDate=PAST, priority="high")
    create(client, title="later", dueDate=FUTURE)
    done = create(client, title="done", dueDate=PAST)
    client.patch(f"/api/tasks/{done['id']}/complete", params={"userId": 1})

    overdue = client.get("/api/tasks", params={"userId": 1, "overdue": "true"}).json()
    high = client.get("/api/tasks", params={"userId": 1, "priority": "high"}).json()
    completed = client.get("/api/tasks", params={"userId": 1, "status": "completed"}).json()

    assert [t["title"] for t in overdue["tasks"]] == ["late"]
    assert overdue["tasks"][0]["isOverdue"] is True
    assert [t["title"] for t in high["tasks"]] == ["late"]
    assert [t["title"] for t in completed["tasks"]] == ["done"]


def test_list_rejects_bad_status_and_missing_user(client):
    assert client.get("/api/tasks", params={"userId": 1, "status": "archived"}).status_code == 400
    assert client.get("/api/tasks").status_code == 400
    assert client.get("/api/tasks", params={"userId": 1, "page": 0}).status_code == 400


def test_get_task_not_found_vs_forbidden(client):
    task = create(client, title="private")

    assert client.get(f"/api/tasks/{task['id']}", params={"userId": 1}).status_code == 200
    forbidden = client.get(f"/api/tasks/{task['id']}", params={"userId": 2})
    missing = client.get("/api/tasks/999", params={"userId": 1})

    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Unauthorized"}
    assert "private" not in forbidden.text
    assert missing.status_code == 404
    assert missing.json() == {"error": "Task not found"}


def test_patch_updates_only_given_fields(client):
    task = create(client, title="A", description="keep", priority="low")

    response = client.patch(f"/api/tasks/{task['id']}", params={"userId": 1}, json={"title": "Updated"})

    assert response.status_code == 200
    updated = response.json()
    assert updated["title"] == "Updated"
    assert updated["description"] == "keep"
    assert updated["priority"] == "low"
    assert updated["status"] == "pending"


def test_patch_null_clears_description(client):
    task = create(client, title="A", description="text", dueDate=FUTURE)

    updated = client.patch(
        f"/api/tasks/{task['id']}", params={"userId": 1}, json={"description": None, "dueDate": None}
    ).json()

    assert updated["description"] is None
    assert updated["dueDate"] is None


def test_put_is_accepted_for_update(client):
    task = create(client, title="A")
    response = client.put(f"/api/tasks/{task['id']}", params={"userId": 1}, json={"status": "in_progress"})
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"


def test_patch_errors(client):
    task = create(client, title="A")
    url = f"/api/tasks/{task['id']}"

    assert client.patch(url, params={"userId": 1}, json={"title": "  "}).status_code == 400
    assert client.patch(url, params={"userId": 2}, json={}).status_code == 403
    assert client.patch("/api/tasks/999", params={"userId": 1}, json={}).status_code == 404


def test_complete_toggle_enforces_ownership(client):
    task = create(client, title="A")
    url = f"/api/tasks/{task['id']}/complete"

    assert client.patch(url, params={"userId": 2}).status_code == 403
    first = client.patch(url, params={"userId": 1}).json()
    second = client.patch(url, params={"userId": 1}).json()

    assert first["status"] == "completed"
    assert first["isCompleted"] is True
    assert second["status"] == "pending"


def test_delete(client):
    task = create(client, title="A")
    url = f"/api/tasks/{task['id']}"

    assert client.delete(url, params={"userId": 2}).status_code == 403
    response = client.delete(url, params={"userId": 1})
    assert response.status_code == 200
    assert response.json() == {"message": "Task deleted successfully"}
    assert client.get(url, params={"userId": 1}).status_code == 404
    assert client.delete(url, params={"userId": 1}).status_code == 404


def test_stats(client):
    create(client, title="pending")
    done = create(client, title="done")
    client.patch(f"/api/tasks/{done['id']}/complete", params={"userId": 1})
    create(client, title="late", dueDate=PAST)

    stats = client.get("/api/tasks/stats", params={"userId": 1}).json()

    assert stats == {"total": 3, "completed": 1, "pending": 2, "inProgress": 0, "overdue": 1}


def test_app_with_sql_store_opens_and_closes(tmp_path):
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

    with TestClient(create_app(settings)) as c:
        task = create(c, title="persisted")

    with TestClient(create_app(settings)) as c:
        fetched = c.get(f"/api/tasks/{task['id']}", params={"userId": 1})
        assert fetched.json()["title"] == "persisted"


def test_patch_naive_due_date_is_kept_as_utc(client):
    task = create(client, title="A")

    updated = client.patch(
        f"/api/tasks/{task['id']}", params={"userId": 1}, json={"dueDate": "2025-02-01T10:00:00"}
    ).json()

    assert updated["dueDate"].startswith("2025-02-01T10:00:00")
    assert updated["dueDate"].endswith("Z")


@pytest.mark.parametrize("params", [{"limit": 101}, {"limit": 0}, {"limit": 10**20}, {"page": -1}])
def test_list_rejects_out_of_range_pagination(client, params):
    response = client.get("/api/tasks", params={"userId": 1, **params})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request")


def test_sql_store_rejects_huge_pagination_with_400(tmp_path):
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

    with TestClient(create_app(settings)) as c:
        create(c, title="A")
        huge_limit = c.get("/api/tasks", params={"userId": 1, "limit": 10**20})
        huge_page = c.get("/api/tasks", params={"userId": 1, "page": 10**20, "limit": 100})
        last = c.get("/api/tasks", params={"userId": 1, "limit": 100})

    assert huge_limit.status_code == 400
    assert huge_page.status_code == 400
    assert huge_page.json() == {"error": "page is out of range"}
    assert last.status_code == 200
    assert last.json()["pagination"]["limit"] == 100


def test_mark_pending_endpoint(client):
    task = create(client, title="A")
    client.patch(f"/api/tasks/{task['id']}/complete", params={"userId": 1})
    url = f"/api/tasks/{task['id']}/pending"

    assert client.patch(url, params={"userId": 2}).status_code == 403
    assert client.patch("/api/tasks/999/pending", params={"userId": 1}).status_code == 404
    response = client.patch(url, params={"userId": 1})

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["isCompleted"] is False
