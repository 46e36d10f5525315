# tests/test_tasks.py — Task CRUD tests
import pytest
from httpx import AsyncClient

from tests.conftest import get_auth_headers


async def _project(client, headers):
    return (await client.post("/api/projects", json={"name": "Website"}, headers=headers)).json()["projectKey"]


@pytest.mark.asyncio
async def test_create_task_defaults(client: AsyncClient, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)

    resp = await client.post("/api/tasks", json={"title": "Design header", "projectId": pid}, headers=headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "To Do"
    assert data["priority"] == "Low"
    assert data["projectKey"] == pid
    assert data["projectName"] == "Website"
    assert data["creatorId"] == mentor_user.id
    assert data["assignees"] == []


@pytest.mark.asyncio
async def test_create_task_without_project(client: AsyncClient, mentor_user):
    resp = await client.post("/api/tasks", json={"title": "Loose end"}, headers=get_auth_headers(mentor_user))
    assert resp.status_code == 201
    assert resp.json()["projectKey"] is None


@pytest.mark.asyncio
async def test_create_task_unknown_project(client: AsyncClient, mentor_user):
    resp = await client.post(
        "/api/tasks", json={"title": "Orphan", "projectId": 9999}, headers=get_auth_headers(mentor_user),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [("status", "Blocked"), ("priority", "Urgent")])
async def test_closed_enumerations(client: AsyncClient, mentor_user, field, value):
    resp = await client.post(
        "/api/tasks", json={"title": "Bad enum", field: value}, headers=get_auth_headers(mentor_user),
    )
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "CP-VAL-001"


@pytest.mark.asyncio
async def test_update_and_filter(client: AsyncClient, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)
    first = (await client.post("/api/tasks", json={"title": "One", "projectId": pid}, headers=headers)).json()
    await client.post("/api/tasks", json={"title": "Two", "projectId": pid}, headers=headers)

    resp = await client.put(f"/api/tasks/{first['taskKey']}", json={
        "status": "In Progress", "priority": "High",
    }, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "In Progress"
    assert resp.json()["priority"] == "High"
    assert resp.json()["title"] == "One"

    in_progress = (await client.get("/api/tasks?status=In Progress", headers=headers)).json()
    assert [t["title"] for t in in_progress] == ["One"]

    by_project = (await client.get(f"/api/tasks?projectId={pid}", headers=headers)).json()
    assert [t["title"] for t in by_project] == ["One", "Two"]


@pytest.mark.asyncio
async def test_get_task_lists_assignees(client: AsyncClient, mentor_user, intern_user):
    headers = get_auth_headers(mentor_user)
    task = (await client.post("/api/tasks", json={"title": "Pair up"}, headers=headers)).json()
    await client.post(f"/api/tasks/{task['taskKey']}/assignees", json={"userKey": intern_user.id})

    resp = await client.get(f"/api/tasks/{task['taskKey']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["assignees"] == [{"userKey": intern_user.id, "email": "intern@custor.test"}]


@pytest.mark.asyncio
async def test_delete_task(client: AsyncClient, mentor_user, intern_user):
    headers = get_auth_headers(mentor_user)
    task = (await client.post("/api/tasks", json={"title": "Temporary"}, headers=headers)).json()
    await client.post(f"/api/tasks/{task['taskKey']}/assignees", json={"userKey": intern_user.id})

    resp = await client.delete(f"/api/tasks/{task['taskKey']}", headers=headers)
    assert resp.status_code == 204
    assert (await client.get(f"/api/tasks/{task['taskKey']}", headers=headers)).status_code == 404
    assert (await client.delete(f"/api/tasks/{task['taskKey']}", headers=headers)).status_code == 404
