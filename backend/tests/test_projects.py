# tests/test_projects.py — Project CRUD and cascading delete
import os

import pytest
from httpx import AsyncClient
from sqlalchemy import select, func

from models import Comment, ProjectFile, Task, TaskAssignee
from tests.conftest import get_auth_headers


async def _create_project(client, headers, name="Onboarding Portal"):
    resp = await client.post("/api/projects", json={"name": name, "description": "Intern onboarding"}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_create_list_get(client: AsyncClient, mentor_user):
    headers = get_auth_headers(mentor_user)
    project = await _create_project(client, headers)
    assert project["creatorId"] == mentor_user.id
    assert project["creator"] == "mentor@custor.test"

    listed = (await client.get("/api/projects", headers=headers)).json()
    assert [p["projectKey"] for p in listed] == [project["projectKey"]]

    fetched = await client.get(f"/api/projects/{project['projectKey']}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Onboarding Portal"


@pytest.mark.asyncio
async def test_get_missing_project(client: AsyncClient, mentor_user):
    resp = await client.get("/api/projects/9999", headers=get_auth_headers(mentor_user))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_only_creator_or_admin_may_update(client: AsyncClient, mentor_user, intern_user, admin_user):
    project = await _create_project(client, get_auth_headers(mentor_user))
    url = f"/api/projects/{project['projectKey']}"

    denied = await client.put(url, json={"name": "Hijacked"}, headers=get_auth_headers(intern_user))
    assert denied.status_code == 403

    by_admin = await client.put(url, json={"description": "Reviewed"}, headers=get_auth_headers(admin_user))
    assert by_admin.status_code == 200
    assert by_admin.json()["description"] == "Reviewed"
    assert by_admin.json()["name"] == "Onboarding Portal"


@pytest.mark.asyncio
async def test_delete_project_removes_children(
    client: AsyncClient, db_session, settings, mentor_user, intern_user,
):
    headers = get_auth_headers(mentor_user)
    project = await _create_project(client, headers)
    pid = project["projectKey"]

    task = (await client.post("/api/tasks", json={"title": "Write docs", "projectId": pid}, headers=headers)).json()
    await client.post(f"/api/tasks/{task['taskKey']}/assignees", json={"userKey": intern_user.id})
    await client.post(f"/api/tasks/{task['taskKey']}/comments", json={
        "content": "Started", "userId": intern_user.id,
    })

    upload = (await client.post(
        f"/api/projects/{pid}/files", files={"file": ("brief.txt", b"draft", "text/plain")}, headers=headers,
    )).json()
    await client.post(f"/api/files/{upload['fileKey']}/comments", json={
        "content": "Looks good", "userId": mentor_user.id,
    })
    stored = os.listdir(os.path.join(settings.file_storage_root, str(pid)))
    assert len(stored) == 1

    resp = await client.delete(f"/api/projects/{pid}", headers=headers)
    assert resp.status_code == 204
    assert (await client.get(f"/api/projects/{pid}", headers=headers)).status_code == 404

    for model in (Task, TaskAssignee, ProjectFile, Comment):
        count = await db_session.execute(select(func.count()).select_from(model))
        assert count.scalar() == 0, model.__tablename__
    assert os.listdir(os.path.join(settings.file_storage_root, str(pid))) == []


@pytest.mark.asyncio
async def test_delete_forbidden_for_other_users(client: AsyncClient, mentor_user, intern_user):
    project = await _create_project(client, get_auth_headers(mentor_user))
    resp = await client.delete(f"/api/projects/{project['projectKey']}", headers=get_auth_headers(intern_user))
    assert resp.status_code == 403
