# tests/test_files.py — Upload, versioning, download and delete
import dataclasses
import os

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from main import app
from models import Notification, ProjectFile
from tests.conftest import get_auth_headers


async def _project(client, headers):
    resp = await client.post("/api/projects", json={"name": "Docs"}, headers=headers)
    return resp.json()["projectKey"]


async def _upload(client, headers, pid, name="readme.md", content=b"# hello", mime="text/markdown"):
    return await client.post(
        f"/api/projects/{pid}/files", files={"file": (name, content, mime)}, headers=headers,
    )


@pytest.mark.asyncio
async def test_upload_and_fetch(client: AsyncClient, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)

    resp = await _upload(client, headers, pid)
    assert resp.status_code == 201
    data = resp.json()
    assert data["fileName"] == "readme.md"
    assert data["fileType"] == "text/markdown"
    assert data["size"] == len(b"# hello")
    assert data["version"] == 1
    assert data["isCurrent"] is True
    assert data["uploader"] == "mentor@custor.test"

    fetched = await client.get(f"/api/files/{data['fileKey']}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["fileName"] == "readme.md"

    download = await client.get(f"/api/files/{data['fileKey']}/download", headers=headers)
    assert download.status_code == 200
    assert download.content == b"# hello"


@pytest.mark.asyncio
async def test_reupload_bumps_version(client: AsyncClient, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)

    first = (await _upload(client, headers, pid, content=b"v1")).json()
    second = (await _upload(client, headers, pid, content=b"v2 longer")).json()
    assert second["version"] == 2

    current = (await client.get(f"/api/projects/{pid}/files", headers=headers)).json()
    assert [f["fileKey"] for f in current] == [second["fileKey"]]

    history = (await client.get(f"/api/projects/{pid}/files?all_versions=true", headers=headers)).json()
    assert [(f["version"], f["isCurrent"]) for f in history] == [(2, True), (1, False)]
    assert history[1]["fileKey"] == first["fileKey"]


@pytest.mark.asyncio
async def test_deleting_current_version_promotes_previous(client: AsyncClient, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)
    first = (await _upload(client, headers, pid, content=b"v1")).json()
    second = (await _upload(client, headers, pid, content=b"v2")).json()

    resp = await client.delete(f"/api/files/{second['fileKey']}", headers=headers)
    assert resp.status_code == 204

    current = (await client.get(f"/api/projects/{pid}/files", headers=headers)).json()
    assert [f["fileKey"] for f in current] == [first["fileKey"]]
    assert (await client.get(f"/api/files/{second['fileKey']}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_upload_by_other_user_notifies_creator(client: AsyncClient, db_session, mentor_user, intern_user):
    pid = await _project(client, get_auth_headers(mentor_user))
    await _upload(client, get_auth_headers(intern_user), pid, name="report.pdf", mime="application/pdf")
    await _upload(client, get_auth_headers(mentor_user), pid, name="own.txt", mime="text/plain")

    result = await db_session.execute(select(Notification))
    notifications = result.scalars().all()
    assert len(notifications) == 1
    assert notifications[0].user_id == mentor_user.id
    assert notifications[0].type == "file_upload"
    assert "report.pdf" in notifications[0].message


@pytest.mark.asyncio
async def test_upload_to_missing_project(client: AsyncClient, mentor_user):
    resp = await _upload(client, get_auth_headers(mentor_user), 9999)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_upload_size_limit(client: AsyncClient, settings, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)
    app.dependency_overrides[get_settings] = lambda: dataclasses.replace(settings, max_upload_size_mb=0)

    resp = await _upload(client, headers, pid, content=b"too big")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_files_require_auth(client: AsyncClient):
    resp = await client.get("/api/files/1")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_version_is_unique_per_name(client: AsyncClient, db_session, mentor_user):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)
    await _upload(client, headers, pid)

    db_session.add(ProjectFile(
        project_id=pid, name="readme.md", file_type="text/markdown", path="/tmp/dup",
        size=1, version=1, is_current=False, uploader_id=mentor_user.id,
    ))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_lost_version_race_removes_stored_file(client: AsyncClient, mentor_user, settings, monkeypatch):
    headers = get_auth_headers(mentor_user)
    pid = await _project(client, headers)

    async def collide(self, *args, **kwargs):
        raise IntegrityError("INSERT INTO files", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(AsyncSession, "flush", collide)
    resp = await _upload(client, headers, pid)
    monkeypatch.undo()

    assert resp.status_code == 409
    assert os.listdir(os.path.join(settings.file_storage_root, str(pid))) == []

    listed = await client.get(f"/api/projects/{pid}/files", headers=headers)
    assert listed.json() == []
