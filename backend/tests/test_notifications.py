"""Tests for the Notifications router."""
import pytest
from tests.conftest import get_auth_headers


async def _create(client, headers, user_id, title="Heads up", **extra):
    body = {"userId": user_id, "title": title, "message": "Something happened", "type": "info"}
    body.update(extra)
    resp = await client.post("/api/notifications", json=body, headers=headers)
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_list_notifications_empty(client, intern_user):
    resp = await client.get("/api/notifications", headers=get_auth_headers(intern_user))
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_unread_count_empty(client, intern_user):
    resp = await client.get("/api/notifications/unread-count", headers=get_auth_headers(intern_user))
    assert resp.status_code == 200
    assert resp.json() == 0


@pytest.mark.asyncio
async def test_create_notification(client, mentor_user, intern_user):
    body = await _create(
        client, get_auth_headers(mentor_user), intern_user.id,
        relatedId=42, relatedType="task",
    )
    assert body["title"] == "Heads up"
    assert body["isRead"] is False
    assert body["relatedId"] == 42
    assert body["relatedType"] == "task"
    assert body["createdAt"] is not None


@pytest.mark.asyncio
async def test_create_for_unknown_user(client, mentor_user):
    resp = await client.post("/api/notifications", json={
        "userId": 9999, "title": "x", "message": "y", "type": "info",
    }, headers=get_auth_headers(mentor_user))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_is_scoped_and_newest_first(client, mentor_user, intern_user):
    headers = get_auth_headers(mentor_user)
    await _create(client, headers, intern_user.id, title="First")
    await _create(client, headers, intern_user.id, title="Second")
    await _create(client, headers, mentor_user.id, title="Not yours")

    resp = await client.get("/api/notifications", headers=get_auth_headers(intern_user))
    assert [n["title"] for n in resp.json()] == ["Second", "First"]


@pytest.mark.asyncio
async def test_mark_notification_read(client, mentor_user, intern_user):
    created = await _create(client, get_auth_headers(mentor_user), intern_user.id)
    headers = get_auth_headers(intern_user)

    resp = await client.put(f"/api/notifications/{created['id']}/read", headers=headers)
    assert resp.status_code == 200

    count = await client.get("/api/notifications/unread-count", headers=headers)
    assert count.json() == 0


@pytest.mark.asyncio
async def test_cannot_touch_someone_elses_notification(client, mentor_user, intern_user):
    created = await _create(client, get_auth_headers(mentor_user), intern_user.id)
    headers = get_auth_headers(mentor_user)

    read = await client.put(f"/api/notifications/{created['id']}/read", headers=headers)
    delete = await client.delete(f"/api/notifications/{created['id']}", headers=headers)
    assert read.status_code == 404
    assert delete.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read(client, mentor_user, intern_user):
    sender = get_auth_headers(mentor_user)
    for i in range(3):
        await _create(client, sender, intern_user.id, title=f"n{i}")
    await _create(client, sender, mentor_user.id, title="mentor's own")

    headers = get_auth_headers(intern_user)
    assert (await client.get("/api/notifications/unread-count", headers=headers)).json() == 3

    resp = await client.put("/api/notifications/mark-all-read", headers=headers)
    assert resp.status_code == 200
    assert (await client.get("/api/notifications/unread-count", headers=headers)).json() == 0
    assert (await client.get("/api/notifications/unread-count", headers=sender)).json() == 1


@pytest.mark.asyncio
async def test_delete_notification(client, mentor_user, intern_user):
    created = await _create(client, get_auth_headers(mentor_user), intern_user.id)
    headers = get_auth_headers(intern_user)

    resp = await client.delete(f"/api/notifications/{created['id']}", headers=headers)
    assert resp.status_code == 204
    assert (await client.get("/api/notifications", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_clear_read_notifications(client, mentor_user, intern_user):
    sender = get_auth_headers(mentor_user)
    keep = await _create(client, sender, intern_user.id, title="keep")
    drop = await _create(client, sender, intern_user.id, title="drop")
    headers = get_auth_headers(intern_user)
    await client.put(f"/api/notifications/{drop['id']}/read", headers=headers)

    resp = await client.delete("/api/notifications", headers=headers)
    assert resp.json() == {"deleted": 1}
    remaining = (await client.get("/api/notifications", headers=headers)).json()
    assert [n["id"] for n in remaining] == [keep["id"]]


@pytest.mark.asyncio
async def test_notifications_require_auth(client):
    resp = await client.get("/api/notifications")
    assert resp.status_code == 401
