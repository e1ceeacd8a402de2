async def _notify(client, user_id, title="Heads up", **extra):
    resp = await client.post(
        "/api/notifications",
        json={"userId": user_id, "type": "system", "title": title, "message": "Something happened", **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_feed_counts_and_mark_read(client, admin):
    me = admin["user"]["id"]
    first = await _notify(client, me, "First")
    await _notify(client, me, "Second")

    feed = (await client.get("/api/notifications")).json()
    assert feed["unreadCount"] == 2
    assert feed["totalCount"] == 2
    assert [n["title"] for n in feed["notifications"]] == ["Second", "First"]

    marked = await client.patch("/api/notifications", json={"notificationIds": [first["id"]]})
    assert marked.json() == {"success": True, "updated": 1}

    unread = (await client.get("/api/notifications", params={"unread": True})).json()
    assert [n["title"] for n in unread["notifications"]] == ["Second"]
    assert unread["unreadCount"] == 1

    all_read = await client.patch("/api/notifications", json={"markAllRead": True})
    assert all_read.json()["updated"] == 1


async def test_mark_read_needs_ids_or_flag(client, admin):
    resp = await client.patch("/api/notifications", json={})
    assert resp.status_code == 400


async def test_clear(client, admin):
    await _notify(client, admin["user"]["id"])
    cleared = await client.delete("/api/notifications")
    assert cleared.json()["updated"] == 1
    assert (await client.get("/api/notifications")).json()["totalCount"] == 0


async def test_create_validation(client, admin):
    bad_type = await client.post(
        "/api/notifications",
        json={"userId": admin["user"]["id"], "type": "gossip", "title": "x", "message": "y"},
    )
    assert bad_type.status_code == 400

    stranger = await client.post(
        "/api/notifications", json={"userId": "not-in-this-company", "type": "system", "title": "x", "message": "y"}
    )
    assert stranger.status_code == 403


async def test_feed_is_per_user(client, admin, member_client):
    pm = await member_client("project_manager")
    pm_id = (await pm.get("/api/auth/me")).json()["data"]["user"]["id"]
    await _notify(client, pm_id, "For the PM")

    assert (await client.get("/api/notifications")).json()["totalCount"] == 0
    assert (await pm.get("/api/notifications")).json()["notifications"][0]["title"] == "For the PM"
