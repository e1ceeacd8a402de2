import httpx


async def test_dev_mode_mailbox_connection(client, admin):
    connect = (await client.get("/api/integrations/microsoft/connect")).json()["data"]
    url = httpx.URL(connect["redirectUrl"])

    callback = await client.get(url.path, params=url.params)
    assert callback.status_code == 302
    assert callback.headers["location"].endswith("success=microsoft_connected")

    status = (await client.get("/api/integrations/status")).json()["data"]["integrations"]
    microsoft = next(i for i in status if i["provider"] == "microsoft")
    assert microsoft["connected"] is True
    assert microsoft["email"] == "coc-inbox@example.onmicrosoft.com"
    assert microsoft["devMode"] is True

    # Each state is good for one callback only
    replay = await client.get(url.path, params=url.params)
    assert replay.headers["location"].endswith("error=invalid_state")


async def test_state_is_bound_to_provider(client, admin):
    connect = (await client.get("/api/integrations/microsoft/connect")).json()["data"]
    url = httpx.URL(connect["redirectUrl"])
    crossed = await client.get("/api/integrations/procore/callback", params=url.params)
    assert crossed.headers["location"].endswith("error=invalid_state")


async def test_connect_redirect_mode(client, admin):
    resp = await client.get("/api/integrations/microsoft/connect", params={"redirect": True})
    assert resp.status_code == 302
    assert "code=dev_mode_code" in resp.headers["location"]


async def test_project_managers_cannot_connect(member_client):
    pm = await member_client("project_manager")
    assert (await pm.get("/api/integrations/microsoft/connect")).status_code == 403
