from tests.helpers import create_project


async def test_company_profile(client, admin):
    company = (await client.get("/api/company")).json()["data"]
    assert company["name"] == "Acme Builders"

    resp = await client.put("/api/company", json={"name": "  Acme Builders Group ", "primaryColor": "#0055aa"})
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Acme Builders Group"
    assert resp.json()["data"]["primaryColor"] == "#0055aa"

    bad_abn = await client.put("/api/company", json={"abn": "51824753557"})
    assert bad_abn.status_code == 400


async def test_team_management(client, admin, member_client):
    pm = await member_client("project_manager")
    pm_id = (await pm.get("/api/auth/me")).json()["data"]["user"]["id"]

    team = (await client.get("/api/users")).json()["data"]
    assert {u["role"] for u in team} == {"admin", "project_manager"}

    promoted = await client.put(f"/api/users/{pm_id}", json={"role": "risk_manager"})
    assert promoted.json()["data"]["role"] == "risk_manager"

    own_role = await client.put(f"/api/users/{admin['user']['id']}", json={"role": "read_only"})
    assert own_role.status_code == 400
    assert own_role.json()["error"]["message"] == "You cannot change your own role"

    dupe = await client.post("/api/users/invite", json={"email": "admin@acme.test", "name": "Again", "role": "admin"})
    assert dupe.status_code == 409

    assert (await client.delete(f"/api/users/{pm_id}")).status_code == 204
    # Removing a member ends their sessions
    assert (await pm.get("/api/auth/me")).status_code == 401
    assert (await client.delete(f"/api/users/{admin['user']['id']}")).status_code == 400


async def test_audit_log_search(client, admin, member_client):
    project = await create_project(client)
    await client.put(f"/api/projects/{project['id']}", json={"address": "2 Pier Rd"})

    page = (await client.get("/api/audit-logs", params={"entityType": "project"})).json()
    assert page["total"] == 2
    assert [log["action"] for log in page["logs"]] == ["update", "create"]
    assert page["logs"][0]["userId"] == admin["user"]["id"]
    assert page["logs"][0]["details"] == {"fields": ["address"]}

    signups = (await client.get("/api/audit-logs", params={"action": "signup", "limit": 1})).json()
    assert signups["total"] == 1
    assert signups["limit"] == 1

    viewer = await member_client("read_only")
    assert (await viewer.get("/api/audit-logs")).status_code == 403
