from tests.helpers import assign, create_project, create_subcontractor


async def test_create_list_and_detail(client, admin):
    project = await create_project(client, address="1 Harbour St, Sydney")
    assert project["status"] == "active"
    assert project["entityType"] == "pty_ltd"
    assert project["forwardingEmail"]

    listing = (await client.get("/api/projects")).json()["data"]
    assert [p["name"] for p in listing] == ["Harbour Tower"]
    assert listing[0]["subcontractorCount"] == 0

    detail = (await client.get(f"/api/projects/{project['id']}")).json()["data"]
    assert detail["requirements"] == []
    assert detail["subcontractors"] == []


async def test_create_validation(client, admin):
    resp = await client.post("/api/projects", json={"name": "X"})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Project name must be at least 2 characters"

    resp = await client.post("/api/projects", json={"name": "Somewhere", "state": "XX"})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"].startswith("Invalid state")


async def test_update_detects_stale_edits(client, admin):
    project = await create_project(client)
    resp = await client.put(f"/api/projects/{project['id']}", json={"name": "Harbour Tower Stage 2"})
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Harbour Tower Stage 2"

    stale = await client.put(
        f"/api/projects/{project['id']}",
        json={"name": "Lost Update", "updatedAt": "2000-01-01T00:00:00"},
    )
    assert stale.status_code == 409
    assert stale.json()["error"]["code"] == "CONFLICT"


async def test_update_with_current_timestamp_round_trips(client, admin):
    project = await create_project(client)
    first = await client.put(
        f"/api/projects/{project['id']}", json={"name": "Harbour Tower East", "updatedAt": project["updatedAt"]}
    )
    assert first.status_code == 200, first.text
    saved = first.json()["data"]
    assert saved["name"] == "Harbour Tower East"

    second = await client.put(
        f"/api/projects/{project['id']}", json={"address": "1 Quay St", "updatedAt": saved["updatedAt"]}
    )
    assert second.status_code == 200, second.text
    assert second.json()["data"]["address"] == "1 Quay St"

    # The timestamp from before the first edit is now stale
    again = await client.put(
        f"/api/projects/{project['id']}", json={"name": "Harbour Tower West", "updatedAt": project["updatedAt"]}
    )
    assert again.status_code == 409


async def test_delete_archives_project(client, admin):
    project = await create_project(client)
    resp = await client.delete(f"/api/projects/{project['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "completed"

    assert (await client.get("/api/projects")).json()["data"] == []
    archived = (await client.get("/api/projects", params={"includeArchived": True})).json()["data"]
    assert [p["id"] for p in archived] == [project["id"]]


async def test_requirements(client, admin):
    project = await create_project(client)
    url = f"/api/projects/{project['id']}/requirements"

    created = await client.post(url, json={"coverageType": "public_liability", "minimumLimit": 20_000_000})
    assert created.status_code == 201
    requirement = created.json()["data"]

    dupe = await client.post(url, json={"coverageType": "public_liability"})
    assert dupe.status_code == 409

    bogus = await client.post(url, json={"coverageType": "pet_insurance"})
    assert bogus.status_code == 400

    updated = await client.put(f"{url}/{requirement['id']}", json={"maximumExcess": 10_000})
    assert updated.json()["data"]["maximumExcess"] == 10_000
    assert updated.json()["data"]["minimumLimit"] == 20_000_000


async def test_apply_template_skips_existing_coverage(client, admin):
    project = await create_project(client)
    url = f"/api/projects/{project['id']}/requirements"
    await client.post(url, json={"coverageType": "public_liability", "minimumLimit": 30_000_000})

    templates = (await client.get("/api/requirement-templates")).json()["data"]
    commercial = next(t for t in templates if t["name"] == "Commercial Construction")
    resp = await client.post(f"{url}/apply-template", json={"templateId": commercial["id"]})
    assert resp.status_code == 200

    by_type = {r["coverageType"]: r for r in resp.json()["data"]}
    assert sorted(by_type) == ["professional_indemnity", "public_liability", "workers_comp"]
    # The existing requirement keeps its own limit
    assert by_type["public_liability"]["minimumLimit"] == 30_000_000


async def test_assign_and_remove_subcontractor(client, admin):
    project = await create_project(client)
    sub = await create_subcontractor(client)

    assignment = await assign(client, project["id"], sub["id"])
    assert assignment["status"] == "pending"
    assert assignment["subcontractorName"] == "Sparky Electrical Pty Ltd"

    again = await client.post(f"/api/projects/{project['id']}/subcontractors", json={"subcontractorId": sub["id"]})
    assert again.status_code == 400

    listing = (await client.get("/api/projects")).json()["data"]
    assert listing[0]["subcontractorCount"] == 1

    removed = await client.delete(f"/api/projects/{project['id']}/subcontractors/{sub['id']}")
    assert removed.status_code == 204
    assert (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"] == []


async def test_project_manager_sees_only_own_projects(client, admin, member_client):
    pm = await member_client("project_manager")
    pm_id = (await pm.get("/api/auth/me")).json()["data"]["user"]["id"]

    mine = await create_project(client, name="Managed Site", projectManagerId=pm_id)
    other = await create_project(client, name="Someone Else's Site")

    visible = (await pm.get("/api/projects")).json()["data"]
    assert [p["id"] for p in visible] == [mine["id"]]
    assert visible[0]["projectManagerName"] == "Project Manager"

    assert (await pm.get(f"/api/projects/{other['id']}")).status_code == 403
    # Project managers cannot create projects
    assert (await pm.post("/api/projects", json={"name": "Side Hustle"})).status_code == 403


async def test_requirement_templates(client, admin):
    templates = (await client.get("/api/requirement-templates")).json()["data"]
    assert len(templates) == 4
    assert all(t["isDefault"] for t in templates)

    resp = await client.post(
        "/api/requirement-templates",
        json={"name": "Demolition", "requirements": [{"coverageType": "public_liability", "minimumLimit": 30_000_000}]},
    )
    assert resp.status_code == 201, resp.text
    custom = resp.json()["data"]
    assert custom["companyId"] == admin["company"]["id"]
    assert custom["requirements"][0]["minimumLimit"] == 30_000_000

    empty = await client.post("/api/requirement-templates", json={"name": "Nothing"})
    assert empty.status_code == 400

    default_id = templates[0]["id"]
    assert (await client.delete(f"/api/requirement-templates/{default_id}")).status_code == 403
    assert (await client.delete(f"/api/requirement-templates/{custom['id']}")).status_code == 204
    remaining = (await client.get("/api/requirement-templates")).json()["data"]
    assert custom["id"] not in [t["id"] for t in remaining]
