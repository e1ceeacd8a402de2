from tests.helpers import ADMIN_SIGNUP, assign, create_project, create_subcontractor, new_client


async def test_create_and_fetch_subcontractor(client, admin):
    sub = await create_subcontractor(client)
    assert sub["abn"] == "51824753556"
    assert sub["companyId"] == admin["company"]["id"]

    detail = await client.get(f"/api/subcontractors/{sub['id']}")
    assert detail.status_code == 200
    body = detail.json()["data"]
    assert body["name"] == "Sparky Electrical Pty Ltd"
    assert body["projects"] == []
    assert body["latestVerificationStatus"] is None


async def test_create_rejects_bad_abn_and_duplicates(client, admin):
    bad = await client.post("/api/subcontractors", json={"name": "Dodgy Co", "abn": "51824753557"})
    assert bad.status_code == 400
    assert bad.json()["error"]["message"] == "Invalid ABN checksum"

    await create_subcontractor(client)
    dupe = await client.post("/api/subcontractors", json={"name": "Copy Cat", "abn": "51824753556"})
    assert dupe.status_code == 409


async def test_list_is_paginated_and_searchable(client, admin):
    await create_subcontractor(client)
    await create_subcontractor(client, name="Pipe Masters", abn="33102417032", trade="Plumbing")

    page = await client.get("/api/subcontractors", params={"limit": 1})
    body = page.json()
    assert len(body["data"]) == 1
    assert body["meta"]["total"] == 2

    plumbing = await client.get("/api/subcontractors", params={"trade": "Plumbing"})
    assert [s["name"] for s in plumbing.json()["data"]] == ["Pipe Masters"]

    by_abn = await client.get("/api/subcontractors", params={"search": "51824753556"})
    assert [s["name"] for s in by_abn.json()["data"]] == ["Sparky Electrical Pty Ltd"]


async def test_update_and_delete(client, admin):
    sub = await create_subcontractor(client)
    resp = await client.put(f"/api/subcontractors/{sub['id']}", json={"trade": "Data cabling"})
    assert resp.status_code == 200
    assert resp.json()["data"]["trade"] == "Data cabling"

    assert (await client.delete(f"/api/subcontractors/{sub['id']}")).status_code == 204
    assert (await client.get(f"/api/subcontractors/{sub['id']}")).status_code == 404

    # The ABN is free again and the old row is restored
    again = await create_subcontractor(client)
    assert again["id"] == sub["id"]


async def test_bulk_import_reports_errors_and_duplicates(client, admin):
    existing = await create_subcontractor(client)
    rows = [
        {"name": "New Scaffolds", "abn": "33 102 417 032"},
        {"name": "", "abn": "53004085616"},
        {"name": "Typo Ltd", "abn": "51824753557"},
        {"name": "Short Ltd", "abn": "1234"},
        {"name": "Sparky Again", "abn": "51824753556"},
    ]
    resp = await client.post("/api/subcontractors/import", json={"subcontractors": rows})
    assert resp.status_code == 200
    body = resp.json()
    assert body["created"] == 1
    assert body["merged"] == 0
    assert body["total"] == 5
    assert body["errors"] == [
        "Row 2: Company name is required",
        "Row 3 (Typo Ltd): Invalid ABN checksum",
        "Row 4 (Short Ltd): ABN must be exactly 11 digits",
    ]
    assert body["duplicates"][0]["existingId"] == existing["id"]
    assert body["duplicates"][0]["rowNum"] == 5


async def test_bulk_import_merges_when_asked(client, admin):
    existing = await create_subcontractor(client)
    resp = await client.post(
        "/api/subcontractors/import",
        json={
            "subcontractors": [{"name": "Sparky Electrical", "abn": "51824753556", "contactPhone": "0400 000 000"}],
            "mergeIds": [existing["id"]],
        },
    )
    body = resp.json()
    assert body["merged"] == 1
    assert body["duplicates"] is None

    detail = (await client.get(f"/api/subcontractors/{existing['id']}")).json()["data"]
    assert detail["contactPhone"] == "0400 000 000"
    # Blank incoming values keep what was stored
    assert detail["brokerEmail"] == "broker@cover.test"


async def test_detail_lists_project_assignments(client, admin):
    project = await create_project(client)
    sub = await create_subcontractor(client)
    await assign(client, project["id"], sub["id"])

    detail = (await client.get(f"/api/subcontractors/{sub['id']}")).json()["data"]
    assert detail["projects"][0]["projectName"] == "Harbour Tower"
    assert detail["projects"][0]["status"] == "pending"


async def test_read_only_members_cannot_write(member_client, admin):
    viewer = await member_client("read_only")
    resp = await viewer.post("/api/subcontractors", json={"name": "Nope", "abn": "33102417032"})
    assert resp.status_code == 403
    assert (await viewer.get("/api/subcontractors")).status_code == 200


async def test_tenants_are_isolated(client, admin):
    sub = await create_subcontractor(client)
    async with new_client() as other:
        signup = {**ADMIN_SIGNUP, "email": "boss@rival.test", "companyName": "Rival Constructions", "abn": "33102417032"}
        assert (await other.post("/api/auth/signup", json=signup)).status_code == 201
        assert (await other.get(f"/api/subcontractors/{sub['id']}")).status_code == 404
        assert (await other.get("/api/subcontractors")).json()["meta"]["total"] == 0
