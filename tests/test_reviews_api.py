from tests.helpers import create_project, create_subcontractor, assign, upload


async def _queued(client, project, sub) -> dict:
    await upload(client, project, sub)
    queue = (await client.get("/api/reviews")).json()["data"]
    assert len(queue) == 1
    return queue[0]


async def test_queue_and_detail(client, site):
    project, sub = site
    await client.post(
        f"/api/projects/{project['id']}/requirements",
        json={"coverageType": "public_liability", "minimumLimit": 20_000_000},
    )
    item = await _queued(client, project, sub)
    assert item["fileName"] == "coc.pdf"
    assert item["subcontractorName"] == "Sparky Electrical Pty Ltd"
    assert item["projectName"] == "Harbour Tower"
    assert item["deficiencyCount"] == 0

    resp = await client.get(f"/api/reviews/{item['id']}")
    assert resp.status_code == 200, resp.text
    detail = resp.json()["data"]
    assert detail["verification"]["status"] == "review"
    assert detail["verification"]["checks"] == []
    assert detail["document"]["id"] == item["documentId"]
    assert detail["subcontractor"]["brokerEmail"] == "broker@cover.test"
    assert detail["project"]["name"] == "Harbour Tower"
    assert [r["coverageType"] for r in detail["requirements"]] == ["public_liability"]

    assert (await client.get("/api/reviews/missing")).status_code == 404


async def test_queue_is_oldest_first_and_scoped_to_visible_projects(client, admin, member_client):
    first = await create_project(client, name="Harbour Tower")
    second = await create_project(client, name="Quay Apartments")
    sub = await create_subcontractor(client)
    for project in (first, second):
        await assign(client, project["id"], sub["id"])
        await upload(client, project, sub)

    queue = (await client.get("/api/reviews")).json()["data"]
    assert [i["projectName"] for i in queue] == ["Harbour Tower", "Quay Apartments"]

    manager = await member_client("project_manager")
    assert (await manager.get("/api/reviews")).json()["data"] == []
    denied = await manager.get(f"/api/reviews/{queue[0]['id']}")
    assert denied.status_code == 403


async def test_approve(client, site, member_client):
    project, sub = site
    item = await _queued(client, project, sub)

    viewer = await member_client("read_only")
    assert (await viewer.post(f"/api/reviews/{item['id']}/approve", json={})).status_code == 403

    resp = await client.post(f"/api/reviews/{item['id']}/approve", json={"notes": "Confirmed with broker"})
    assert resp.status_code == 200, resp.text
    verification = resp.json()["data"]
    assert verification["status"] == "pass"
    assert verification["notes"] == "Confirmed with broker"

    assignments = (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"]
    assert assignments[0]["status"] == "compliant"
    emails = (await client.get("/api/communications", params={"type": "confirmation"})).json()["data"]
    assert len(emails) == 1
    feed = (await client.get("/api/notifications")).json()
    assert feed["notifications"][0]["type"] == "coc_verified"
    assert (await client.get("/api/reviews")).json()["data"] == []

    again = await client.post(f"/api/reviews/{item['id']}/approve", json={})
    assert again.status_code == 400


async def test_reject_with_reason(client, site):
    project, sub = site
    item = await _queued(client, project, sub)

    empty = await client.post(f"/api/reviews/{item['id']}/reject", json={})
    assert empty.status_code == 400

    resp = await client.post(f"/api/reviews/{item['id']}/reject", json={"reason": "Certificate is for another entity"})
    assert resp.status_code == 200, resp.text
    verification = resp.json()["data"]
    assert verification["status"] == "fail"
    assert verification["deficiencies"][0]["type"] == "manual_rejection"
    assert verification["deficiencies"][0]["description"] == "Certificate is for another entity"

    assignments = (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"]
    assert assignments[0]["status"] == "non_compliant"
    notice = (await client.get("/api/communications", params={"type": "deficiency"})).json()["data"][0]
    assert notice["verificationId"] == item["id"]
    assert "Certificate is for another entity" in notice["body"]


async def test_reject_with_listed_deficiencies(client, site):
    project, sub = site
    item = await _queued(client, project, sub)
    resp = await client.post(
        f"/api/reviews/{item['id']}/reject",
        json={"deficiencies": [{
            "type": "insufficient_limit", "severity": "critical", "description": "Public liability below $20M",
            "requiredValue": "$20,000,000", "actualValue": "$10,000,000",
        }]},
    )
    assert resp.status_code == 200, resp.text
    deficiency = resp.json()["data"]["deficiencies"][0]
    assert (deficiency["type"], deficiency["requiredValue"]) == ("insufficient_limit", "$20,000,000")


async def test_request_clearer_copy(client, admin):
    project = await create_project(client)
    sub = await create_subcontractor(client)
    await assign(client, project["id"], sub["id"])
    item = await _queued(client, project, sub)

    resp = await client.post(f"/api/reviews/{item['id']}/request-copy", json={})
    assert resp.status_code == 200, resp.text
    comm = resp.json()["data"]
    assert comm["type"] == "follow_up"
    assert comm["recipientEmail"] == "broker@cover.test"
    assert comm["subject"] == "We need a clearer copy of your insurance certificate - Harbour Tower"
    assert comm["verificationId"] == item["id"]
    # Still waiting on a reviewer
    assert len((await client.get("/api/reviews")).json()["data"]) == 1

    silent = await create_subcontractor(
        client, name="Quiet Plumbing", abn="53 004 085 616", contactEmail=None, brokerEmail=None
    )
    await assign(client, project["id"], silent["id"])
    await upload(client, project, silent)
    queued = [i for i in (await client.get("/api/reviews")).json()["data"] if i["subcontractorId"] == silent["id"]]
    no_address = await client.post(f"/api/reviews/{queued[0]['id']}/request-copy", json={})
    assert no_address.status_code == 400
