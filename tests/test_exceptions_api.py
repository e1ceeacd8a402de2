from tests.helpers import PASSWORD, assign, create_project, create_subcontractor


async def _assignment(client, **project_fields):
    project = await create_project(client, **project_fields)
    sub = await create_subcontractor(client)
    return await assign(client, project["id"], sub["id"])


def _request(assignment_id, **extra):
    return {
        "projectSubcontractorId": assignment_id,
        "issueSummary": "Public liability limit below $20M",
        "reason": "Renewal with higher limit arrives next week",
        **extra,
    }


async def test_managers_create_active_exceptions(client, admin):
    assignment = await _assignment(client)
    resp = await client.post("/api/exceptions", json=_request(assignment["id"], riskLevel="low"))
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["message"] == "Exception created and activated"
    assert body["exception"]["status"] == "active"
    assert body["exception"]["expirationType"] == "until_resolved"

    assignments = (await client.get(f"/api/projects/{assignment['projectId']}/subcontractors")).json()["data"]
    assert assignments[0]["status"] == "exception"


async def test_project_manager_requests_need_approval(client, admin, member_client):
    pm = await member_client("project_manager")
    pm_id = (await pm.get("/api/auth/me")).json()["data"]["user"]["id"]
    assignment = await _assignment(client, projectManagerId=pm_id)

    resp = await pm.post("/api/exceptions", json=_request(assignment["id"]))
    assert resp.status_code == 201, resp.text
    assert resp.json()["message"] == "Exception submitted for approval"
    exception = resp.json()["exception"]
    assert exception["status"] == "pending_approval"

    feed = (await client.get("/api/notifications")).json()
    assert feed["notifications"][0]["type"] == "exception_created"

    # Project managers cannot approve
    assert (await pm.put(f"/api/exceptions/{exception['id']}", json={"action": "approve"})).status_code == 403

    approved = await client.put(f"/api/exceptions/{exception['id']}", json={"action": "approve"})
    assert approved.json()["message"] == "Exception approved"
    assert approved.json()["exception"]["approvedByUserId"] == admin["user"]["id"]

    again = await client.put(f"/api/exceptions/{exception['id']}", json={"action": "reject"})
    assert again.status_code == 400

    pm_feed = (await pm.get("/api/notifications")).json()
    assert pm_feed["notifications"][0]["type"] == "exception_approved"


async def test_project_manager_limited_to_own_projects(client, admin, member_client):
    pm = await member_client("project_manager")
    assignment = await _assignment(client)
    resp = await pm.post("/api/exceptions", json=_request(assignment["id"]))
    assert resp.status_code == 403


async def test_permanent_exception_needs_password(client, admin):
    assignment = await _assignment(client)
    missing = await client.post("/api/exceptions", json=_request(assignment["id"], expirationType="permanent"))
    assert missing.status_code == 400

    wrong = await client.post(
        "/api/exceptions", json=_request(assignment["id"], expirationType="permanent", password="Wr0ngPassword")
    )
    assert wrong.status_code == 401

    ok = await client.post(
        "/api/exceptions", json=_request(assignment["id"], expirationType="permanent", password=PASSWORD)
    )
    assert ok.status_code == 201
    assert ok.json()["exception"]["expiresAt"] is None


async def test_validation_and_listing(client, admin):
    assignment = await _assignment(client)
    dated = await client.post("/api/exceptions", json=_request(assignment["id"], expirationType="specific_date"))
    assert dated.status_code == 400
    assert dated.json()["error"]["message"] == "An expiry date is required for this expiration type"

    empty = await client.post("/api/exceptions", json={"projectSubcontractorId": assignment["id"]})
    assert empty.status_code == 400

    await client.post("/api/exceptions", json=_request(assignment["id"]))
    active = (await client.get("/api/exceptions", params={"status": "active"})).json()["data"]
    assert len(active) == 1
    assert (await client.get("/api/exceptions", params={"status": "bogus"})).status_code == 400
