from tests.helpers import PDF_BYTES, create_project, create_subcontractor, upload


async def test_upload_rejects_bad_files(client, site):
    project, sub = site
    resp = await upload(client, project, sub, name="notes.txt", content_type="text/plain")
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Invalid file type. Only PDF and image files are allowed."

    resp = await upload(client, project, sub, contents=b"")
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Uploaded file is empty."


async def test_upload_requires_assignment(client, admin):
    project = await create_project(client)
    sub = await create_subcontractor(client)
    resp = await upload(client, project, sub)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Subcontractor is not assigned to this project"


async def test_upload_without_ai_waits_for_review(client, site):
    project, sub = site
    resp = await upload(client, project, sub)
    assert resp.status_code == 201, resp.text
    document = resp.json()["data"]
    assert document["processingStatus"] == "pending"
    assert document["verification"]["status"] == "review"
    assert document["verification"]["checks"] == []
    assert document["verification"]["deficiencies"] == []

    listing = await client.get("/api/documents")
    assert listing.status_code == 200, listing.text
    listed = listing.json()["data"][0]["verification"]
    assert listed["checks"] == []
    assert listed["deficiencies"] == []

    process = await client.post(f"/api/documents/{document['id']}/process")
    assert process.status_code == 503
    assert process.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    download = await client.get(f"/api/documents/{document['id']}/download")
    assert download.status_code == 200
    assert download.content == PDF_BYTES


async def test_compliant_certificate_marks_assignment_compliant(client, site, fake_ai):
    project, sub = site
    resp = await upload(client, project, sub)
    assert resp.status_code == 201, resp.text
    document = resp.json()["data"]
    assert fake_ai.calls == ["pdf"]
    assert document["processingStatus"] == "completed"
    assert document["verification"]["status"] == "pass"

    assignments = (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"]
    assert assignments[0]["status"] == "compliant"

    emails = (await client.get("/api/communications", params={"subcontractorId": sub["id"]})).json()["data"]
    assert [(e["type"], e["recipientEmail"]) for e in emails] == [("confirmation", "broker@cover.test")]


async def test_deficient_certificate_sends_notice(client, site, fake_ai):
    project, sub = site
    await client.post(
        f"/api/projects/{project['id']}/requirements",
        json={"coverageType": "public_liability", "minimumLimit": 50_000_000},
    )
    resp = await upload(client, project, sub)
    verification = resp.json()["data"]["verification"]
    assert verification["status"] == "fail"
    assert verification["deficiencies"][0]["type"] == "insufficient_limit"

    assignments = (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"]
    assert assignments[0]["status"] == "non_compliant"

    emails = (await client.get("/api/communications", params={"type": "deficiency"})).json()["data"]
    assert len(emails) == 1
    assert emails[0]["verificationId"] == verification["id"]

    feed = (await client.get("/api/notifications")).json()
    assert feed["notifications"][0]["type"] == "coc_failed"


async def test_manual_verify(client, site):
    project, sub = site
    document = (await upload(client, project, sub)).json()["data"]

    bad = await client.post(f"/api/documents/{document['id']}/verify", json={"action": "maybe"})
    assert bad.status_code == 400

    resp = await client.post(
        f"/api/documents/{document['id']}/verify", json={"action": "approve", "notes": "Checked by phone"}
    )
    assert resp.status_code == 200
    verification = resp.json()["data"]
    assert verification["status"] == "pass"
    assert verification["notes"] == "Checked by phone"
    assert verification["verifiedByUserId"]

    assignments = (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"]
    assert assignments[0]["status"] == "compliant"


async def test_list_filters_by_subcontractor(client, site):
    project, sub = site
    await upload(client, project, sub)
    listing = (await client.get("/api/documents", params={"subcontractorId": sub["id"]})).json()["data"]
    assert len(listing) == 1
    assert listing[0]["projectName"] == "Harbour Tower"
    assert (await client.get("/api/documents", params={"subcontractorId": "missing"})).json()["data"] == []
