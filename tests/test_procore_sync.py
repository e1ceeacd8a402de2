import httpx

from riskshield.services.procore_sync import (
    NO_ABN_WARNING,
    coverage_summary,
    determine_compliance_status,
    extract_vendor_abn,
    insurance_inputs,
    map_procore_project,
    map_procore_vendor,
    map_state,
)
from tests.helpers import create_project, create_subcontractor


def test_map_state():
    assert map_state("nsw") == "NSW"
    assert map_state("Western Australia") == "WA"
    assert map_state("CA") is None
    assert map_state(None) is None


def test_extract_vendor_abn_prefers_abn_fields():
    assert extract_vendor_abn({"abn": "51 824 753 556"}) == "51824753556"
    assert extract_vendor_abn({"custom_fields": {"ABN": "53-004-085-616"}}) == "53004085616"
    assert extract_vendor_abn({"abn": "123", "tax_id": "33102417032"}) == "33102417032"
    assert extract_vendor_abn({"tax_id": "12-3456789"}) is None


def test_map_procore_project():
    fields = map_procore_project(
        {
            "id": 9, "name": "Depot", "address": "1 Rail Rd", "city": "Perth", "state_code": "WA",
            "active": False, "projected_finish_date": "2026-05-01T00:00:00Z", "estimated_value": "1500000",
        }
    )
    assert fields["address"] == "1 Rail Rd, Perth, WA"
    assert fields["state"] == "WA"
    assert fields["status"] == "completed"
    assert fields["end_date"].isoformat() == "2026-05-01"
    assert fields["start_date"] is None
    assert fields["estimated_value"] == 1_500_000


def test_map_procore_vendor_uses_primary_contact():
    fields = map_procore_vendor(
        {"id": 3, "name": "Tilers", "primary_contact": {"name": "Kim", "email_address": "KIM@TILE.TEST"}}
    )
    assert fields["contact_name"] == "Kim"
    assert fields["contact_email"] == "kim@tile.test"
    assert fields["abn"] is None


def test_compliance_status_and_coverage_summary():
    checks = [
        {"check_type": "policy_validity", "status": "fail", "details": "Policy expired on 2026-01-01"},
        {"check_type": "coverage_public_liability", "status": "fail", "details": "Insufficient limit"},
        {"check_type": "coverage_workers_comp", "status": "pass", "details": "Present"},
        {"check_type": "coverage_professional_indemnity", "status": "fail", "details": "Not found"},
    ]
    assert determine_compliance_status("pass", checks) == "compliant"
    assert determine_compliance_status("review", checks) == "pending"
    assert determine_compliance_status("fail", checks) == "expired"
    assert determine_compliance_status("fail", checks[1:]) == "non_compliant"

    summary = coverage_summary(checks)
    assert summary == [
        {"type": "public_liability", "status": "insufficient"},
        {"type": "workers_comp", "status": "valid"},
        {"type": "professional_indemnity", "status": "missing"},
    ]
    inputs = insurance_inputs(7, summary)
    assert [(i["insurance_type"], i["status"]) for i in inputs] == [
        ("General Liability", "non_compliant"),
        ("Workers Compensation", "compliant"),
    ]


async def _connect(client) -> str:
    connect = await client.get("/api/integrations/procore/connect")
    assert connect.status_code == 200, connect.text
    url = httpx.URL(connect.json()["data"]["redirectUrl"])
    assert url.params["code"] == "dev_mode_code"

    callback = await client.get(url.path, params=url.params)
    assert callback.status_code == 302
    return callback.headers["location"]


async def test_dev_mode_connect_select_and_sync(client, admin):
    location = await _connect(client)
    assert location.endswith("/dashboard/settings/integrations?action=procore_select_company")

    status = (await client.get("/api/integrations/status")).json()["data"]["integrations"]
    procore = next(i for i in status if i["provider"] == "procore")
    assert procore["connected"] is False
    assert procore["pendingCompanySelection"] is True

    blocked = await client.get("/api/procore/vendors")
    assert blocked.status_code == 400
    assert blocked.json()["error"]["message"] == "Select a Procore company before syncing"

    companies = (await client.get("/api/integrations/procore/companies")).json()["data"]
    assert [c["id"] for c in companies] == [1001, 1002]
    selected = await client.post("/api/integrations/procore/select-company", json={"companyId": 1001})
    assert selected.json()["data"]["procoreCompanyName"] == "Apex Construction Group"

    existing = await create_subcontractor(client)
    project = await create_project(client)

    vendors = (await client.get("/api/procore/vendors")).json()["data"]
    assert 7004 not in [v["id"] for v in vendors["items"]]

    resp = await client.post(
        "/api/procore/vendors", json={"vendorIds": [7001, 7003, 9999], "projectId": project["id"]}
    )
    assert resp.status_code == 200, resp.text
    batch = resp.json()["data"]
    assert (batch["created"], batch["updated"], batch["errors"]) == (1, 1, 1)
    merged, created, missing = batch["results"]
    assert merged["shieldId"] == existing["id"]
    assert merged["details"] == {"merged_by_abn": True}
    assert created["details"] == {"warning": NO_ABN_WARNING}
    assert missing["message"] == "Vendor not found in Procore"

    synced = {v["id"]: v for v in (await client.get("/api/procore/vendors")).json()["data"]["items"]}
    assert synced[7001]["synced"] is True
    assert synced[7001]["shieldId"] == existing["id"]

    assigned = (await client.get(f"/api/projects/{project['id']}/subcontractors")).json()["data"]
    assert len(assigned) == 2


async def test_project_sync_creates_then_updates(client, admin):
    await _connect(client)
    await client.post("/api/integrations/procore/select-company", json={"companyId": 1001})

    first = (await client.post("/api/procore/projects", json={"projectIds": [5001]})).json()["data"]
    assert first["created"] == 1
    shield_id = first["results"][0]["shieldId"]

    project = (await client.get(f"/api/projects/{shield_id}")).json()["data"]
    assert project["name"] == "Sydney Metro Station Upgrade"
    assert project["state"] == "NSW"

    second = (await client.post("/api/procore/projects", json={"projectIds": [5001]})).json()["data"]
    assert second["updated"] == 1

    skipped = await client.post("/api/procore/projects", json={"projectIds": [5001], "updateExisting": False})
    assert skipped.json()["data"]["skipped"] == 1

    listing = (await client.get("/api/procore/projects")).json()["data"]
    assert next(p for p in listing["items"] if p["id"] == 5001)["shieldId"] == shield_id


async def test_push_compliance_needs_mapping(client, admin):
    await _connect(client)
    await client.post("/api/integrations/procore/select-company", json={"companyId": 1001})
    sub = await create_subcontractor(client)
    resp = await client.post("/api/procore/push-compliance", json={"subcontractorId": sub["id"]})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Subcontractor not synced from Procore - no mapping exists"
    history = await client.get("/api/procore/push-compliance", params={"subcontractorId": sub["id"]})
    assert history.json()["data"] == []


async def test_callback_errors_redirect(client, admin):
    denied = await client.get("/api/integrations/procore/callback", params={"error": "access_denied"})
    assert denied.headers["location"].endswith("error=oauth_denied")

    forged = await client.get(
        "/api/integrations/procore/callback", params={"code": "dev_mode_code", "state": "forged"}
    )
    assert forged.status_code == 302
    assert forged.headers["location"].endswith("error=invalid_state")


async def test_disconnect(client, admin):
    await _connect(client)
    assert (await client.delete("/api/integrations/procore")).status_code == 204
    assert (await client.delete("/api/integrations/procore")).status_code == 404
    assert (await client.delete("/api/integrations/dropbox")).status_code == 400
