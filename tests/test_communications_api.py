from datetime import timedelta

from riskshield.domain.mixins import utcnow
from tests.helpers import upload


async def test_email_templates_can_be_customised(client, admin, site, fake_ai):
    templates = (await client.get("/api/email-templates")).json()["data"]
    assert {t["type"] for t in templates} == {
        "deficiency", "confirmation", "expiration_reminder", "follow_up", "critical_alert"
    }
    assert all(t["isDefault"] for t in templates)

    saved = await client.put(
        "/api/email-templates/confirmation",
        json={"subject": "Approved: {{subcontractor_name}}", "body": "All good for {{project_name}}."},
    )
    assert saved.status_code == 200
    assert saved.json()["data"]["isCustom"] is True

    project, sub = site
    await upload(client, project, sub)
    email = (await client.get("/api/communications", params={"type": "confirmation"})).json()["data"][0]
    assert email["subject"] == "Approved: Sparky Electrical Pty Ltd"
    assert email["body"] == "All good for Harbour Tower."
    assert email["status"] == "sent"


async def test_email_template_validation(client, admin):
    unknown = await client.put("/api/email-templates/newsletter", json={"subject": "Hi", "body": "There"})
    assert unknown.status_code == 400
    blank = await client.put("/api/email-templates/deficiency", json={"subject": " ", "body": "x"})
    assert blank.status_code == 400


async def test_resend_sends_follow_up(client, site, fake_ai):
    project, sub = site
    await upload(client, project, sub)
    original = (await client.get("/api/communications")).json()["data"][0]

    resp = await client.post(f"/api/communications/{original['id']}/resend")
    assert resp.status_code == 200
    follow_up = resp.json()["data"]
    assert follow_up["type"] == "follow_up"
    assert follow_up["recipientEmail"] == "broker@cover.test"

    assert (await client.post("/api/communications/missing/resend")).status_code == 404


async def test_expirations_and_reminders(client, site, fake_ai, member_client):
    project, sub = site
    soon = (utcnow() + timedelta(days=10)).date()
    # A policy ending before the project fails outright
    await client.put(f"/api/projects/{project['id']}", json={"endDate": None})
    fake_ai.result["period_of_insurance_end"] = soon.isoformat()
    document = (await upload(client, project, sub)).json()["data"]
    assert document["verification"]["status"] == "review"

    report = (await client.get("/api/expirations")).json()["data"]
    assert report["summary"] == {"total": 1, "expired": 0, "expiringSoon": 1, "valid": 0}
    item = report["expirations"][0]
    assert item["daysUntilExpiry"] == 10
    assert item["projectName"] == "Harbour Tower"

    later = (await client.get("/api/expirations", params={"startDate": (soon + timedelta(days=1)).isoformat()})).json()
    assert later["data"]["expirations"] == []

    viewer = await member_client("read_only")
    denied = await viewer.post("/api/expirations/remind", json={"verificationIds": [item["verificationId"]]})
    assert denied.status_code == 403

    resp = await client.post("/api/expirations/remind", json={"verificationIds": [item["verificationId"], "gone"]})
    assert resp.json() == {"success": True, "sent": 1, "skipped": 1}
    reminders = (await client.get("/api/communications", params={"type": "expiration_reminder"})).json()["data"]
    assert len(reminders) == 1

    empty = await client.post("/api/expirations/remind", json={"verificationIds": []})
    assert empty.status_code == 400
