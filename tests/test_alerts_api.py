from datetime import timedelta

from riskshield.domain.mixins import utcnow
from tests.helpers import create_project, create_subcontractor


async def _on_site(client, project: dict, sub: dict, days_from_today: int) -> None:
    on_site = (utcnow() + timedelta(days=days_from_today)).date().isoformat()
    resp = await client.post(
        f"/api/projects/{project['id']}/subcontractors", json={"subcontractorId": sub["id"], "onSiteDate": on_site}
    )
    assert resp.status_code == 201, resp.text


async def test_stop_work_risks(client, admin):
    project = await create_project(client)
    on_site = await create_subcontractor(client)
    future = await create_subcontractor(client, name="Pipe Masters", abn="33102417032")
    await _on_site(client, project, on_site, -3)
    await _on_site(client, project, future, 10)

    body = (await client.get("/api/alerts/critical")).json()
    assert body["count"] == 1
    risk = body["stopWorkRisks"][0]
    assert risk["subcontractorName"] == "Sparky Electrical Pty Ltd"
    assert risk["status"] == "pending"
    assert risk["issue"] == "No valid Certificate of Currency on file"

    await client.put(f"/api/projects/{project['id']}", json={"status": "completed"})
    assert (await client.get("/api/alerts/critical")).json()["count"] == 0


async def test_send_critical_alert(client, admin, member_client):
    manager = await member_client("project_manager")
    managers = (await client.get("/api/users")).json()["data"]
    manager_id = next(u["id"] for u in managers if u["role"] == "project_manager")
    project = await create_project(client, projectManagerId=manager_id)
    sub = await create_subcontractor(client)
    await _on_site(client, project, sub, -1)

    missing = await client.post("/api/alerts/critical", json={"projectId": project["id"]})
    assert missing.status_code == 400
    unknown = await client.post("/api/alerts/critical", json={"projectId": project["id"], "subcontractorId": "nope"})
    assert unknown.status_code == 404

    resp = await client.post("/api/alerts/critical", json={"projectId": project["id"], "subcontractorId": sub["id"]})
    assert resp.status_code == 200, resp.text
    result = resp.json()
    assert result["success"] is True
    assert result["issue"] == "No valid Certificate of Currency on file"
    assert sorted(result["recipients"]) == ["admin@acme.test", "project_manager@acme.test"]

    emails = (await client.get("/api/communications", params={"type": "critical_alert"})).json()["data"]
    assert len(emails) == 2
    assert emails[0]["subject"] == "CRITICAL: Stop-work risk - Sparky Electrical Pty Ltd on Harbour Tower"

    feed = (await manager.get("/api/notifications")).json()
    assert feed["notifications"][0]["type"] == "stop_work_risk"

    logs = (await client.get("/api/audit-logs", params={"action": "send_critical_alert"})).json()["logs"]
    assert logs[0]["entityType"] == "critical_alert"
