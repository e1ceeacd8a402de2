from riskshield.domain.mixins import utcnow
from tests.helpers import assign, create_project, create_subcontractor


async def test_first_request_backfills_history(client, admin):
    project = await create_project(client)
    sub = await create_subcontractor(client)
    await assign(client, project["id"], sub["id"])

    resp = await client.get("/api/compliance-history")
    assert resp.status_code == 200
    body = resp.json()
    assert body["generated"] is True
    assert body["days"] == 30
    assert len(body["history"]) == 31

    today = body["history"][-1]
    assert today["date"] == utcnow().date().isoformat()
    assert (today["total"], today["pending"], today["complianceRate"]) == (1, 1, 0)

    again = (await client.get("/api/compliance-history")).json()
    assert again["generated"] is False
    assert again["history"] == body["history"]


async def test_shorter_window(client, admin):
    await client.get("/api/compliance-history")
    week = (await client.get("/api/compliance-history", params={"days": 7})).json()
    assert len(week["history"]) == 8
    assert week["generated"] is False


async def test_days_is_bounded(client, admin):
    assert (await client.get("/api/compliance-history", params={"days": 0})).status_code == 400
    assert (await client.get("/api/compliance-history", params={"days": 366})).status_code == 400
