from datetime import timedelta

from sqlalchemy import update

from riskshield.db.base import async_session_factory
from riskshield.domain.communication import Communication
from riskshield.domain.document import CocDocument
from riskshield.domain.mixins import utcnow
from tests.helpers import upload


async def _failed_certificate(client, site) -> dict:
    project, sub = site
    await client.post(
        f"/api/projects/{project['id']}/requirements",
        json={"coverageType": "public_liability", "minimumLimit": 50_000_000},
    )
    document = (await upload(client, project, sub)).json()["data"]
    assert document["verification"]["status"] == "fail"
    return document


async def _age(*, notice_days: int, document_days: int) -> None:
    """Move the deficiency notice and the certificate into the past."""
    now = utcnow()
    async with async_session_factory() as session:
        await session.execute(update(Communication).values(sent_at=now - timedelta(days=notice_days)))
        await session.execute(update(CocDocument).values(created_at=now - timedelta(days=document_days)))
        await session.commit()


async def test_follow_up_waits_until_due(client, site, fake_ai):
    await _failed_certificate(client, site)

    resp = await client.post("/api/communications/trigger-followups", json={})
    assert resp.status_code == 200, resp.text
    result = resp.json()
    assert result["followupsSent"] == []
    assert result["pendingResponsesFound"] == 1

    preview = (await client.get("/api/communications/trigger-followups")).json()["data"]
    assert preview["summary"] == {"wouldSend": 0, "notYetDue": 1, "total": 1}
    assert preview["notYetDue"][0]["daysUntilFollowup"] == 2


async def test_follow_up_sent_after_silence(client, site, fake_ai, member_client):
    document = await _failed_certificate(client, site)
    await _age(notice_days=3, document_days=4)

    preview = (await client.get("/api/communications/trigger-followups", params={"minDays": 2})).json()["data"]
    assert preview["summary"]["wouldSend"] == 1
    assert preview["wouldGetFollowup"][0]["daysWaiting"] == 3

    viewer = await member_client("read_only")
    assert (await viewer.post("/api/communications/trigger-followups", json={})).status_code == 403

    resp = await client.post("/api/communications/trigger-followups", json={"minDaysWaiting": 2, "maxFollowups": 5})
    result = resp.json()
    assert result["message"] == "Sent 1 follow-up email(s)"
    sent = result["followupsSent"][0]
    assert sent["recipientEmail"] == "broker@cover.test"
    assert sent["projectName"] == "Harbour Tower"
    assert sent["daysWaiting"] == 3

    follow_ups = (await client.get("/api/communications", params={"type": "follow_up"})).json()["data"]
    assert len(follow_ups) == 1
    assert follow_ups[0]["verificationId"] == document["verification"]["id"]
    assert "OUTSTANDING ISSUES" in follow_ups[0]["body"]

    # The fresh follow-up restarts the clock
    again = (await client.post("/api/communications/trigger-followups", json={})).json()
    assert again["followupsSent"] == []

    logs = (await client.get("/api/audit-logs", params={"action": "auto_follow_up"})).json()
    assert logs["total"] == 1


async def test_no_follow_up_once_a_new_certificate_arrives(client, site, fake_ai):
    await _failed_certificate(client, site)
    # Notice went out three days ago; the certificate on file is newer than that
    await _age(notice_days=3, document_days=1)

    result = (await client.post("/api/communications/trigger-followups", json={})).json()
    assert result["pendingResponsesFound"] == 0
    assert result["followupsSent"] == []
