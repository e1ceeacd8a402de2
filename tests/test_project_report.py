import fitz

from riskshield.services.report import compliance_rate, report_filename
from tests.helpers import assign, create_subcontractor, upload


def test_compliance_rate_rounds_halves_up():
    assert compliance_rate(0, 0) == 0
    assert compliance_rate(1, 8) == 13
    assert compliance_rate(1, 3) == 33
    assert compliance_rate(2, 3) == 67
    assert compliance_rate(4, 4) == 100


def test_report_filename():
    assert report_filename("Harbour Tower (Stage 2)") == "Harbour_Tower__Stage_2__Compliance_Report.pdf"


async def test_project_report_pdf(client, site, fake_ai, member_client):
    project, sub = site
    await client.post(
        f"/api/projects/{project['id']}/requirements",
        json={"coverageType": "public_liability", "minimumLimit": 20_000_000},
    )
    await upload(client, project, sub)
    pending = await create_subcontractor(client, name="Pipe Masters", abn="33102417032")
    await assign(client, project["id"], pending["id"])

    resp = await client.get(f"/api/projects/{project['id']}/report")
    assert resp.status_code == 200, resp.text
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.headers["content-disposition"] == 'attachment; filename="Harbour_Tower_Compliance_Report.pdf"'

    with fitz.open(stream=resp.content, filetype="pdf") as doc:
        text = "\n".join(page.get_text() for page in doc)
    assert "Insurance Compliance Report" in text
    assert "Public Liability" in text
    assert "$20,000,000" in text
    assert "Sparky Electrical Pty Ltd" in text
    assert "Pipe Masters" in text
    assert "50%" in text

    assert (await client.get("/api/projects/missing/report")).status_code == 404
    manager = await member_client("project_manager")
    assert (await manager.get(f"/api/projects/{project['id']}/report")).status_code == 403
