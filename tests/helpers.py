"""Request helpers shared by the API tests."""

import httpx

from riskshield.main import app

PASSWORD = "Sup3rSecret"

PDF_BYTES = b"%PDF-1.4\n% certificate of currency\n%%EOF\n"

ADMIN_SIGNUP = {
    "email": "admin@acme.test",
    "password": PASSWORD,
    "name": "Alice Admin",
    "companyName": "Acme Builders",
    "abn": "53 004 085 616",
}


def new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


async def create_project(client: httpx.AsyncClient, **overrides) -> dict:
    body = {"name": "Harbour Tower", "state": "NSW", "endDate": "2027-06-30", **overrides}
    resp = await client.post("/api/projects", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def create_subcontractor(client: httpx.AsyncClient, **overrides) -> dict:
    body = {
        "name": "Sparky Electrical Pty Ltd",
        "abn": "51 824 753 556",
        "trade": "Electrical",
        "contactEmail": "office@sparky.test",
        "brokerEmail": "broker@cover.test",
        **overrides,
    }
    resp = await client.post("/api/subcontractors", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def assign(client: httpx.AsyncClient, project_id: str, subcontractor_id: str) -> dict:
    resp = await client.post(f"/api/projects/{project_id}/subcontractors", json={"subcontractorId": subcontractor_id})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def certificate(**overrides) -> dict:
    """Extraction result for a compliant public liability certificate issued to the default subcontractor."""
    data = {
        "insured_party_name": "Sparky Electrical Pty Ltd",
        "insured_party_abn": "51824753556",
        "insurer_name": "QBE Insurance (Australia) Limited",
        "policy_number": "PL-0042",
        "period_of_insurance_start": "2026-01-01",
        "period_of_insurance_end": "2030-12-31",
        "coverages": [
            {"type": "public_liability", "limit": 20_000_000, "excess": 5_000,
             "principal_indemnity": True, "cross_liability": True},
        ],
        "extraction_confidence": 0.92,
    }
    data.update(overrides)
    return data


async def upload(client: httpx.AsyncClient, project: dict, sub: dict, *, name="coc.pdf", contents=PDF_BYTES,
                 content_type="application/pdf") -> httpx.Response:
    return await client.post(
        "/api/documents",
        files={"file": (name, contents, content_type)},
        data={"projectId": project["id"], "subcontractorId": sub["id"]},
    )
