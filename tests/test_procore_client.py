import httpx
import pytest

from riskshield.core.exceptions import IntegrationError
from riskshield.services.procore_client import ProcoreClient


def _client(handler, **kwargs) -> ProcoreClient:
    return ProcoreClient(
        42, "old-token", "refresh-me", transport=httpx.MockTransport(handler), dev_mode=False, **kwargs
    )


async def test_requests_carry_token_and_company_header():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1, "name": "Tower"}])

    page = await _client(handler).get_projects(page=2, per_page=1)
    assert page.data == [{"id": 1, "name": "Tower"}]
    assert page.has_more is True
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer old-token"
    assert request.headers["Procore-Company-Id"] == "42"
    assert request.url.params["page"] == "2"
    assert request.url.params["company_id"] == "42"


async def test_unauthorized_refreshes_once_and_replays():
    stored = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "new-token", "refresh_token": "rotated"})
        if request.headers["Authorization"] == "Bearer old-token":
            return httpx.Response(401, json={"error": "expired"})
        return httpx.Response(200, json=[{"id": 7}])

    async def on_refresh(tokens):
        stored.append(tokens["access_token"])

    client = _client(handler, on_token_refresh=on_refresh)
    assert await client.get_companies() == [{"id": 7}]
    assert client.access_token == "new-token"
    assert client.refresh_token == "rotated"
    assert stored == ["new-token"]


async def test_rate_limit_waits_then_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        return httpx.Response(200, json=[])

    page = await _client(handler).get_vendors(is_active=True)
    assert len(calls) == 2
    assert page.data == []
    assert calls[0].url.params["filters[is_active]"] == "true"


async def test_errors_raise_integration_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": {"message": "boom"}})

    with pytest.raises(IntegrationError) as exc_info:
        await _client(handler).get_companies()
    assert exc_info.value.status_code == 502
    assert "boom" in exc_info.value.message


async def test_missing_vendor_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    assert await _client(handler).get_vendor(99) is None


async def test_sync_vendor_insurances_updates_and_creates():
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": 5, "insurance_type": "General Liability"}])
        sent.append((request.method, request.url.path))
        return httpx.Response(200, json={"id": 6})

    result = await _client(handler).sync_vendor_insurances(
        3, [{"insurance_type": "general liability"}, {"insurance_type": "Workers Compensation"}]
    )
    assert result == {"created": 1, "updated": 1, "errors": []}
    assert sent == [
        ("PATCH", "/rest/v1.0/companies/42/vendor_insurances/5"),
        ("POST", "/rest/v1.0/companies/42/vendor_insurances"),
    ]


async def test_dev_mode_serves_mock_data():
    client = ProcoreClient(1, "dev", dev_mode=True)
    assert await client.get_companies()
    page = await client.get_vendors(per_page=2)
    assert len(page.data) <= 2
