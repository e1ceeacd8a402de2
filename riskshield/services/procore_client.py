"""Procore REST API client.

Every call carries the bearer token and the ``Procore-Company-Id`` header.
A 429 waits for ``Retry-After`` and tries again; a 401 refreshes the OAuth
token once and replays the request. Without a configured client id the
client runs in dev mode and serves ``procore_mock`` data.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from riskshield.core.config import settings
from riskshield.core.exceptions import IntegrationError
from riskshield.services import http, procore_mock

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60
MAX_RATE_LIMIT_WAITS = 3

TokenCallback = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class Page:
    data: list[dict[str, Any]]
    page: int
    per_page: int
    has_more: bool


class ProcoreClient:
    def __init__(
        self,
        company_id: int,
        access_token: str,
        refresh_token: str | None = None,
        *,
        on_token_refresh: TokenCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        dev_mode: bool | None = None,
    ):
        self.company_id = company_id
        self.access_token = access_token
        self.refresh_token = refresh_token
        self._on_token_refresh = on_token_refresh
        self._transport = transport
        self.dev_mode = settings.procore_dev_mode if dev_mode is None else dev_mode
        if self.dev_mode:
            logger.info("Procore client running in dev mode (mock data)")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def refresh_access_token(self) -> dict[str, Any]:
        if self.dev_mode:
            tokens = procore_mock.tokens()
        else:
            async with http.new_client(self._transport) as client:
                response = await http.send(
                    client,
                    "POST",
                    f"{settings.procore_login_base}/oauth/token",
                    data={
                        "grant_type": "refresh_token",
                        "client_id": settings.procore_client_id,
                        "client_secret": settings.procore_client_secret,
                        "refresh_token": self.refresh_token or "",
                    },
                )
            if response.status_code >= 400:
                raise IntegrationError("Procore", f"Token refresh failed: {http.error_detail(response)}")
            tokens = response.json()

        self.access_token = tokens["access_token"]
        self.refresh_token = tokens.get("refresh_token", self.refresh_token)
        if self._on_token_refresh is not None:
            await self._on_token_refresh(tokens)
        return tokens

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        refreshed = False
        waits = 0
        async with http.new_client(self._transport) as client:
            while True:
                response = await http.send(
                    client,
                    method,
                    f"{settings.procore_api_base}{endpoint}",
                    params=params,
                    json=json,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Procore-Company-Id": str(self.company_id),
                    },
                )
                if response.status_code == 429 and waits < MAX_RATE_LIMIT_WAITS:
                    waits += 1
                    delay = _retry_after(response)
                    logger.warning("Procore rate limited; waiting %ss", delay)
                    await asyncio.sleep(delay)
                    continue
                if response.status_code == 401 and not refreshed:
                    refreshed = True
                    logger.info("Procore token expired, refreshing")
                    await self.refresh_access_token()
                    continue
                break

        if response.status_code >= 400:
            raise IntegrationError(
                "Procore", f"Procore API error ({response.status_code}): {http.error_detail(response)}"
            )
        return response.json()

    # ------------------------------------------------------------------
    # Companies / projects
    # ------------------------------------------------------------------

    async def get_companies(self) -> list[dict[str, Any]]:
        if self.dev_mode:
            return list(procore_mock.MOCK_COMPANIES)
        return await self.request("GET", "/rest/v1.0/companies")

    async def get_projects(self, page: int = 1, per_page: int | None = None) -> Page:
        per_page = per_page or settings.procore_page_size
        if self.dev_mode:
            data = procore_mock.projects(page, per_page)
            more = bool(procore_mock.projects(page + 1, per_page))
            return Page(data, page, per_page, more)
        data = await self.request(
            "GET", "/rest/v1.0/projects", params={"company_id": self.company_id, "page": page, "per_page": per_page}
        )
        return Page(data, page, per_page, len(data) == per_page)

    async def get_project(self, project_id: int) -> dict[str, Any] | None:
        if self.dev_mode:
            return procore_mock.project(project_id)
        try:
            return await self.request("GET", f"/rest/v1.0/projects/{project_id}", params={"company_id": self.company_id})
        except IntegrationError as exc:
            logger.warning("Procore project %s unavailable: %s", project_id, exc.message)
            return None

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    async def get_vendors(self, page: int = 1, per_page: int | None = None, is_active: bool | None = None) -> Page:
        per_page = per_page or settings.procore_page_size
        if self.dev_mode:
            data = procore_mock.vendors(page, per_page, is_active)
            more = bool(procore_mock.vendors(page + 1, per_page, is_active))
            return Page(data, page, per_page, more)
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if is_active is not None:
            params["filters[is_active]"] = str(is_active).lower()
        data = await self.request("GET", f"/rest/v1.0/companies/{self.company_id}/vendors", params=params)
        return Page(data, page, per_page, len(data) == per_page)

    async def get_vendor(self, vendor_id: int) -> dict[str, Any] | None:
        if self.dev_mode:
            return procore_mock.vendor(vendor_id)
        try:
            return await self.request("GET", f"/rest/v1.0/companies/{self.company_id}/vendors/{vendor_id}")
        except IntegrationError as exc:
            logger.warning("Procore vendor %s unavailable: %s", vendor_id, exc.message)
            return None

    async def update_vendor_custom_fields(self, vendor_id: int, custom_fields: dict[str, Any]) -> dict[str, Any]:
        if self.dev_mode:
            vendor = procore_mock.vendor(vendor_id)
            if vendor is None:
                raise IntegrationError("Procore", f"Vendor {vendor_id} not found")
            logger.info("Dev mode: would update vendor %s custom fields", vendor_id)
            return {**vendor, "custom_fields": custom_fields}
        return await self.request(
            "PATCH",
            f"/rest/v1.0/companies/{self.company_id}/vendors/{vendor_id}",
            json={"vendor": {"custom_fields": custom_fields}},
        )

    async def get_vendor_insurances(self, vendor_id: int) -> list[dict[str, Any]]:
        if self.dev_mode:
            return []
        return await self.request(
            "GET",
            f"/rest/v1.0/companies/{self.company_id}/vendor_insurances",
            params={"filters[vendor_id]": vendor_id},
        )

    async def create_vendor_insurance(self, insurance: dict[str, Any]) -> dict[str, Any]:
        if self.dev_mode:
            logger.info("Dev mode: would create %s insurance for vendor %s", insurance.get("insurance_type"), insurance.get("vendor_id"))
            return {"id": insurance.get("vendor_id", 0) * 1000 + 1, **insurance}
        return await self.request(
            "POST",
            f"/rest/v1.0/companies/{self.company_id}/vendor_insurances",
            json={"vendor_insurance": insurance},
        )

    async def update_vendor_insurance(self, insurance_id: int, insurance: dict[str, Any]) -> dict[str, Any]:
        if self.dev_mode:
            logger.info("Dev mode: would update insurance %s", insurance_id)
            return {"id": insurance_id, **insurance}
        return await self.request(
            "PATCH",
            f"/rest/v1.0/companies/{self.company_id}/vendor_insurances/{insurance_id}",
            json={"vendor_insurance": insurance},
        )

    async def sync_vendor_insurances(self, vendor_id: int, insurances: list[dict[str, Any]]) -> dict[str, Any]:
        """Create or update one insurance record per insurance type; failures are collected, not raised."""
        result: dict[str, Any] = {"created": 0, "updated": 0, "errors": []}
        existing = {
            (row.get("insurance_type") or "").lower(): row for row in await self.get_vendor_insurances(vendor_id)
        }
        for insurance in insurances:
            payload = {**insurance, "vendor_id": vendor_id}
            match = existing.get((insurance.get("insurance_type") or "").lower())
            try:
                if match is not None:
                    await self.update_vendor_insurance(match["id"], payload)
                    result["updated"] += 1
                else:
                    await self.create_vendor_insurance(payload)
                    result["created"] += 1
            except IntegrationError as exc:
                result["errors"].append(f"Failed to sync {insurance.get('insurance_type')}: {exc.message}")
        return result


def _retry_after(response: httpx.Response) -> float:
    raw = response.headers.get("Retry-After")
    try:
        return max(0.0, float(raw)) if raw is not None else DEFAULT_RETRY_AFTER_SECONDS
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


# ---------------------------------------------------------------------------
# OAuth (authorization code flow)
# ---------------------------------------------------------------------------

def authorize_url(state: str, redirect_uri: str) -> str:
    query = httpx.QueryParams(
        {"response_type": "code", "client_id": settings.procore_client_id, "redirect_uri": redirect_uri, "state": state}
    )
    return f"{settings.procore_login_base}/oauth/authorize?{query}"


async def exchange_code(
    code: str, redirect_uri: str, transport: httpx.AsyncBaseTransport | None = None
) -> dict[str, Any]:
    if settings.procore_dev_mode:
        return procore_mock.tokens()
    async with http.new_client(transport) as client:
        response = await http.send(
            client,
            "POST",
            f"{settings.procore_login_base}/oauth/token",
            data={
                "grant_type": "authorization_code",
                "client_id": settings.procore_client_id,
                "client_secret": settings.procore_client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
    if response.status_code >= 400:
        raise IntegrationError("Procore", f"Token exchange failed: {http.error_detail(response)}")
    return response.json()
