"""Microsoft 365 mailbox connection (OAuth authorization code flow + Graph profile lookup)."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, IntegrationError
from riskshield.domain.user import User
from riskshield.services import http
from riskshield.services.integrations import IntegrationService, callback_url

logger = logging.getLogger(__name__)

PROVIDER = "microsoft"
DEV_MODE_EMAIL = "coc-inbox@example.onmicrosoft.com"


def authorize_url(state: str) -> str:
    query = httpx.QueryParams(
        {
            "client_id": settings.microsoft_client_id,
            "response_type": "code",
            "redirect_uri": callback_url(PROVIDER),
            "response_mode": "query",
            "scope": settings.microsoft_scopes,
            "state": state,
        }
    )
    return f"{settings.microsoft_login_base}/authorize?{query}"


class MicrosoftService:
    def __init__(self, session: AsyncSession, actor: User, transport: httpx.AsyncBaseTransport | None = None):
        self._integrations = IntegrationService(session, actor)
        self._transport = transport

    async def connect_url(self) -> str:
        state = await self._integrations.issue_state(PROVIDER)
        if settings.microsoft_dev_mode:
            return f"{callback_url(PROVIDER)}?{httpx.QueryParams({'code': 'dev_mode_code', 'state': state})}"
        return authorize_url(state)

    async def complete_oauth(self, code: str | None, state: str | None) -> str:
        await self._integrations.consume_state(state, PROVIDER)
        if not code:
            raise BadRequestError("missing_code")

        if settings.microsoft_dev_mode:
            tokens: dict[str, Any] = {"access_token": "dev_mode_access", "refresh_token": "dev_mode_refresh"}
            email = DEV_MODE_EMAIL
        else:
            tokens = await self._exchange_code(code)
            email = await self._mailbox_address(tokens["access_token"])

        await self._integrations.store_connection(PROVIDER, tokens, email=email)
        logger.info("Microsoft 365 mailbox %s connected", email)
        return "microsoft_connected"

    async def _exchange_code(self, code: str) -> dict[str, Any]:
        async with http.new_client(self._transport) as client:
            response = await http.send(
                client,
                "POST",
                f"{settings.microsoft_login_base}/token",
                data={
                    "client_id": settings.microsoft_client_id,
                    "client_secret": settings.microsoft_client_secret,
                    "code": code,
                    "redirect_uri": callback_url(PROVIDER),
                    "grant_type": "authorization_code",
                    "scope": settings.microsoft_scopes,
                },
            )
        if response.status_code >= 400:
            raise IntegrationError("Microsoft", f"Token exchange failed: {http.error_detail(response)}")
        return response.json()

    async def _mailbox_address(self, access_token: str) -> str | None:
        async with http.new_client(self._transport) as client:
            response = await http.send(
                client,
                "GET",
                f"{settings.microsoft_graph_base}/v1.0/me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if response.status_code >= 400:
            raise IntegrationError("Microsoft", f"Profile lookup failed: {http.error_detail(response)}")
        profile = response.json()
        return profile.get("mail") or profile.get("userPrincipalName")
