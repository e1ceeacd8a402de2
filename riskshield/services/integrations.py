"""OAuth state bookkeeping and connection status shared by the Procore and Microsoft integrations."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, NotFoundError
from riskshield.domain.integration import PROVIDERS, OAuthConnection
from riskshield.domain.mixins import as_utc, utcnow
from riskshield.domain.user import User
from riskshield.repositories.integration import OAuthConnectionRepository, OAuthStateRepository
from riskshield.services.audit import AuditService

logger = logging.getLogger(__name__)

OAUTH_STATE_TTL = timedelta(minutes=10)


def callback_url(provider: str) -> str:
    return f"{settings.app_url}{settings.api_prefix}/integrations/{provider}/callback"


def settings_redirect(**query: str) -> str:
    """Frontend integrations page, e.g. ``settings_redirect(success="procore_connected")``."""
    base = f"{settings.frontend_url}/dashboard/settings/integrations"
    if not query:
        return base
    return base + "?" + "&".join(f"{k}={v}" for k, v in query.items())


def is_dev_mode(provider: str) -> bool:
    return settings.procore_dev_mode if provider == "procore" else settings.microsoft_dev_mode


class IntegrationService:
    def __init__(self, session: AsyncSession, actor: User):
        self._actor = actor
        self._connections = OAuthConnectionRepository(session, actor.company_id)
        self._states = OAuthStateRepository(session, actor.company_id)
        self._audit = AuditService(session, actor.company_id)

    @property
    def connections(self) -> OAuthConnectionRepository:
        return self._connections

    async def issue_state(self, provider: str) -> str:
        state = secrets.token_urlsafe(32)
        await self._states.create(
            state=state,
            user_id=self._actor.id,
            provider=provider,
            expires_at=utcnow() + OAUTH_STATE_TTL,
        )
        return state

    async def consume_state(self, state: str | None, provider: str) -> None:
        """Single-use check of a callback's ``state``; raises BadRequestError when unknown or stale."""
        if not state:
            raise BadRequestError("invalid_state")
        row = await self._states.consume(state, provider)
        if row is None:
            raise BadRequestError("invalid_state")
        if as_utc(row.expires_at) < utcnow():
            raise BadRequestError("state_expired")

    async def store_connection(self, provider: str, tokens: dict, **fields) -> OAuthConnection:
        expires_in = int(tokens.get("expires_in") or 3600)
        connection = await self._connections.upsert(
            provider,
            access_token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token"),
            token_expires_at=utcnow() + timedelta(seconds=expires_in),
            **fields,
        )
        await self._audit.record(
            "connect", "integration", connection.id, user_id=self._actor.id, details={"provider": provider}
        )
        return connection

    async def status(self) -> list[dict]:
        rows = []
        for provider in PROVIDERS:
            connection = await self._connections.for_provider(provider)
            rows.append(
                {
                    "provider": provider,
                    "connected": connection is not None and not connection.pending_company_selection,
                    "email": connection.email if connection else None,
                    "procore_company_id": connection.procore_company_id if connection else None,
                    "procore_company_name": connection.procore_company_name if connection else None,
                    "pending_company_selection": bool(connection and connection.pending_company_selection),
                    "last_sync_at": connection.last_sync_at if connection else None,
                    "dev_mode": is_dev_mode(provider),
                }
            )
        return rows

    async def disconnect(self, provider: str) -> None:
        if provider not in PROVIDERS:
            raise BadRequestError(f"Unknown provider. Must be one of: {', '.join(PROVIDERS)}")
        if not await self._connections.remove(provider):
            raise NotFoundError(f"{provider.capitalize()} connection")
        await self._audit.record(
            "disconnect", "integration", None, user_id=self._actor.id, details={"provider": provider}
        )
        logger.info("Company %s disconnected %s", self._actor.company_id, provider)
