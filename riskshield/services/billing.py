"""Subscription billing: Stripe checkout/portal sessions and webhook-driven company status."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, NotFoundError, ServiceUnavailableError
from riskshield.domain.company import Company
from riskshield.domain.mixins import utcnow
from riskshield.domain.user import User
from riskshield.repositories.account import AccountRepository
from riskshield.services.audit import AuditService
from riskshield.services.stripe_client import StripeClient, construct_event

logger = logging.getLogger(__name__)

TIERS = ("starter", "professional", "enterprise")
TIER_NAMES = {"starter": "Starter", "professional": "Professional", "enterprise": "Enterprise"}

STRIPE_STATUSES = {
    "active": "active",
    "trialing": "trialing",
    "past_due": "past_due",
    "canceled": "cancelled",
    "unpaid": "cancelled",
    "incomplete": "incomplete",
    "incomplete_expired": "incomplete",
    "paused": "paused",
}


def map_stripe_status(status: str | None) -> str:
    return STRIPE_STATUSES.get(status or "", "unknown")


def _from_epoch(value: Any) -> datetime | None:
    return datetime.fromtimestamp(int(value), tz=timezone.utc) if value else None


def _billing_url(**query: str) -> str:
    return f"{settings.app_url}/dashboard/settings/billing?" + "&".join(f"{k}={v}" for k, v in query.items())


class BillingService:
    def __init__(self, session: AsyncSession, actor: User):
        self._session = session
        self._actor = actor
        self._accounts = AccountRepository(session)
        self._audit = AuditService(session, actor.company_id)
        self._stripe = StripeClient()

    async def _company(self) -> Company:
        company = await self._accounts.get_company(self._actor.company_id)
        if company is None:
            raise NotFoundError("Company")
        return company

    async def create_checkout(self, tier: str) -> dict[str, Any]:
        if tier not in TIERS:
            raise BadRequestError("Invalid subscription tier. Must be starter, professional, or enterprise.")
        company = await self._company()
        trial_days = settings.stripe_trial_days

        if settings.stripe_simulated:
            company.subscription_tier = tier
            company.subscription_status = "trialing"
            company.trial_ends_at = utcnow() + timedelta(days=trial_days)
            await self._session.flush()
            await self._audit.record(
                "subscription_created", "subscription", company.id, user_id=self._actor.id,
                details={"tier": tier, "trial_days": trial_days, "simulated": True},
            )
            logger.info("Simulated %s trial started for company %s", tier, company.id)
            return {
                "checkout_url": _billing_url(success="true", tier=tier, simulated="true"),
                "session_id": None,
                "simulated": True,
            }

        price_id = settings.stripe_price_for(tier)
        if not price_id:
            raise ServiceUnavailableError(f"No Stripe price configured for the {TIER_NAMES[tier]} plan")
        if not company.stripe_customer_id:
            customer = await self._stripe.create_customer(self._actor.email, company.name, company.id)
            company.stripe_customer_id = customer.id
            await self._session.flush()

        session = await self._stripe.create_checkout_session(
            customer_id=company.stripe_customer_id,
            price_id=price_id,
            tier=tier,
            company_id=company.id,
            success_url=_billing_url(success="true"),
            cancel_url=_billing_url(canceled="true"),
            trial_days=trial_days,
        )
        await self._audit.record(
            "create_checkout", "subscription", company.id, user_id=self._actor.id,
            details={"tier": tier, "stripe_customer_id": company.stripe_customer_id, "trial_days": trial_days},
        )
        return {"checkout_url": session.url, "session_id": session.id, "simulated": False}

    async def create_portal(self) -> str:
        company = await self._company()
        if not company.stripe_customer_id:
            raise BadRequestError("No billing account found. Please subscribe to a plan first.")
        if settings.stripe_simulated:
            return f"{settings.app_url}/dashboard/settings/billing"
        session = await self._stripe.create_portal_session(
            company.stripe_customer_id, f"{settings.app_url}/dashboard/settings/billing"
        )
        return session.url

    async def subscription(self) -> dict[str, Any]:
        company = await self._company()
        return {
            "tier": company.subscription_tier,
            "status": company.subscription_status,
            "trial_ends_at": company.trial_ends_at,
            "current_period_end": company.subscription_period_end,
            "has_billing_account": bool(company.stripe_customer_id),
        }


class StripeWebhookHandler:
    """Applies Stripe events to companies. Runs without a signed-in user."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._accounts = AccountRepository(session)
        self._stripe = StripeClient()

    async def handle(self, payload: bytes, signature: str | None) -> str:
        if not settings.stripe_webhook_secret:
            raise ServiceUnavailableError("Stripe webhooks are not configured")
        construct_event(payload, signature, settings.stripe_webhook_secret)
        # Handlers read the verified body as plain JSON
        event = json.loads(payload)
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        handlers = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.created": self._subscription_changed,
            "customer.subscription.updated": self._subscription_changed,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.paid": self._invoice_paid,
            "invoice.payment_failed": self._payment_failed,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.debug("Ignoring Stripe event %s", event_type)
        else:
            await handler(obj)
        return event_type

    async def _find_company(self, obj: dict[str, Any]) -> Company | None:
        company_id = (obj.get("metadata") or {}).get("companyId")
        if company_id:
            company = await self._accounts.get_company(company_id)
            if company is not None:
                return company
        customer = obj.get("customer")
        if isinstance(customer, dict):
            customer = customer.get("id")
        return await self._accounts.get_company_by_stripe_customer(customer) if customer else None

    async def _record(self, company: Company, action: str, entity_id: str | None, details: dict[str, Any]) -> None:
        await self._session.flush()
        await AuditService(self._session, company.id).record(action, "billing", entity_id, details=details)

    async def _checkout_completed(self, obj: dict[str, Any]) -> None:
        company = await self._find_company(obj)
        tier = (obj.get("metadata") or {}).get("tier")
        if company is None or not tier:
            logger.error("Checkout session %s missing company or tier metadata", obj.get("id"))
            return
        subscription_id = obj.get("subscription")
        trial_end = None
        if subscription_id and not settings.stripe_simulated:
            subscription = await self._stripe.get_subscription(subscription_id)
            trial_end = _from_epoch(getattr(subscription, "trial_end", None))
            company.subscription_period_end = _from_epoch(getattr(subscription, "current_period_end", None))

        company.subscription_tier = tier
        company.subscription_status = "trialing" if trial_end else "active"
        company.trial_ends_at = trial_end
        company.stripe_subscription_id = subscription_id
        if obj.get("customer") and not company.stripe_customer_id:
            company.stripe_customer_id = obj["customer"]
        await self._record(
            company, "subscription_created", subscription_id,
            {"tier": tier, "stripe_subscription_id": subscription_id, "trial_ends_at": trial_end and trial_end.isoformat()},
        )
        logger.info("Company %s subscription activated: %s", company.id, tier)

    async def _subscription_changed(self, obj: dict[str, Any]) -> None:
        company = await self._find_company(obj)
        if company is None:
            logger.error("No company for subscription %s", obj.get("id"))
            return
        status = map_stripe_status(obj.get("status"))
        tier = (obj.get("metadata") or {}).get("tier")
        if tier:
            company.subscription_tier = tier
        company.subscription_status = status
        company.stripe_subscription_id = obj.get("id")
        company.trial_ends_at = _from_epoch(obj.get("trial_end"))
        company.subscription_period_end = _from_epoch(obj.get("current_period_end"))
        await self._record(company, "subscription_updated", obj.get("id"), {"status": obj.get("status"), "tier": tier})
        logger.info("Subscription %s updated: status=%s tier=%s", obj.get("id"), status, tier)

    async def _subscription_deleted(self, obj: dict[str, Any]) -> None:
        company = await self._find_company(obj)
        if company is None:
            logger.error("No company for cancelled subscription %s", obj.get("id"))
            return
        previous = company.subscription_tier
        company.subscription_tier = "trial"
        company.subscription_status = "cancelled"
        company.stripe_subscription_id = None
        await self._record(company, "subscription_cancelled", obj.get("id"), {"previous_tier": previous})

    async def _invoice_paid(self, obj: dict[str, Any]) -> None:
        company = await self._find_company(obj)
        if company is None or company.subscription_status != "past_due":
            return
        company.subscription_status = "active"
        await self._record(company, "payment_succeeded", obj.get("id"), {"amount_paid": obj.get("amount_paid")})
        logger.info("Company %s subscription restored to active after payment", company.id)

    async def _payment_failed(self, obj: dict[str, Any]) -> None:
        company = await self._find_company(obj)
        if company is None:
            logger.error("Could not find company for failed payment %s", obj.get("id"))
            return
        company.subscription_status = "past_due"
        await self._record(
            company, "payment_failed", obj.get("id"),
            {
                "amount_due": obj.get("amount_due"),
                "attempt_count": obj.get("attempt_count"),
                "next_attempt": obj.get("next_payment_attempt"),
            },
        )
        logger.warning("Payment failed for company %s, invoice %s", company.id, obj.get("id"))
