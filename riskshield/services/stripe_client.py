"""Stripe SDK calls used by billing.

The SDK is synchronous, so each call runs in a worker thread. Every request
passes the configured secret key explicitly rather than setting the global
``stripe.api_key``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import stripe

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError, IntegrationError

logger = logging.getLogger(__name__)


def construct_event(payload: bytes, signature: str | None, secret: str) -> stripe.Event:
    """Verify the ``stripe-signature`` header and parse the event; raises BadRequestError."""
    if not signature:
        raise BadRequestError("Missing signature")
    try:
        return stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError:
        raise BadRequestError("Invalid signature") from None
    except ValueError:
        raise BadRequestError("Invalid webhook payload") from None


class StripeClient:
    def __init__(self, secret_key: str | None = None):
        self._secret_key = secret_key or settings.stripe_secret_key

    async def _call(self, fn, *args: Any, **params: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, api_key=self._secret_key, **params)
        except stripe.StripeError as exc:
            logger.error("Stripe request failed: %s", exc)
            raise IntegrationError("Stripe", exc.user_message or str(exc)) from exc

    async def create_customer(self, email: str, name: str, company_id: str) -> stripe.Customer:
        return await self._call(stripe.Customer.create, email=email, name=name, metadata={"companyId": company_id})

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        tier: str,
        company_id: str,
        success_url: str,
        cancel_url: str,
        trial_days: int,
    ) -> stripe.checkout.Session:
        metadata = {"companyId": company_id, "tier": tier}
        return await self._call(
            stripe.checkout.Session.create,
            mode="subscription",
            customer=customer_id,
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            allow_promotion_codes=True,
            metadata=metadata,
            subscription_data={"trial_period_days": trial_days, "metadata": metadata},
        )

    async def create_portal_session(self, customer_id: str, return_url: str) -> stripe.billing_portal.Session:
        return await self._call(stripe.billing_portal.Session.create, customer=customer_id, return_url=return_url)

    async def get_subscription(self, subscription_id: str) -> stripe.Subscription:
        return await self._call(stripe.Subscription.retrieve, subscription_id)
