from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import get_current_user, require_roles
from riskshield.schemas.billing import CheckoutOut, CheckoutRequest, PortalOut, SubscriptionOut, WebhookAck
from riskshield.services.billing import BillingService, StripeWebhookHandler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["Billing"])


@router.post("/create-checkout-session", response_model=DataResponse[CheckoutOut])
async def create_checkout_session(
    body: CheckoutRequest,
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    """Start a subscription; without Stripe keys the trial is activated directly."""
    checkout = await BillingService(session, user).create_checkout(body.tier)
    return {"data": CheckoutOut.model_validate(checkout)}


@router.post("/create-portal-session", response_model=DataResponse[PortalOut])
async def create_portal_session(
    user: User = Depends(require_roles("admin")),
    session: AsyncSession = Depends(get_db),
):
    url = await BillingService(session, user).create_portal()
    return {"data": PortalOut(portal_url=url)}


@router.get("/subscription", response_model=DataResponse[SubscriptionOut])
async def get_subscription(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_db)):
    subscription = await BillingService(session, user).subscription()
    return {"data": SubscriptionOut.model_validate(subscription)}


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="stripe-signature"),
    session: AsyncSession = Depends(get_db),
):
    # Signature covers the exact bytes Stripe sent
    payload = await request.body()
    event_type = await StripeWebhookHandler(session).handle(payload, stripe_signature)
    logger.info("Stripe webhook handled: %s", event_type)
    return WebhookAck()
