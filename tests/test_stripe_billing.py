import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError
from riskshield.services.stripe_client import construct_event

SECRET = "whsec_test_secret"


def _header(payload: bytes, stamp: int) -> str:
    signed = f"{stamp}.".encode() + payload
    return f"t={stamp},v1={hmac.new(SECRET.encode(), signed, hashlib.sha256).hexdigest()}"


def _signed(event: dict, stamp: int | None = None) -> tuple[bytes, dict]:
    payload = json.dumps(event).encode()
    header = _header(payload, stamp or int(time.time()))
    return payload, {"stripe-signature": header, "content-type": "application/json"}


async def _send(client, event: dict):
    payload, headers = _signed(event)
    return await client.post("/api/stripe/webhook", content=payload, headers=headers)


@pytest.fixture
def live_stripe(monkeypatch):
    """Configure a secret key and price so billing talks to the (patched) SDK."""
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_price_starter", "price_starter")
    calls: dict[str, dict] = {}

    def customer_create(**params):
        calls["customer"] = params
        return SimpleNamespace(id="cus_1")

    def checkout_create(**params):
        calls["checkout"] = params
        return SimpleNamespace(id="cs_1", url="https://checkout.stripe.test/cs_1")

    monkeypatch.setattr(stripe.Customer, "create", customer_create)
    monkeypatch.setattr(stripe.checkout.Session, "create", checkout_create)
    return calls


def test_construct_event_checks_signature():
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "ping"}).encode()
    event = construct_event(payload, _header(payload, int(time.time())), SECRET)
    assert event.type == "ping"

    with pytest.raises(BadRequestError, match="Missing signature"):
        construct_event(payload, None, SECRET)
    with pytest.raises(BadRequestError, match="Invalid signature"):
        construct_event(payload, f"t={int(time.time())},v1={'0' * 64}", SECRET)
    # Outside the SDK's five minute tolerance
    with pytest.raises(BadRequestError, match="Invalid signature"):
        construct_event(payload, _header(payload, int(time.time()) - 3600), SECRET)


async def test_webhook_rejects_unsigned_requests(client):
    resp = await client.post("/api/stripe/webhook", content=b"{}")
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Missing signature"

    payload, headers = _signed({"type": "invoice.paid"})
    tampered = await client.post("/api/stripe/webhook", content=payload + b" ", headers=headers)
    assert tampered.status_code == 400


async def test_subscription_lifecycle(client, admin):
    company_id = admin["company"]["id"]
    updated = await _send(
        client,
        {
            "type": "customer.subscription.updated",
            "data": {"object": {
                "id": "sub_123", "status": "past_due", "current_period_end": 1_900_000_000,
                "metadata": {"companyId": company_id, "tier": "professional"},
            }},
        },
    )
    assert updated.status_code == 200
    assert updated.json() == {"received": True}

    subscription = (await client.get("/api/stripe/subscription")).json()["data"]
    assert subscription["tier"] == "professional"
    assert subscription["status"] == "past_due"
    assert subscription["currentPeriodEnd"].startswith("2030-03-17")

    await _send(client, {"type": "invoice.paid", "data": {"object": {"id": "in_1", "metadata": {"companyId": company_id}}}})
    assert (await client.get("/api/stripe/subscription")).json()["data"]["status"] == "active"

    await _send(
        client,
        {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_123", "metadata": {"companyId": company_id}}}},
    )
    cancelled = (await client.get("/api/stripe/subscription")).json()["data"]
    assert (cancelled["tier"], cancelled["status"]) == ("trial", "cancelled")


async def test_unknown_events_are_acknowledged(client):
    resp = await _send(client, {"type": "customer.created", "data": {"object": {}}})
    assert resp.status_code == 200


async def test_simulated_checkout(client, admin):
    bad = await client.post("/api/stripe/create-checkout-session", json={"tier": "platinum"})
    assert bad.status_code == 400

    resp = await client.post("/api/stripe/create-checkout-session", json={"tier": "starter"})
    assert resp.status_code == 200
    checkout = resp.json()["data"]
    assert checkout["simulated"] is True
    assert checkout["checkoutUrl"].endswith("success=true&tier=starter&simulated=true")

    subscription = (await client.get("/api/stripe/subscription")).json()["data"]
    assert (subscription["tier"], subscription["status"]) == ("starter", "trialing")
    assert subscription["trialEndsAt"] is not None

    portal = await client.post("/api/stripe/create-portal-session")
    assert portal.status_code == 400


async def test_checkout_creates_customer_and_session(client, admin, live_stripe):
    resp = await client.post("/api/stripe/create-checkout-session", json={"tier": "starter"})
    assert resp.status_code == 200, resp.text
    checkout = resp.json()["data"]
    assert checkout == {"checkoutUrl": "https://checkout.stripe.test/cs_1", "sessionId": "cs_1", "simulated": False}

    assert live_stripe["customer"]["email"] == "admin@acme.test"
    assert live_stripe["customer"]["api_key"] == "sk_test_123"
    params = live_stripe["checkout"]
    assert params["customer"] == "cus_1"
    assert params["line_items"] == [{"price": "price_starter", "quantity": 1}]
    assert params["subscription_data"]["trial_period_days"] == 14
    assert params["metadata"] == {"companyId": admin["company"]["id"], "tier": "starter"}

    subscription = (await client.get("/api/stripe/subscription")).json()["data"]
    assert subscription["hasBillingAccount"] is True


async def test_stripe_errors_become_integration_errors(client, admin, live_stripe, monkeypatch):
    await client.post("/api/stripe/create-checkout-session", json={"tier": "starter"})

    def portal_create(**params):
        raise stripe.InvalidRequestError("No such customer: 'cus_1'", "customer")

    monkeypatch.setattr(stripe.billing_portal.Session, "create", portal_create)
    resp = await client.post("/api/stripe/create-portal-session")
    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "INTEGRATION_ERROR"
