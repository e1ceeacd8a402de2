from datetime import timedelta

from sqlalchemy import select, update

from riskshield.db.base import async_session_factory
from riskshield.domain.mixins import utcnow
from riskshield.domain.user import PasswordResetToken, User, UserSession
from tests.helpers import ADMIN_SIGNUP, PASSWORD, new_client


async def test_signup_creates_admin_and_company(client, admin):
    assert admin["user"]["role"] == "admin"
    assert admin["user"]["email"] == "admin@acme.test"
    assert admin["company"]["name"] == "Acme Builders"
    assert admin["company"]["abn"] == "53004085616"

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["data"]["user"]["id"] == admin["user"]["id"]


async def test_signup_rejects_duplicates(client, admin):
    resp = await client.post("/api/auth/signup", json=ADMIN_SIGNUP)
    assert resp.status_code == 409

    resp = await client.post("/api/auth/signup", json={**ADMIN_SIGNUP, "email": "other@acme.test"})
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "A company with this ABN is already registered"


async def test_signup_validation(client):
    resp = await client.post("/api/auth/signup", json={**ADMIN_SIGNUP, "password": "weak"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BAD_REQUEST"

    resp = await client.post("/api/auth/signup", json={**ADMIN_SIGNUP, "abn": "123"})
    assert resp.status_code == 400


async def test_unauthenticated_requests_get_401(client):
    resp = await client.get("/api/projects")
    assert resp.status_code == 401
    assert resp.json() == {"error": {"code": "UNAUTHORIZED", "message": "Not authenticated"}}


async def test_login_and_logout(client, admin):
    await client.post("/api/auth/logout")
    assert (await client.get("/api/auth/me")).status_code == 401

    bad = await client.post("/api/auth/login", json={"email": "admin@acme.test", "password": "Wr0ngPassword"})
    assert bad.status_code == 401
    assert bad.json()["error"]["message"] == "Invalid email or password"

    good = await client.post("/api/auth/login", json={"email": "ADMIN@acme.test", "password": PASSWORD})
    assert good.status_code == 200
    assert (await client.get("/api/auth/me")).status_code == 200


async def test_expired_session_is_rejected(client, admin):
    async with async_session_factory() as session:
        await session.execute(update(UserSession).values(expires_at=utcnow() - timedelta(minutes=1)))
        await session.commit()

    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Session expired"


async def test_password_reset_flow(client, admin):
    resp = await client.post("/api/auth/forgot-password", json={"email": "admin@acme.test"})
    assert resp.status_code == 200
    # Unknown emails get the same answer
    unknown = await client.post("/api/auth/forgot-password", json={"email": "nobody@acme.test"})
    assert unknown.json() == resp.json()

    async with async_session_factory() as session:
        token = (await session.execute(select(PasswordResetToken.token))).scalar_one()

    check = await client.get("/api/auth/validate-reset-token", params={"token": token})
    assert check.status_code == 200
    assert check.json()["data"]["email"] == "admin@acme.test"

    reset = await client.post("/api/auth/reset-password", json={"token": token, "password": "N3wPassword"})
    assert reset.status_code == 200

    reused = await client.post("/api/auth/reset-password", json={"token": token, "password": "An0therOne"})
    assert reused.status_code == 400

    login = await client.post("/api/auth/login", json={"email": "admin@acme.test", "password": "N3wPassword"})
    assert login.status_code == 200


async def test_invite_and_accept(client, admin):
    resp = await client.post(
        "/api/users/invite", json={"email": "pm@acme.test", "name": "Pat Manager", "role": "project_manager"}
    )
    assert resp.status_code == 201, resp.text

    async with async_session_factory() as session:
        token = (
            await session.execute(select(User.invitation_token).where(User.email == "pm@acme.test"))
        ).scalar_one()

    async with new_client() as invited:
        accepted = await invited.post("/api/auth/accept-invite", json={"token": token, "password": PASSWORD})
        assert accepted.status_code == 200, accepted.text
        assert accepted.json()["data"]["user"]["role"] == "project_manager"
        assert (await invited.get("/api/auth/me")).status_code == 200


async def test_role_checks(member_client):
    read_only = await member_client("read_only")
    resp = await read_only.post("/api/projects", json={"name": "Blocked Project"})
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"

    users = await read_only.get("/api/users")
    assert users.status_code == 403


async def test_unknown_route_uses_error_envelope(client):
    resp = await client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok", "app": "RiskShield API", "env": "test"}
