"""Shared fixtures: a throwaway SQLite database, an ASGI client and sign-up helpers.

Environment variables must be set before ``riskshield`` is imported, because
settings and the engine are module-level singletons.
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="riskshield-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["OPENAI_API_KEY"] = ""
os.environ["PROCORE_CLIENT_ID"] = ""
os.environ["MICROSOFT_CLIENT_ID"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

import httpx  # noqa: E402
import pytest  # noqa: E402

import riskshield.domain  # noqa: E402,F401
from riskshield.core.config import settings  # noqa: E402
from riskshield.core.security import hash_password  # noqa: E402
from riskshield.db.base import Base, async_session_factory, engine  # noqa: E402
from riskshield.domain.user import User  # noqa: E402
from riskshield.services import extraction  # noqa: E402
from tests.helpers import (  # noqa: E402
    ADMIN_SIGNUP,
    PASSWORD,
    assign,
    certificate,
    create_project,
    create_subcontractor,
    new_client,
)


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture
async def client():
    async with new_client() as c:
        yield c


@pytest.fixture
async def admin(client):
    """Sign up a fresh company; ``client`` carries the admin's session cookie afterwards."""
    resp = await client.post("/api/auth/signup", json=ADMIN_SIGNUP)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
async def member_client(admin):
    """Factory: ``await member_client("project_manager")`` returns a logged-in client for a new team member."""
    opened: list[httpx.AsyncClient] = []

    async def _make(role: str, email: str | None = None) -> httpx.AsyncClient:
        email = email or f"{role}@acme.test"
        async with async_session_factory() as session:
            session.add(
                User(
                    company_id=admin["company"]["id"],
                    email=email,
                    password_hash=hash_password(PASSWORD),
                    name=role.replace("_", " ").title(),
                    role=role,
                    invitation_status="accepted",
                )
            )
            await session.commit()
        c = new_client()
        opened.append(c)
        resp = await c.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        return c

    yield _make
    for c in opened:
        await c.aclose()


@pytest.fixture
def fake_ai(monkeypatch):
    """Turn AI extraction on and answer every call with ``fake_ai.result``."""

    class FakeExtractor:
        def __init__(self):
            self.result = certificate()
            self.calls: list[str] = []

        async def __call__(self, contents: bytes, kind: str) -> dict:
            self.calls.append(kind)
            return self.result

    fake = FakeExtractor()
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(extraction, "extract_certificate", fake)
    return fake


@pytest.fixture
async def site(client, admin):
    """A project with one assigned subcontractor."""
    project = await create_project(client)
    sub = await create_subcontractor(client)
    await assign(client, project["id"], sub["id"])
    return project, sub
