"""Shared FastAPI dependencies: cookie authentication and role checks."""

from __future__ import annotations

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import ForbiddenError
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.services.auth import AuthService, SignedIn

# Role groups used across routers
MANAGERS = ("admin", "risk_manager")
PROJECT_EDITORS = ("admin", "risk_manager", "project_manager")
UPLOADERS = ("admin", "risk_manager", "project_manager", "project_administrator")


async def get_current_user(request: Request, session: AsyncSession = Depends(get_db)) -> User:
    """Resolve the ``auth_token`` cookie; 401 when missing, unknown or expired."""
    token = request.cookies.get(settings.session_cookie_name)
    return await AuthService(session).user_for_token(token)


def require_roles(*roles: str):
    """Dependency factory: the current user must hold one of *roles* (403 otherwise)."""

    async def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ForbiddenError("You do not have permission to perform this action")
        return user

    return _dependency


def set_session_cookie(response: Response, signed_in: SignedIn) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=signed_in.token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name, path="/")
