"""Sign-up, login and password/invitation flows — cookie-session HTTP layer."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import UnauthorizedError
from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.repositories.account import AccountRepository
from riskshield.routers.deps import clear_session_cookie, set_session_cookie
from riskshield.schemas.auth import (
    AcceptInviteRequest,
    CompanySummary,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    ResetTokenStatus,
    SessionOut,
    SignupRequest,
    UserOut,
)
from riskshield.schemas.common import SuccessOut
from riskshield.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


async def _session_out(session: AsyncSession, user: User) -> dict:
    company = await AccountRepository(session).get_company(user.company_id)
    return {
        "data": SessionOut(
            user=UserOut.model_validate(user),
            company=CompanySummary.model_validate(company) if company else None,
        )
    }


@router.post("/signup", response_model=DataResponse[SessionOut], status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, response: Response, session: AsyncSession = Depends(get_db)):
    signed_in = await AuthService(session).signup(
        email=body.email,
        password=body.password,
        name=body.name,
        company_name=body.company_name,
        abn=body.abn,
    )
    set_session_cookie(response, signed_in)
    return await _session_out(session, signed_in.user)


@router.post("/login", response_model=DataResponse[SessionOut])
async def login(body: LoginRequest, response: Response, session: AsyncSession = Depends(get_db)):
    signed_in = await AuthService(session).login(body.email, body.password)
    set_session_cookie(response, signed_in)
    return await _session_out(session, signed_in.user)


@router.post("/logout", response_model=SuccessOut)
async def logout(request: Request, response: Response, session: AsyncSession = Depends(get_db)):
    await AuthService(session).logout(request.cookies.get(settings.session_cookie_name))
    clear_session_cookie(response)
    return SuccessOut(message="Logged out")


@router.get("/me", response_model=DataResponse[SessionOut])
async def me(request: Request, session: AsyncSession = Depends(get_db)):
    """Current user and company; a dead session also clears the browser cookie."""
    try:
        user = await AuthService(session).user_for_token(request.cookies.get(settings.session_cookie_name))
    except UnauthorizedError as exc:
        failed = JSONResponse(
            status_code=exc.status_code, content={"error": {"code": exc.code, "message": exc.message}}
        )
        clear_session_cookie(failed)
        return failed
    return await _session_out(session, user)


@router.post("/forgot-password", response_model=SuccessOut)
async def forgot_password(body: ForgotPasswordRequest, session: AsyncSession = Depends(get_db)):
    await AuthService(session).forgot_password(body.email)
    return SuccessOut(message="If an account exists for that email, a reset link has been sent")


@router.get("/validate-reset-token", response_model=DataResponse[ResetTokenStatus])
async def validate_reset_token(token: str = Query(default=""), session: AsyncSession = Depends(get_db)):
    email = await AuthService(session).validate_reset_token(token)
    return {"data": ResetTokenStatus(email=email)}


@router.post("/reset-password", response_model=SuccessOut)
async def reset_password(body: ResetPasswordRequest, session: AsyncSession = Depends(get_db)):
    await AuthService(session).reset_password(body.token, body.password)
    return SuccessOut(message="Password has been reset. Please log in with your new password.")


@router.post("/accept-invite", response_model=DataResponse[SessionOut])
async def accept_invite(body: AcceptInviteRequest, response: Response, session: AsyncSession = Depends(get_db)):
    signed_in = await AuthService(session).accept_invite(body.token, body.password, body.name)
    set_session_cookie(response, signed_in)
    return await _session_out(session, signed_in.user)
