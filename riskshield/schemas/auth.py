"""Authentication request and response schemas."""


from datetime import datetime

from pydantic import Field

from riskshield.schemas.common import CamelModel

class SignupRequest(CamelModel):
    email: str = ""
    password: str = ""
    name: str = ""
    company_name: str = ""
    abn: str = ""

class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""

class ForgotPasswordRequest(CamelModel):
    email: str = ""

class ResetPasswordRequest(CamelModel):
    token: str = ""
    password: str = ""

class AcceptInviteRequest(CamelModel):
    token: str = ""
    password: str = ""
    name: str | None = None

class CompanySummary(CamelModel):
    id: str
    name: str
    abn: str
    logo_url: str | None = None
    subscription_tier: str
    subscription_status: str

class UserOut(CamelModel):
    id: str
    email: str
    name: str
    role: str
    phone: str | None = None
    avatar_url: str | None = None
    company_id: str
    last_login_at: datetime | None = None

class SessionOut(CamelModel):
    user: UserOut
    company: CompanySummary | None = None

class ResetTokenStatus(CamelModel):
    valid: bool = True
    email: str = Field(description="Account the token resets")
