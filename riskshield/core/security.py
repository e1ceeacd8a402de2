"""Password hashing, password policy and opaque token helpers."""


import re
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def password_problems(password: str) -> list[str]:
    """Return the unmet password rules (empty list when the password is acceptable)."""
    problems: list[str] = []
    if len(password) < 8:
        problems.append("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    return problems


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def new_one_time_token() -> str:
    """Token for password reset and invitation links."""
    return secrets.token_urlsafe(24)
