from riskshield.core.security import (
    hash_password,
    is_valid_email,
    new_session_token,
    password_problems,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("Sup3rSecret")
    assert hashed != "Sup3rSecret"
    assert verify_password("Sup3rSecret", hashed)
    assert not verify_password("sup3rsecret", hashed)
    assert not verify_password("Sup3rSecret", None)


def test_password_policy():
    assert password_problems("Sup3rSecret") == []
    assert password_problems("short1A") == ["Password must be at least 8 characters"]
    assert "Password must contain at least one uppercase letter" in password_problems("lowercase1")
    assert "Password must contain at least one number" in password_problems("NoDigitsHere")


def test_email_format():
    assert is_valid_email("pm@builder.com.au")
    assert not is_valid_email("pm@builder")
    assert not is_valid_email("pm builder@x.com")


def test_session_tokens_are_unique():
    assert len({new_session_token() for _ in range(50)}) == 50
