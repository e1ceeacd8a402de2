"""Australian Business Number validation.

An ABN is eleven digits. It is valid when, after subtracting 1 from the first
digit, the digits weighted by ``ABN_WEIGHTS`` sum to a multiple of 89.
"""

import re

ABN_WEIGHTS = (10, 1, 3, 5, 7, 9, 11, 13, 15, 17, 19)

_ELEVEN_DIGITS = re.compile(r"^\d{11}$")


def clean_abn(raw: str | None) -> str:
    """Drop all whitespace (ABNs are commonly written ``51 824 753 556``)."""
    return re.sub(r"\s", "", raw or "")


def is_valid_abn_format(abn: str) -> bool:
    return bool(_ELEVEN_DIGITS.match(abn))


def validate_abn_checksum(abn: str) -> bool:
    if not is_valid_abn_format(abn):
        return False
    digits = [int(ch) for ch in abn]
    digits[0] -= 1
    total = sum(d * w for d, w in zip(digits, ABN_WEIGHTS))
    return total % 89 == 0


def validate_abn(raw: str | None) -> tuple[str, str | None]:
    """Return ``(cleaned_abn, error)``; *error* is None when the ABN is valid."""
    abn = clean_abn(raw)
    if not abn:
        return abn, "ABN is required"
    if not is_valid_abn_format(abn):
        return abn, "ABN must be exactly 11 digits"
    if not validate_abn_checksum(abn):
        return abn, "Invalid ABN checksum"
    return abn, None


def format_abn(abn: str) -> str:
    """``51824753556`` -> ``51 824 753 556``."""
    if not is_valid_abn_format(abn):
        return abn
    return f"{abn[:2]} {abn[2:5]} {abn[5:8]} {abn[8:]}"
