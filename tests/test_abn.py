import pytest

from riskshield.services.abn import clean_abn, format_abn, is_valid_abn_format, validate_abn, validate_abn_checksum

VALID_ABNS = ["51824753556", "53004085616", "33102417032"]


@pytest.mark.parametrize("abn", VALID_ABNS)
def test_known_abns_pass_checksum(abn):
    assert validate_abn_checksum(abn)


@pytest.mark.parametrize("abn", VALID_ABNS)
def test_any_single_digit_change_fails_checksum(abn):
    for position in range(11):
        for digit in "0123456789":
            if digit == abn[position]:
                continue
            altered = abn[:position] + digit + abn[position + 1:]
            assert not validate_abn_checksum(altered), altered


def test_checksum_rejects_malformed_input():
    assert not validate_abn_checksum("")
    assert not validate_abn_checksum("5182475355")
    assert not validate_abn_checksum("518247535566")
    assert not validate_abn_checksum("51 824 753 556")
    assert not validate_abn_checksum("5182475355a")


def test_clean_abn_strips_whitespace():
    assert clean_abn(" 51 824\t753 556 ") == "51824753556"
    assert clean_abn(None) == ""


def test_format_check():
    assert is_valid_abn_format("51824753556")
    assert not is_valid_abn_format("51-824-753-556")


def test_validate_abn_messages():
    assert validate_abn("51 824 753 556") == ("51824753556", None)
    assert validate_abn("") == ("", "ABN is required")
    assert validate_abn("1234") == ("1234", "ABN must be exactly 11 digits")
    assert validate_abn("51824753557") == ("51824753557", "Invalid ABN checksum")


def test_format_abn_groups_digits():
    assert format_abn("51824753556") == "51 824 753 556"
    assert format_abn("123") == "123"
