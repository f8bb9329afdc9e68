import pytest

from validators import is_valid_email, is_valid_phone, format_phone


@pytest.mark.parametrize("value", [
    "jane@example.com",
    "a@b.co",
    "first.last+meals@sub.example.org",
])
def test_valid_emails(value):
    assert is_valid_email(value)


@pytest.mark.parametrize("value", [
    "",
    "jane",
    "jane@example",
    "@example.com",
    "jane@@example.com",
    "jane doe@example.com",
    "jane@example.com ",
    None,
    42,
])
def test_invalid_emails(value):
    assert not is_valid_email(value)


@pytest.mark.parametrize("value", [
    "5035551234",
    "(503) 555-1234",
    "+1 503 555 1234",
    "503.555.1234",
    "123456789012345",
])
def test_valid_phones(value):
    assert is_valid_phone(value)


@pytest.mark.parametrize("value", [
    "",
    "555-1234",
    "123456789",
    "1234567890123456",
    "call me maybe",
    None,
])
def test_invalid_phones(value):
    assert not is_valid_phone(value)


def test_format_phone():
    assert format_phone("503.555.1234") == "(503) 555-1234"
    assert format_phone("+1 503 555 1234") == "+1 503 555 1234"
