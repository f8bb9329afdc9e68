"""
Contact-detail checks shared by the signup form and the courier admin.

Deliberately loose: an email only has to look like ``local@domain.tld`` and a
phone number only has to carry a plausible number of digits.
"""
import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_DIGIT_RE = re.compile(r"\D")

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15


def is_valid_email(value) -> bool:
    if not isinstance(value, str):
        return False
    return EMAIL_RE.match(value) is not None


def is_valid_phone(value) -> bool:
    """Accept any formatting as long as 10-15 digits remain."""
    if not isinstance(value, str):
        return False
    digits = NON_DIGIT_RE.sub("", value)
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS


def format_phone(value: str) -> str:
    """Render a 10-digit number as (503) 555-1234; leave anything else alone."""
    digits = NON_DIGIT_RE.sub("", value or "")
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return value
