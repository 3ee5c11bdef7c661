# app/core/phone.py
import re

_NON_DIGITS = re.compile(r"\D")
_MOBILE = re.compile(r"^[6-9]\d{9}$")

INDIA_COUNTRY_CODE = "91"


def normalize_phone(raw: str | None, country_code: str = INDIA_COUNTRY_CODE) -> str | None:
    """
    Reduce user input to a canonical 10-digit Indian mobile number.

    Accepted noise:
      - spaces, dashes, brackets, leading '+'
      - country code prefix ('+91 98765 43210', '919876543210')
      - trunk prefix '0' ('09876543210')

    Returns None if the result is not a valid mobile number.
    """
    if not raw or not isinstance(raw, str):
        return None

    digits = _NON_DIGITS.sub("", raw.strip())
    if len(digits) == 10 + len(country_code) and digits.startswith(country_code):
        digits = digits[len(country_code):]
    elif len(digits) == 11 and digits.startswith("0"):
        digits = digits[1:]

    if not _MOBILE.match(digits):
        return None
    return digits


def to_msisdn(phone: str, country_code: str = INDIA_COUNTRY_CODE) -> str:
    """Provider format: country code + subscriber number, no '+'."""
    return f"{country_code.lstrip('+')}{phone}"
