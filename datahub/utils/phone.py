import re

from datahub.services.errors import InvalidPhone


COUNTRY_CODE = "233"


def _digits(raw) -> str:
    return re.sub(r"\D", "", str(raw or ""))


def normalize_phone_lenient(raw) -> str:
    """Ghana MSISDN in 233XXXXXXXXX form, or just the digits for any other shape."""
    digits = _digits(raw)
    if digits.startswith(COUNTRY_CODE) and len(digits) == 12:
        return digits
    if digits.startswith("0") and len(digits) == 10:
        return f"{COUNTRY_CODE}{digits[1:]}"
    return digits


def normalize_phone(raw) -> str:
    digits = _digits(raw)
    if digits.startswith(COUNTRY_CODE) and len(digits) == 12:
        return digits
    if digits.startswith("0") and len(digits) == 10:
        return f"{COUNTRY_CODE}{digits[1:]}"
    raise InvalidPhone(f"Invalid phone number: {raw}")
