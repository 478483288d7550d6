import re

from microlearn.exceptions import InvalidPhoneNumber

DEFAULT_COUNTRY_CODE = "91"

_NON_DIGITS = re.compile(r"\D")


def normalize_phone_number(value, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Convert a raw phone value into ``+<country code><10 digits>``.

    Accepts strings or numbers. Separators and a leading ``+`` are ignored;
    a trunk ``0``, the country code or ``0`` + country code in front of the
    ten-digit number are dropped. Anything longer falls back to the last ten
    digits. Fewer than ten digits raises ``InvalidPhoneNumber``.
    """
    if value is None or value == "":
        raise InvalidPhoneNumber("Phone number is empty")

    cleaned = _NON_DIGITS.sub("", str(value))
    n = len(cleaned)

    if n == 10:
        number = cleaned
    elif n == 11 and cleaned.startswith("0"):
        number = cleaned[1:]
    elif n == 10 + len(country_code) and cleaned.startswith(country_code):
        number = cleaned[len(country_code):]
    elif n == 11 + len(country_code) and cleaned.startswith("0" + country_code):
        number = cleaned[1 + len(country_code):]
    elif n >= 10:
        number = cleaned[-10:]
    else:
        raise InvalidPhoneNumber(f"Invalid phone number format: {value}")

    return f"+{country_code}{number}"
