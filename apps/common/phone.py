import phonenumbers
from django.conf import settings


def to_e164(raw: str, default_region: str | None = None) -> str:
    region = default_region or getattr(settings, "PHONE_DEFAULT_REGION", "PH")
    try:
        n = phonenumbers.parse(raw, region)
    except phonenumbers.NumberParseException:
        raise ValueError("invalid phone")
    if not phonenumbers.is_valid_number(n):
        raise ValueError("invalid phone")
    return phonenumbers.format_number(n, phonenumbers.PhoneNumberFormat.E164)


def last4_digits(phone: str) -> str:
    digits = "".join(ch for ch in (phone or "") if ch.isdigit())
    return digits[-4:] if digits else ""
