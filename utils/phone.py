"""
Phone number normalization for SMS delivery and mobile login.
"""
import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

DEFAULT_REGION = "US"


def normalize_phone(phone: str, default_region: str = DEFAULT_REGION) -> str:
    """
    Normalize phone number to E.164 format (e.g. +14155551234).

    Numbers without a country code are read in ``default_region``.
    Raises ValueError if the number is invalid.
    """
    if not phone or not str(phone).strip():
        raise ValueError("Phone number is empty")
    try:
        parsed = phonenumbers.parse(str(phone), default_region)
    except NumberParseException as e:
        raise ValueError(f"Invalid phone number format: {str(e)}")

    if not phonenumbers.is_valid_number(parsed):
        raise ValueError("Invalid phone number")
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def get_phone_last4(phone: str) -> str:
    """Last 4 digits of a phone number for safe logging."""
    digits = ''.join(filter(str.isdigit, phone or ''))
    return digits[-4:]
