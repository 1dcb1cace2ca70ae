"""
Phone number normalization and formatting utilities.

Stored customer phones use the Vietnamese local form ("0" + national number).
Everything that compares or persists a phone goes through normalize_phone first.
"""
import re
import logging

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from app.core.config import settings

logger = logging.getLogger("crm_import.phone")

# Separators people type inside phone numbers
_SEPARATORS_RGX = re.compile(r"[\s.\-()]")
# "0" followed by 8-10 digits: mobile and landline numbers in local form
_LOCAL_PHONE_RGX = re.compile(r"^0\d{8,10}$")

COUNTRY_PREFIX = "84"


def normalize_phone(raw) -> str:
    """
    Normalize a raw phone cell to the local form.

    - Removes whitespace, dots, dashes and parentheses.
    - "+84..." becomes "0...".
    - "84..." becomes "0..." when at least 11 characters long, so short
      local numbers that happen to start with 84 are left alone.

    The result of a normalized value is returned unchanged, so the function
    is idempotent.

    Args:
        raw: Cell value (any type, None allowed)

    Returns:
        str: Normalized phone, empty string for blank input
    """
    if raw is None:
        return ""
    phone = _SEPARATORS_RGX.sub("", str(raw))
    if phone.startswith("+" + COUNTRY_PREFIX):
        phone = "0" + phone[3:]
    elif phone.startswith(COUNTRY_PREFIX) and len(phone) >= 11:
        phone = "0" + phone[2:]
    return phone


def is_valid_local_phone(phone: str) -> bool:
    """Check a normalized phone against the local-form pattern."""
    return bool(_LOCAL_PHONE_RGX.match(phone or ""))


def format_phone_display(phone: str, region: str = None) -> str:
    """
    Format a stored phone for display, e.g. "0912345678" -> "+84 91 234 56 78".

    Args:
        phone: Normalized phone number
        region: Region used to interpret local numbers (defaults to settings)

    Returns:
        str: Internationally formatted number, or the input if it can't be parsed
    """
    if not phone:
        return ""
    try:
        parsed = phonenumbers.parse(phone, region or settings.PHONE_DISPLAY_REGION)
    except NumberParseException:
        return phone
    if not phonenumbers.is_possible_number(parsed):
        return phone
    return phonenumbers.format_number(parsed, PhoneNumberFormat.INTERNATIONAL)
