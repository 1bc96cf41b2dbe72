"""Shared validation utilities"""

import re
from typing import Optional

PHONE_MIN_DIGITS = 8
PHONE_MAX_DIGITS = 15


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to E.164 format.

    Ten-digit numbers without a country code are treated as US numbers.

    Returns:
        Normalized phone number (+XXXXXXXXXXX), or the input unchanged when empty

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return None

    has_plus = phone.strip().startswith("+")
    digits = re.sub(r"\D", "", phone)

    if not has_plus:
        if len(digits) == 10:
            return f"+1{digits}"
        if len(digits) == 11 and digits.startswith("1"):
            return f"+{digits}"

    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        raise ValueError("Phone number must include a country code and 8 to 15 digits")

    return f"+{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address, or None when empty

    Raises:
        ValueError: If email format is invalid
    """
    if not email or not email.strip():
        return None

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email
