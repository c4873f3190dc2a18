"""Contact data normalization for leads and invitations."""

import re
from typing import Optional


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a North American phone number to E.164 (+15551234567).

    Accepts 10 digits, 11 digits with a leading 1, or E.164, with any
    punctuation.

    Raises:
        ValueError: not a 10/11-digit North American number
    """
    if not phone or not phone.strip():
        return None

    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    raise ValueError(f"Invalid phone number '{phone}'. Use 10-digit format (e.g., 5551234567).")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lowercased, trimmed email or None if empty."""
    if not email or not email.strip():
        return None
    return email.strip().lower()


def normalize_name(name: Optional[str]) -> str:
    """Trim and collapse internal whitespace; empty input becomes ''."""
    if not name:
        return ""
    return " ".join(name.split())
