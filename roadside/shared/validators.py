"""Shared validation utilities"""

import re
from datetime import datetime, timezone
from typing import Optional

LEAD_PHONE_PATTERN = re.compile(r"^[+]?[1-9]?[0-9]{7,15}$")

WEIGHT_CLASSES = ("light_duty", "medium_duty", "heavy_duty")

LIKE_ESCAPE = "\\"


def like_pattern(text: str) -> str:
    """Substring pattern for ilike(..., escape=LIKE_ESCAPE); % and _ in the text match literally"""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def normalize_cell_number(number: Optional[str]) -> Optional[str]:
    """Strip dashes and surrounding whitespace from a caller's cell number"""
    if number is None:
        return None
    return number.replace("-", "").strip()


def is_valid_lead_phone(phone: Optional[str]) -> bool:
    """Loose international phone check used for campaign leads"""
    if not phone:
        return False
    cleaned = re.sub(r"[\s\-\(\)]", "", phone)
    return bool(LEAD_PHONE_PATTERN.match(cleaned))


def validate_lead_phone(phone: str) -> str:
    if not is_valid_lead_phone(phone):
        raise ValueError("Please enter a valid phone number")
    return phone.strip()


def normalize_state(state: Optional[str]) -> Optional[str]:
    """US state code, upper-cased"""
    if state is None:
        return None
    state = state.strip().upper()
    if not state:
        raise ValueError("State is required")
    return state


def as_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; aware values are converted first"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_policy_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a policy date.

    Policies are stored as MM/DD/YYYY; ISO dates (YYYY-MM-DD...) are accepted too.
    Returns None when the value cannot be parsed.
    """
    if not value:
        return None
    value = str(value).strip()
    for fmt in ("%m/%d/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(value[:10], fmt)
        except ValueError:
            continue
    try:
        return as_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
