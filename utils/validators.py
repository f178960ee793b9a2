"""Input validation utilities."""

import re
from datetime import datetime
from typing import Optional
from config.constants import CLIENT_NAME_MIN_LENGTH, CLIENT_PHONE_MIN_DIGITS, SERVICE_TYPES


def digits_only(value: str) -> str:
    """Strip every non-digit character."""
    return re.sub(r'\D', '', value or '')


def validate_client_name(name: str) -> bool:
    """
    Validate client name.

    Args:
        name: Raw name as typed

    Returns:
        True if the trimmed name is long enough, False otherwise
    """
    return bool(name) and len(name.strip()) >= CLIENT_NAME_MIN_LENGTH


def validate_phone_number(phone: str) -> bool:
    """
    Validate phone number.

    Formatting characters are ignored; only the digit count matters.

    Args:
        phone: Phone number string

    Returns:
        True if valid, False otherwise
    """
    return len(digits_only(phone)) >= CLIENT_PHONE_MIN_DIGITS


def normalize_phone_number(phone: str, country_code: str = '55') -> str:
    """
    Normalize phone number for outbound delivery.

    Args:
        phone: Phone number string, formatted or not
        country_code: Country prefix to add when missing

    Returns:
        Digits-only phone number starting with the country prefix
    """
    cleaned = digits_only(phone)

    if not cleaned.startswith(country_code):
        cleaned = country_code + cleaned

    return cleaned


def validate_service_type(service_type: str) -> bool:
    """Check the service type against the offered services."""
    return service_type in SERVICE_TYPES


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_timestamp(value) -> datetime:
    """
    Parse a stored timestamp.

    Values carrying an offset (`Z`, `+00:00`) are converted to naive local
    time, the form every other timestamp in the agenda uses.

    Args:
        value: ISO-8601 string or datetime

    Returns:
        Naive local datetime

    Raises:
        ValueError: if the value is not a parseable timestamp
    """
    if isinstance(value, datetime):
        return to_local_naive(value)
    if not isinstance(value, str):
        raise ValueError(f"Not a timestamp: {value!r}")
    return to_local_naive(datetime.fromisoformat(value.replace('Z', '+00:00')))


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Encode a datetime to its stored ISO-8601 form."""
    return value.isoformat() if value else None
