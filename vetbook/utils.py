"""Shared utilities used across the booking backend."""

import re
from typing import Optional

_PHONE_SEPARATORS = re.compile(r"[\s\-\.\(\)]")
_NON_DIGITS = re.compile(r"\D")
_TIME_SLOT = re.compile(r"^(\d{2}):(\d{2})$")


def strip_phone_separators(value: str) -> str:
    """Remove spaces, hyphens, dots, and parentheses from a phone number.

    Examples:
        >>> strip_phone_separators("(04) 1234-5678")
        '0412345678'
        >>> strip_phone_separators("+1 555.123.4567")
        '+15551234567'
    """
    return _PHONE_SEPARATORS.sub("", value.strip())


def normalize_phone(value: str) -> str:
    """Reduce a phone number to its digits, keeping a leading + for duplicate checks.

    Examples:
        >>> normalize_phone("+1 (555) 123-4567")
        '+15551234567'
        >>> normalize_phone("555.123.4567 ext")
        '5551234567'
    """
    stripped = strip_phone_separators(value)
    prefix = "+" if stripped.startswith("+") else ""
    return prefix + _NON_DIGITS.sub("", stripped)


def format_time_display(hour: int, minute: int) -> str:
    """Format a 24-hour time as a 12-hour label.

    Examples:
        >>> format_time_display(14, 30)
        '2:30 PM'
        >>> format_time_display(0, 0)
        '12:00 AM'
    """
    period = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d} {period}"


def format_time_slot(hour: int, minute: int) -> str:
    """Format a time as a zero-padded ``HH:MM`` slot string."""
    return f"{hour:02d}:{minute:02d}"


def parse_time_slot(value: str) -> Optional[tuple[int, int]]:
    """Split an ``HH:MM`` slot string into (hour, minute), or None if malformed."""
    match = _TIME_SLOT.match(value or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))
