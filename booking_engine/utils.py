"""Shared utilities used across the booking engine."""

import re
from datetime import time
from typing import Optional

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def sanitize_phone(value: str) -> str:
    """Reduce a phone number to digits, prefixing the Brazilian country code.

    Examples:
        >>> sanitize_phone("(11) 98765-4321")
        '5511987654321'
        >>> sanitize_phone("+55 11 98765 4321")
        '5511987654321'
    """
    digits = re.sub(r"\D", "", value)
    if len(digits) in (10, 11):
        return "55" + digits
    return digits


def sanitize_name(value: str) -> str:
    """Collapse whitespace and drop anything but letters, digits and accents.

    Examples:
        >>> sanitize_name("  Maria   da  Silva! ")
        'Maria da Silva'
    """
    collapsed = re.sub(r"\s+", " ", value.strip())
    return re.sub(r"[^\w\s\u00C0-\u017F]", "", collapsed).strip()


def parse_time(value: str) -> Optional[time]:
    """Parse an ``HH:MM`` string. Returns None when it is malformed."""
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def to_minutes(value: time) -> int:
    """Minutes elapsed since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes. Raises ValueError outside a single day."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes does not fall within a single day")
    return time(minutes // 60, minutes % 60)


def truncate_to_minute(value: time) -> time:
    """Drop seconds and microseconds; the scheduling grid works in whole minutes.

    Examples:
        >>> truncate_to_minute(time(10, 0, 30, 500))
        datetime.time(10, 0)
    """
    return value.replace(second=0, microsecond=0)


def sanitize_notes(value: str) -> str:
    """Strip markup and script hooks from free-text notes.

    Examples:
        >>> sanitize_notes("  <b>Chego 5 min antes</b> ")
        'bChego 5 min antes/b'
        >>> sanitize_notes("JavaScript:alert(1) onclick=go()")
        'alert(1) go()'
    """
    cleaned = re.sub(r"[<>]", "", value)
    cleaned = re.sub(r"javascript:", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"on\w+=", "", cleaned, flags=re.IGNORECASE)
    return cleaned.strip()
