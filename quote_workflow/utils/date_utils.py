"""
Date and identifier utilities for the quote workflow core.

This module converts the platform API's ISO 8601 strings into timezone-aware
datetimes and back, and normalizes identifiers to the canonical string form
used everywhere inside the core.

IMPORTANT: If no timezone is provided in the datetime string, UTC is assumed
to ensure consistent behavior across different servers and environments.
"""

from datetime import datetime, timezone
from typing import Any, Optional
import logging


logger = logging.getLogger(__name__)


def parse_api_datetime(value: Any) -> Optional[datetime]:
    """
    Convert a platform API datetime value to an aware datetime (UTC if unspecified).

    Timezone handling:
    - If timezone is present (Z, +00:00, etc.), it will be used
    - If no timezone is present, UTC is assumed (NOT server local time)

    Args:
        value: ISO 8601 string, datetime, or None

    Returns:
        Timezone-aware datetime, or None if input is None/invalid

    Examples:
        >>> parse_api_datetime("2024-01-15T14:30:00Z")
        datetime.datetime(2024, 1, 15, 14, 30, tzinfo=datetime.timezone.utc)
        >>> parse_api_datetime(None)
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    date_str = str(value).strip()

    try:
        # Time part may carry an offset like -05:00; the date part always has two dashes
        time_part = date_str.split('T', 1)[1] if 'T' in date_str else ''
        has_timezone = (
            date_str.endswith('Z') or
            '+' in time_part or
            '-' in time_part
        )

        if date_str.endswith('Z'):
            date_str = date_str[:-1] + '+00:00'
        elif not has_timezone:
            logger.debug(f"No timezone in date '{date_str}', assuming UTC")

        dt = datetime.fromisoformat(date_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    except (ValueError, AttributeError) as e:
        logger.warning(f"Failed to parse date '{value}': {e}")
        return None


def to_api_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime for the platform API (ISO 8601, UTC, trailing Z).

    Examples:
        >>> to_api_datetime(datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc))
        '2024-01-15T14:30:00Z'
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_identifier(value: Any) -> Optional[str]:
    """
    Convert an identifier to its canonical string form.

    The platform returns ids as strings in some payloads and as numbers in
    others. Everything inside the core compares the canonical string.

    Args:
        value: Identifier as str, int, float, or None

    Returns:
        Canonical string, or None for missing/blank ids

    Examples:
        >>> normalize_identifier(300)
        '300'
        >>> normalize_identifier(300.0)
        '300'
        >>> normalize_identifier("  abc-1 ")
        'abc-1'
        >>> normalize_identifier("")
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)

    if isinstance(value, int):
        return str(value)

    text = str(value).strip()
    return text or None
