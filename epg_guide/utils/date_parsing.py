"""
Date and Time utilities

This module handles XMLTV timestamp normalization and ISO8601 parsing for API input.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import datetime, timedelta, timezone
import logging
import re

logger = logging.getLogger(__name__)

# XMLTV timestamp like "20250117063000 +0000"
XMLTV_DATE_PATTERN = re.compile(
    r"(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})\s*([+-])(\d{2})(\d{2})",
    re.ASCII,
)


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def parse_epg_date(value: str | None) -> datetime | None:
    """
    Convert an XMLTV timestamp with explicit UTC offset into an aware UTC datetime

    Never raises: missing input, a pattern mismatch or a matching string that
    does not denote a real instant all return None.

    Args:
        value: XMLTV time like '20250117063000 +0000'

    Returns:
        Timezone-aware datetime in UTC, or None
    """
    if not value or not isinstance(value, str):
        return None

    match = XMLTV_DATE_PATTERN.fullmatch(value)
    if not match:
        logger.debug("Invalid EPG date format: %r", value)
        return None

    year, month, day, hour, minute, second, sign, tz_hours, tz_minutes = match.groups()

    try:
        if int(tz_minutes) > 59:
            raise ValueError(f"offset minutes out of range: {tz_minutes}")
        offset = timedelta(hours=int(tz_hours), minutes=int(tz_minutes))
        if sign == "-":
            offset = -offset
        local = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second),
            tzinfo=timezone(offset),
        )
        return local.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        logger.debug("EPG date does not denote a valid instant: %r (%s)", value, exc)
        return None


def format_epg_date(value: datetime) -> str:
    """Format an aware datetime as an XMLTV timestamp in UTC."""
    return value.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S +0000")


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'

    Args:
        date_str: ISO8601 datetime string

    Returns:
        Normalized string with explicit timezone offset
    """
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601_to_utc(date_str: str) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    Args:
        date_str: ISO8601 datetime string (e.g., '2025-10-09T00:00:00Z' or '2025-10-09T00:00:00+01:00')

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = _normalize_iso8601_string(date_str)
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
