"""
Date parsing and formatting utilities.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional, Union

# Graph emits up to seven fractional digits ("2024-05-01T10:00:00.1234567Z")
_FRACTION_RE = re.compile(r'\.(\d+)')

EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse a date string into a date object.

    Handles various formats:
    - ISO format (YYYY-MM-DD)
    - ISO datetime (YYYY-MM-DDTHH:MM:SS)

    Args:
        date_str: Date string to parse

    Returns:
        Parsed date object or None if invalid
    """
    if not date_str:
        return None

    # Take only date part if it's a datetime string
    if 'T' in date_str:
        date_str = date_str.split('T')[0]

    # Remove timezone if present
    date_str = date_str.split('+')[0].split('Z')[0]

    try:
        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError:
        pass

    try:
        # Try with single digit month/day
        parts = date_str.split('-')
        if len(parts) == 3:
            return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except (ValueError, IndexError):
        pass

    return None


def format_date(d: Optional[date]) -> Optional[str]:
    """Format a date object as ISO string (YYYY-MM-DD)."""
    if not d:
        return None

    return d.strftime('%Y-%m-%d')


def parse_timestamp(value: Optional[Union[str, datetime, float, int]]) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts Graph ISO strings (any fractional precision, ``Z`` suffix),
    datetime objects (naive values are taken as UTC) and POSIX seconds.

    Returns:
        datetime object if parsing succeeds, None otherwise
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        text = str(value).strip().replace('Z', '+00:00')
        text = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_graph_datetime(d: Optional[date]) -> Optional[dict]:
    """Build a Graph ``dateTimeTimeZone`` value for a due date."""
    if d is None:
        return None
    return {"dateTime": f"{d.strftime('%Y-%m-%d')}T00:00:00", "timeZone": "UTC"}


def from_graph_datetime(value: Optional[dict]) -> Optional[date]:
    """Extract the calendar date from a Graph ``dateTimeTimeZone`` value."""
    if not value or not isinstance(value, dict):
        return None
    return parse_date(value.get("dateTime"))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
