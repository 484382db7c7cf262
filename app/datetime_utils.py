"""
DateTime utility functions for the application.
"""
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

DEFAULT_COMPANY_TIMEZONE = "America/Sao_Paulo"


def get_company_timezone(name: Optional[str] = None):
    """
    Get the company timezone object.

    Args:
        name: IANA timezone name. Defaults to the company timezone.

    Returns:
        ZoneInfo: Timezone object
    """
    return ZoneInfo(name or DEFAULT_COMPANY_TIMEZONE)


def company_now(tz_name: Optional[str] = None) -> datetime:
    """Current instant as an aware datetime in the company timezone."""
    return datetime.now(get_company_timezone(tz_name))


def to_local_date(value, tz_name: Optional[str] = None) -> Optional[date]:
    """
    Reduce a date, datetime or ISO string to a calendar day.

    Aware datetimes are converted to the company timezone first, so an
    instant stored in UTC lands on the day the shop floor sees. Naive
    datetimes are taken at face value.

    Args:
        value: date, datetime, ISO string, or None

    Returns:
        date: The calendar day, or None if value is empty or unparseable
    """
    if value is None or value == '':
        return None

    # Handle string input (ISO format)
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            value = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(get_company_timezone(tz_name)).date()

    if isinstance(value, date):
        return value

    return None


def format_date(d: Optional[date]) -> Optional[str]:
    """Format a date as YYYY-MM-DD, or None if there is no date."""
    if d is None:
        return None
    return d.isoformat()
