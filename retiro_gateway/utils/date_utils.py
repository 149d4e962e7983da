"""Date manipulation utilities"""

import re
from datetime import date, datetime
from zoneinfo import ZoneInfo

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: str | date) -> date:
    """
    Parse a YYYY-MM-DD calendar date.

    Raises:
        ValueError: If the value is not exactly YYYY-MM-DD or not a real date
    """
    if isinstance(value, datetime):
        raise ValueError("expected a calendar date without time")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        raise ValueError(f"invalid date format: {value!r}")
    return date.fromisoformat(value.strip())


def local_today(tz_name: str) -> date:
    """Current calendar date in the given IANA timezone"""
    return datetime.now(ZoneInfo(tz_name)).date()
