"""
Standardized Date/Time Handling Utilities

RULES:
- Timestamps are stored as UTC (timezone-aware)
- "Today" and day boundaries are always evaluated in the user's timezone
- Naive datetimes coming back from a store are assumed to be UTC
"""

import logging
from datetime import datetime, date
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dsa_tracker import config

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def get_timezone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA timezone name, falling back to the configured default

    Args:
        tz_name: Timezone name such as "Europe/Stockholm"

    Returns:
        ZoneInfo object
    """
    if not tz_name:
        return ZoneInfo(config.DEFAULT_TIMEZONE)

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{tz_name}': {e}")
        return ZoneInfo(config.DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Current datetime in UTC (timezone-aware)"""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Convert to UTC, treating naive datetimes as already UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def local_date(dt: datetime, tz: ZoneInfo) -> date:
    """Calendar date of a timestamp in the given timezone"""
    return to_utc(dt).astimezone(tz).date()
