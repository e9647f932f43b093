"""Time-related utility functions for Pörssisähkö.

Provides shared time calculations used across the integration.
"""

from datetime import datetime, timedelta
from typing import Optional

from homeassistant.util import dt as dt_util


def next_local_midnight(now: Optional[datetime] = None) -> datetime:
    """Get the upcoming 00:00 in the configured local time zone.

    This is the end of the current local calendar day, not now + 24h. On DST
    transition days the result is 23 or 25 hours after the previous midnight.

    Args:
        now: Optional datetime to use (defaults to current time)

    Returns:
        Timezone-aware datetime of the next local midnight
    """
    if now is None:
        now = dt_util.now()
    local_date = dt_util.as_local(now).date()
    return dt_util.start_of_local_day(local_date + timedelta(days=1))


def format_local_time(moment: datetime) -> str:
    """Format a timestamp as local HH:MM."""
    return dt_util.as_local(moment).strftime("%H:%M")
