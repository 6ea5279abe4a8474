"""Quiet-hours ("night mode") window arithmetic on local wall-clock times."""

import math
from datetime import datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from leadflow.logging_config import get_logger

logger = get_logger("night_window")

TimeLike = Union[str, time, None]

MINUTES_PER_DAY = 24 * 60


def parse_time(value: TimeLike) -> Optional[time]:
    """Parse "HH:MM" into a time. Returns None for empty or malformed input."""
    if value is None:
        return None
    if isinstance(value, time):
        return value
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return time(hours, minutes)


def _minute_of_day(value: Union[time, datetime]) -> int:
    return value.hour * 60 + value.minute


def in_window(now: Union[datetime, time], start: TimeLike, end: TimeLike) -> bool:
    """True when `now` falls inside the [start, end) quiet window.

    start < end is a same-day window; start >= end wraps past midnight.
    An unparsable bound means there is no window.
    """
    start_time = parse_time(start)
    end_time = parse_time(end)
    if start_time is None or end_time is None:
        return False

    current = _minute_of_day(now)
    start_minutes = _minute_of_day(start_time)
    end_minutes = _minute_of_day(end_time)

    if start_minutes < end_minutes:
        return start_minutes <= current < end_minutes
    return current >= start_minutes or current < end_minutes


def minutes_until_end(now: datetime, end: TimeLike) -> Optional[int]:
    """Whole minutes from `now` until the next occurrence of `end`.

    If today's `end` has already passed, tomorrow's is used. Partial minutes
    round up, so the result is at least 1 while `now` is before `end`.
    """
    end_time = parse_time(end)
    if end_time is None:
        return None

    end_today = now.replace(hour=end_time.hour, minute=end_time.minute, second=0, microsecond=0)
    target = end_today
    if end_today <= now:
        target = end_today + timedelta(days=1)

    seconds = (target - now).total_seconds()
    return max(0, math.ceil(seconds / 60))


def tenant_local_time(now: datetime, tz_name: Optional[str]) -> datetime:
    """Project `now` onto the tenant's wall clock.

    Naive datetimes are taken as already local. Without a configured
    timezone the server's local zone is used.
    """
    if tz_name:
        try:
            return now.astimezone(ZoneInfo(tz_name))
        except ZoneInfoNotFoundError:
            logger.warning(f"Unknown tenant timezone {tz_name!r}, using server local time")
    if now.tzinfo is None:
        return now
    return now.astimezone()


def is_quiet_now(
    now: datetime,
    enabled: bool,
    start: TimeLike,
    end: TimeLike,
    tz_name: Optional[str] = None,
) -> bool:
    """Whether automated sends are suppressed at `now` for these settings."""
    if not enabled:
        return False
    return in_window(tenant_local_time(now, tz_name), start, end)
