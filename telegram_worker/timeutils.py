"""
Time helpers shared by the alert jobs and the reminder session.
"""
import re
from datetime import datetime, timedelta
from typing import Optional, Union
import pytz

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY

TIME_SPEC_PATTERN = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})(?:[\sT](?P<hour>\d{2}).(?P<minute>\d{2}))?"
)


def local_timezone(name: Optional[str]):
    """pytz zone for `name`, or None for the system zone."""
    return pytz.timezone(name) if name else None


def local_now(tz=None) -> datetime:
    """Naive wall-clock time in `tz` (system zone when None)."""
    if tz is None:
        return datetime.now()
    return datetime.now(tz).replace(tzinfo=None)


class TimeSpecError(ValueError):
    """Raised when a `time <spec>` argument can't be turned into a datetime."""


def whole_minutes(span: Union[timedelta, int]) -> int:
    if isinstance(span, timedelta):
        return int(span.total_seconds() // 60)
    return int(span)


def format_duration(span: Union[timedelta, int]) -> str:
    """
    Render a span as a short string, using the largest unit that fits.

    Tiers are exclusive: weeks ("2w"), days ("3d"), hours ("1h", "1h30m")
    and plain minutes ("45m", "0m"). Accepts a timedelta or whole minutes.
    """
    minutes = whole_minutes(span)

    if minutes >= MINUTES_PER_WEEK:
        return f"{minutes // MINUTES_PER_WEEK}w"
    if minutes >= MINUTES_PER_DAY:
        return f"{minutes // MINUTES_PER_DAY}d"
    if minutes >= MINUTES_PER_HOUR:
        hours, rest = divmod(minutes, MINUTES_PER_HOUR)
        if rest:
            return f"{hours}h{rest:02}m"
        return f"{hours}h"
    return f"{minutes}m"


def parse_time(spec: str) -> datetime:
    """
    Parse `YYYY-MM-DD` with an optional `HH:MM` (space or `T` separated).

    The first match anywhere in `spec` wins. A missing time means midnight,
    seconds are always zero.
    """
    match = TIME_SPEC_PATTERN.search(spec)
    if not match:
        raise TimeSpecError(f"expected YYYY-MM-DD [HH:MM], got {spec!r}")

    hour = int(match.group("hour") or 0)
    minute = int(match.group("minute") or 0)
    try:
        return datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            hour,
            minute,
        )
    except ValueError as e:
        raise TimeSpecError(f"invalid date/time {match.group(0)!r}: {e}") from e
