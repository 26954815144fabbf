"""
date_utils.py — Calendar helpers for the Shift Assignment Engine

All conflict rules compare assignments by calendar day, not by instant.
The day of an instant is taken in the reference time zone
(schedule_config.REFERENCE_TIMEZONE):
  - naive datetimes are already local and are used as-is
  - aware datetimes are converted to the reference zone first
  - with no reference zone configured, aware values use the host zone
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Optional, Union

DateLike = Union[date, datetime]


def _reference_tz() -> Optional[tzinfo]:
    from shift_engine.schedule_config import REFERENCE_TIMEZONE
    return REFERENCE_TIMEZONE


def utc_now() -> datetime:
    """Timezone-aware current instant, used for created/updated stamps."""
    return datetime.now(timezone.utc)


def date_only(value: DateLike, tz: Optional[tzinfo] = None) -> date:
    """Return the calendar day of value in the reference time zone."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        zone = tz or _reference_tz()
        return value.astimezone(zone).date() if zone else value.astimezone().date()
    return value


def same_day(a: DateLike, b: DateLike, tz: Optional[tzinfo] = None) -> bool:
    return date_only(a, tz) == date_only(b, tz)


def next_day(value: DateLike, tz: Optional[tzinfo] = None) -> date:
    return date_only(value, tz) + timedelta(days=1)


def previous_day(value: DateLike, tz: Optional[tzinfo] = None) -> date:
    return date_only(value, tz) - timedelta(days=1)


def date_range(start: date, num_days: int) -> List[date]:
    """Return [start, start+1, ..., start+num_days-1]."""
    return [start + timedelta(days=offset) for offset in range(num_days)]


def days_between(start: date, end: date) -> List[date]:
    """Return every date in [start, end] inclusive."""
    out = []
    d = start
    while d <= end:
        out.append(d)
        d += timedelta(days=1)
    return out


def at_hour(day: date, hour: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Build the instant `hour`:00 on `day`.

    Naive when no reference zone is configured, so date_only() maps it back
    to the same day.
    """
    zone = tz or _reference_tz()
    return datetime.combine(day, time(hour=hour), tzinfo=zone)


def parse_datetime(raw: Union[str, DateLike]) -> datetime:
    """Parse ISO-8601 text (trailing 'Z' accepted) or promote a date to midnight."""
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time())
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_date(raw: Union[str, DateLike]) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return datetime.strptime(str(raw).strip()[:10], "%Y-%m-%d").date()
