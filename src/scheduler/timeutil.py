"""Wall-clock normalization for scheduled session times.

Scheduled times are local wall-clock values: a naive ``datetime`` with no
timezone attached, stored as ``YYYY-MM-DDTHH:MM:SS``.  Every time value that
enters the engine goes through :func:`parse_wall_clock` so that comparisons
never mix naive and aware datetimes.

Strings carrying a ``Z`` suffix or a UTC offset describe an absolute instant;
they are converted into the configured local timezone and then made naive.
"""

from __future__ import annotations

import zoneinfo
from datetime import date, datetime

from src.config import settings
from src.scheduler.errors import ValidationError

WALL_CLOCK_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _local_zone(tz: str | None) -> zoneinfo.ZoneInfo:
    return zoneinfo.ZoneInfo(tz or settings.scheduler_timezone)


def parse_wall_clock(value: str | datetime | date, tz: str | None = None) -> datetime:
    """Return *value* as a naive local wall-clock datetime.

    Raises:
        ValidationError: if *value* is empty or cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            msg = f"Unparseable date/time: {value!r}"
            raise ValidationError(msg) from None
    else:
        msg = f"Expected a date/time, got {value!r}"
        raise ValidationError(msg)

    if dt.tzinfo is not None:
        dt = dt.astimezone(_local_zone(tz)).replace(tzinfo=None)
    return dt.replace(microsecond=0)


def parse_date(value: str | datetime | date) -> date:
    """Return the calendar date of *value* (date-only strings allowed)."""
    if isinstance(value, datetime):
        return parse_wall_clock(value).date()
    if isinstance(value, date):
        return value
    return parse_wall_clock(value).date()


def format_wall_clock(value: datetime) -> str:
    """Render a wall-clock datetime in the stored representation."""
    return value.strftime(WALL_CLOCK_FORMAT)


def local_now(tz: str | None = None) -> datetime:
    """Current naive local wall-clock time in the configured timezone."""
    return datetime.now(_local_zone(tz)).replace(tzinfo=None, microsecond=0)
