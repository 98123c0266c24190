"""Notification window evaluation.

Three overlapping windows decide which reminders are due:

- ``day_before`` — the session is tomorrow and no reminder went out today.
- ``same_day`` — the session is today and starts within the next two hours.
- ``time_to_start`` — the session starts within five minutes either side of now.

:func:`evaluate` is pure: it takes ``now`` as an argument and never reads a
clock or a database.  It keeps no memory of earlier passes, so suppressing
repeated ``same_day`` / ``time_to_start`` reminders is up to the caller.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from src.scheduler.models import (
    KIND_DAY_BEFORE,
    KIND_SAME_DAY,
    KIND_TIME_TO_START,
    NOTIFICATION_KINDS,
    NotificationEvent,
)
from src.scheduler.timeutil import parse_wall_clock

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from src.scheduler.models import ScheduledSession

SAME_DAY_WINDOW = timedelta(hours=2)
START_TOLERANCE = timedelta(minutes=5)


def due_kinds(now: datetime, session: ScheduledSession) -> list[str]:
    """Return the reminder kinds *session* qualifies for at *now*."""
    if not session.is_pending:
        return []

    today = now.date()
    session_day = session.scheduled_at.date()
    kinds: list[str] = []

    if session_day == today + timedelta(days=1) and not session.notified_on(today):
        kinds.append(KIND_DAY_BEFORE)

    if session_day == today:
        remaining = session.scheduled_at - now
        if timedelta(0) < remaining <= SAME_DAY_WINDOW:
            kinds.append(KIND_SAME_DAY)
        if -START_TOLERANCE < remaining <= START_TOLERANCE:
            kinds.append(KIND_TIME_TO_START)

    return kinds


def evaluate(now: datetime, pending: Iterable[ScheduledSession]) -> list[NotificationEvent]:
    """Classify which sessions need a reminder at *now*, and of what kind.

    Events come back ordered by start time, then by urgency tier.
    """
    now = parse_wall_clock(now)
    events = [
        NotificationEvent.for_session(session, kind)
        for session in pending
        for kind in due_kinds(now, session)
    ]
    events.sort(key=lambda e: (e.scheduled_at, NOTIFICATION_KINDS.index(e.kind)))
    return events
