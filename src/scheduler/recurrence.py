"""Weekly recurrence expansion.

A weekly rule is materialised once, up front, into independent follow-on
drafts.  Nothing evaluates the rule again after the rows are stored.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta

from src.config import settings
from src.scheduler.models import STATUS_PENDING, Recurrence, SessionDraft
from src.scheduler.timeutil import local_now

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def max_follow_ons(rule: Recurrence, default: int | None = None) -> int:
    """How many weekly instances may follow the base session.

    An explicit occurrence count includes the base session itself; without
    one the default is a year of weeks.
    """
    if rule.occurrences is None:
        return settings.recurrence_default_occurrences if default is None else default
    return max(rule.occurrences - 1, 0)


def last_allowed_date(
    rule: Recurrence, today: date, horizon_days: int | None = None
) -> date:
    """The last calendar date (inclusive) a follow-on may fall on."""
    if rule.end_date is not None:
        return rule.end_date
    days = settings.recurrence_horizon_days if horizon_days is None else horizon_days
    return today + timedelta(days=days)


def expand(
    base: SessionDraft,
    *,
    today: date | None = None,
    default_occurrences: int | None = None,
    horizon_days: int | None = None,
) -> list[SessionDraft]:
    """Return *base* followed by its materialised weekly instances.

    Each follow-on keeps the base's time of day, title, description,
    duration and tags, and carries no recurrence of its own.  Dates advance
    on wall-clock fields, so a DST change never shifts the local start time.
    The base draft is not modified.

    Args:
        base: A validated draft.
        today: Reference date for the default one-year horizon.
        default_occurrences: Override for the follow-on cap when the rule has
            no occurrence count.
        horizon_days: Override for the default horizon length.
    """
    rule = base.recurrence
    if not rule.is_weekly:
        return [base]

    limit = max_follow_ons(rule, default_occurrences)
    last_day = last_allowed_date(rule, today or local_now().date(), horizon_days)

    drafts = [base]
    current = base.scheduled_at + WEEK
    while len(drafts) - 1 < limit and current.date() <= last_day:
        drafts.append(
            replace(
                base,
                scheduled_at=current,
                recurrence=Recurrence(),
                status=STATUS_PENDING,
                tags=list(base.tags),
            )
        )
        current += WEEK

    logger.debug(
        "Expanded weekly session '%s' into %d follow-on(s) (cap=%d, until=%s)",
        base.title,
        len(drafts) - 1,
        limit,
        last_day.isoformat(),
    )
    return drafts
