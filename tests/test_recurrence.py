"""Tests for weekly recurrence expansion."""

from datetime import date, datetime, timedelta

import pytest

from src.scheduler.models import Recurrence, SessionDraft
from src.scheduler.recurrence import expand, last_allowed_date, max_follow_ons

TODAY = date(2024, 3, 4)


def _make_draft(
    scheduled_at: str = "2024-03-04T09:30:00",
    *,
    weekly: bool = True,
    end_date: str | None = None,
    occurrences: int | None = None,
    **kwargs,
) -> SessionDraft:
    recurrence = (
        Recurrence.from_data("weekly", {"end_date": end_date, "occurrences": occurrences})
        if weekly
        else Recurrence()
    )
    defaults = {"owner_id": "u", "title": "Standup prep"}
    defaults.update(kwargs)
    return SessionDraft(scheduled_at=scheduled_at, recurrence=recurrence, **defaults)


# -- Non-recurring -------------------------------------------------------------


def test_non_recurring_returns_only_base() -> None:
    base = _make_draft(weekly=False)
    assert expand(base, today=TODAY) == [base]


# -- Default caps --------------------------------------------------------------


def test_no_caps_yields_a_year_of_weeks() -> None:
    base = _make_draft()
    drafts = expand(base, today=TODAY)

    assert drafts[0] is base
    follow_ons = drafts[1:]
    assert len(follow_ons) == 52
    assert all(d.recurrence.type == "none" for d in follow_ons)
    assert all(d.status == "pending" for d in follow_ons)


def test_default_horizon_limits_far_future_start() -> None:
    # Starting 300 days out, only weeks up to today + 365 fit.
    start = datetime(2024, 3, 4, 9, 30) + timedelta(days=300)
    base = _make_draft(start.isoformat())
    follow_ons = expand(base, today=TODAY)[1:]

    assert follow_ons
    assert max(d.scheduled_at.date() for d in follow_ons) <= TODAY + timedelta(days=365)
    assert len(follow_ons) == 9


# -- Explicit caps -------------------------------------------------------------


@pytest.mark.parametrize(("k", "expected"), [(0, 0), (1, 0), (2, 1), (5, 4), (60, 52)])
def test_occurrence_count_caps_follow_ons(k: int, expected: int) -> None:
    drafts = expand(_make_draft(occurrences=k), today=TODAY)
    assert len(drafts) - 1 == expected
    assert len(drafts) <= max(k, 1)


def test_end_date_is_inclusive() -> None:
    drafts = expand(_make_draft(end_date="2024-03-25"), today=TODAY)
    assert [d.scheduled_at.date() for d in drafts] == [
        date(2024, 3, 4),
        date(2024, 3, 11),
        date(2024, 3, 18),
        date(2024, 3, 25),
    ]


def test_end_date_before_first_follow_on_yields_only_base() -> None:
    drafts = expand(_make_draft(end_date="2024-03-10"), today=TODAY)
    assert len(drafts) == 1


def test_whichever_cap_comes_first() -> None:
    by_count = expand(_make_draft(end_date="2024-12-31", occurrences=3), today=TODAY)
    assert len(by_count) == 3

    by_date = expand(_make_draft(end_date="2024-03-18", occurrences=10), today=TODAY)
    assert len(by_date) == 3


# -- Instance shape ------------------------------------------------------------


def test_instances_advance_by_whole_weeks_and_keep_time() -> None:
    base = _make_draft(occurrences=6)
    drafts = expand(base, today=TODAY)
    for n, draft in enumerate(drafts):
        assert draft.scheduled_at == base.scheduled_at + timedelta(days=7 * n)
        assert draft.scheduled_at.time() == base.scheduled_at.time()


def test_time_of_day_preserved_across_dst_change() -> None:
    # US DST begins 2024-03-10; wall-clock time must not shift.
    drafts = expand(_make_draft("2024-03-04T09:30:00", occurrences=2), today=TODAY)
    assert drafts[1].scheduled_at == datetime(2024, 3, 11, 9, 30)


def test_instances_copy_details() -> None:
    base = _make_draft(
        occurrences=3,
        description="prep notes",
        estimated_duration=25,
        tags=["team", "meetings"],
    )
    for draft in expand(base, today=TODAY)[1:]:
        assert draft.title == base.title
        assert draft.description == "prep notes"
        assert draft.estimated_duration == 25
        assert draft.tags == ["team", "meetings"]
        assert draft.tags is not base.tags


def test_base_not_mutated() -> None:
    base = _make_draft(occurrences=4)
    before = (base.scheduled_at, base.recurrence, list(base.tags))
    expand(base, today=TODAY)
    assert (base.scheduled_at, base.recurrence, base.tags) == before
    assert base.recurrence.is_weekly


# -- Helpers -------------------------------------------------------------------


def test_max_follow_ons_default_override() -> None:
    assert max_follow_ons(Recurrence(type="weekly"), default=10) == 10
    assert max_follow_ons(Recurrence(type="weekly", occurrences=0)) == 0


def test_last_allowed_date_default_horizon() -> None:
    rule = Recurrence(type="weekly")
    assert last_allowed_date(rule, TODAY, horizon_days=30) == TODAY + timedelta(days=30)
    explicit = Recurrence(type="weekly", end_date=date(2024, 5, 1))
    assert last_allowed_date(explicit, TODAY) == date(2024, 5, 1)
