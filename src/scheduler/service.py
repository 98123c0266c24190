"""ScheduledSessionService — the calendar-facing API of the session planner.

Each public coroutine corresponds to one request the calendar UI can make.
Bad input raises :class:`ValidationError` before anything is stored.
Persistence failures never propagate: they are logged and reported as an
empty list, ``False`` or ``None`` so one failing call cannot take down the
reminder loop.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pydantic
from pydantic import BaseModel, Field

from src.config import settings
from src.scheduler.errors import StoreError, ValidationError
from src.scheduler.evaluator import evaluate
from src.scheduler.lifecycle import SessionLifecycle
from src.scheduler.models import Recurrence, SessionDraft, normalize_tags
from src.scheduler.recurrence import expand
from src.scheduler.timeutil import local_now, parse_date, parse_wall_clock

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from src.scheduler.models import NotificationEvent, ScheduledSession
    from src.scheduler.store import ScheduledSessionStore

logger = logging.getLogger(__name__)


class SessionRequest(BaseModel):
    """A scheduling request as submitted by the calendar form."""

    title: str = Field(description="Short title of the planned session")
    scheduled_datetime: str | datetime = Field(
        description="Local start time, e.g. '2025-06-01T15:00:00'"
    )
    description: str | None = Field(default=None, description="Optional notes")
    estimated_duration: int | None = Field(
        default=None, description="Planned length in minutes"
    )
    recurrence_type: str = Field(default="none", description='"none" or "weekly"')
    recurrence_data: dict[str, Any] | None = Field(
        default=None,
        description="Weekly rule details: end_date and/or occurrences",
    )
    tags: list[str] | str = Field(
        default_factory=list, description="Tag names, or one comma-separated string"
    )

    def to_draft(self, owner_id: str) -> SessionDraft:
        return SessionDraft(
            owner_id=owner_id,
            title=self.title,
            scheduled_at=parse_wall_clock(self.scheduled_datetime),
            description=self.description,
            estimated_duration=self.estimated_duration,
            recurrence=Recurrence.from_data(self.recurrence_type, self.recurrence_data),
            tags=normalize_tags(self.tags),
        )


def _coerce_draft(owner_id: str, draft: SessionDraft | Mapping[str, Any]) -> SessionDraft:
    if isinstance(draft, SessionDraft):
        if draft.owner_id != owner_id:
            draft = replace(draft, owner_id=owner_id)
        return draft
    try:
        request = SessionRequest.model_validate(dict(draft))
    except pydantic.ValidationError as exc:
        msg = f"Invalid scheduled session: {exc.errors()[0]['msg']}"
        raise ValidationError(msg) from exc
    return request.to_draft(owner_id)


def _coerce_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Accept the stored column name for the start time as well."""
    coerced = dict(fields)
    if "scheduled_datetime" in coerced:
        coerced["scheduled_at"] = coerced.pop("scheduled_datetime")
    return coerced


class ScheduledSessionService:
    """Planner operations exposed to the UI layer.

    Args:
        store: ScheduledSessionStore for persistence.
        owner_id: User whose sessions reminders are computed for
            (default from settings).
    """

    def __init__(self, store: ScheduledSessionStore, owner_id: str | None = None) -> None:
        self._store = store
        self._lifecycle = SessionLifecycle(store)
        self._owner_id = owner_id or settings.owner_id

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def lifecycle(self) -> SessionLifecycle:
        return self._lifecycle

    # -- Planning --------------------------------------------------------------

    async def create_scheduled_session(
        self,
        owner_id: str,
        draft: SessionDraft | Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> str | None:
        """Validate, expand and persist a session. Returns the base session ID.

        Weekly sessions are stored together with all their follow-on weeks.
        Returns None if the store fails.

        Raises:
            ValidationError: on invalid input, or a start time in the past when
                ``reject_past_sessions`` is enabled.
        """
        base = _coerce_draft(owner_id, draft)
        now = parse_wall_clock(now) if now is not None else local_now()
        if settings.reject_past_sessions and base.scheduled_at < now:
            msg = "Cannot schedule sessions in the past"
            raise ValidationError(msg)

        drafts = expand(base, today=now.date())
        try:
            ids = await self._store.insert_many(drafts)
        except StoreError:
            logger.exception("Failed to create scheduled session '%s'", base.title)
            return None
        logger.info(
            "Scheduled '%s' at %s with %d weekly follow-on(s)",
            base.title,
            base.scheduled_at.isoformat(),
            len(ids) - 1,
        )
        return ids[0]

    async def get_scheduled_sessions(
        self,
        owner_id: str,
        *,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        status: str | list[str] | None = None,
    ) -> list[ScheduledSession]:
        """List sessions with tag names attached, earliest first."""
        statuses = [status] if isinstance(status, str) else status
        try:
            return await self._store.find(
                owner_id,
                start_date=parse_date(start_date) if start_date else None,
                end_date=parse_date(end_date) if end_date else None,
                statuses=statuses,
            )
        except StoreError:
            logger.exception("Failed to list scheduled sessions for %s", owner_id)
            return []

    # -- Lifecycle -------------------------------------------------------------

    async def update_scheduled_session(
        self, owner_id: str, session_id: str, fields: Mapping[str, Any]
    ) -> bool:
        """Edit a session. Returns whether a session was changed."""
        try:
            return await self._lifecycle.update(owner_id, session_id, _coerce_fields(fields))
        except StoreError:
            logger.exception("Failed to update scheduled session %s", session_id)
            return False

    async def delete_scheduled_session(self, owner_id: str, session_id: str) -> bool:
        """Delete one session. Returns whether it existed."""
        try:
            return await self._lifecycle.delete(owner_id, session_id)
        except StoreError:
            logger.exception("Failed to delete scheduled session %s", session_id)
            return False

    async def mark_scheduled_session_completed(
        self, owner_id: str, session_id: str, linked_session_id: str
    ) -> bool:
        """Complete a session and link its tracking session."""
        try:
            return await self._lifecycle.complete(owner_id, session_id, linked_session_id)
        except StoreError:
            logger.exception("Failed to complete scheduled session %s", session_id)
            return False

    async def start_scheduled_session(
        self,
        owner_id: str,
        session_id: str,
        start_tracking: Callable[[ScheduledSession], Awaitable[str]],
    ) -> str | None:
        """Start a planned session now. Returns the tracking session ID."""
        try:
            return await self._lifecycle.start(owner_id, session_id, start_tracking)
        except StoreError:
            logger.exception("Failed to start scheduled session %s", session_id)
            return None

    # -- Reminders -------------------------------------------------------------

    async def get_upcoming_notifications(
        self, now: datetime | None = None
    ) -> list[NotificationEvent]:
        """Evaluate today's and tomorrow's pending sessions against *now*."""
        now = parse_wall_clock(now) if now is not None else local_now()
        today = now.date()
        try:
            pending = await self._store.find_pending(
                self._owner_id, (today, today + timedelta(days=1))
            )
        except StoreError:
            logger.exception("Failed to load pending sessions for reminders")
            return []
        return evaluate(now, pending)

    async def mark_notification_sent(
        self, session_id: str, *, at: datetime | None = None
    ) -> bool:
        """Record that the day-before reminder went out."""
        try:
            return await self._store.mark_notification_sent(session_id, at or local_now())
        except StoreError:
            logger.exception("Failed to mark notification sent for %s", session_id)
            return False
