"""Scheduled session data models."""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from src.scheduler.errors import ValidationError
from src.scheduler.timeutil import format_wall_clock, parse_date, parse_wall_clock

RECURRENCE_NONE = "none"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_TYPES = frozenset({RECURRENCE_NONE, RECURRENCE_WEEKLY})

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUSES = frozenset({STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED})

KIND_DAY_BEFORE = "day_before"
KIND_SAME_DAY = "same_day"
KIND_TIME_TO_START = "time_to_start"
NOTIFICATION_KINDS = (KIND_DAY_BEFORE, KIND_SAME_DAY, KIND_TIME_TO_START)


def make_session_id() -> str:
    """Generate a new scheduled session ID."""
    return uuid.uuid4().hex


def _as_int(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{what} must be a whole number, got {value!r}"
        raise ValidationError(msg) from exc


def positive_minutes(value: Any) -> int:
    """Validate an estimated duration in minutes."""
    minutes = _as_int(value, "Estimated duration")
    if minutes <= 0:
        msg = f"Estimated duration must be positive, got {value}"
        raise ValidationError(msg)
    return minutes


def normalize_tags(tags: list[str] | tuple[str, ...] | str | None) -> list[str]:
    """Trim, drop blanks and de-duplicate tag names, keeping first-seen order.

    A single comma-separated string is split the way the scheduling form
    submits it.
    """
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    seen: dict[str, None] = {}
    for name in tags:
        cleaned = str(name).strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


@dataclass(frozen=True)
class Recurrence:
    """A recurrence rule. Only weekly rules are supported.

    Attributes:
        type: ``"none"`` or ``"weekly"``.
        day_of_week: ISO weekday (1=Monday … 7=Sunday) of the base session.
        end_date: Last date (inclusive) a weekly instance may fall on.
        occurrences: Total number of sessions, counting the base one.
    """

    type: str = RECURRENCE_NONE
    day_of_week: int | None = None
    end_date: date | None = None
    occurrences: int | None = None

    @property
    def is_weekly(self) -> bool:
        return self.type == RECURRENCE_WEEKLY

    def to_data(self) -> dict[str, Any] | None:
        """Serialize the rule details for the ``recurrence_data`` column."""
        if not self.is_weekly:
            return None
        return {
            "day_of_week": self.day_of_week,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "occurrences": self.occurrences,
        }

    @classmethod
    def from_data(cls, recurrence_type: str | None, data: dict[str, Any] | None) -> Recurrence:
        """Build a rule from a type plus its stored (or submitted) details.

        Accepts both snake_case keys and the camelCase keys the calendar form
        historically sent (``dayOfWeek``, ``endDate``).
        """
        recurrence_type = recurrence_type or RECURRENCE_NONE
        if recurrence_type not in RECURRENCE_TYPES:
            msg = f"Unsupported recurrence type: {recurrence_type!r}"
            raise ValidationError(msg)
        if recurrence_type == RECURRENCE_NONE:
            return cls()
        data = data or {}
        day_of_week = data.get("day_of_week", data.get("dayOfWeek"))
        end_date = data.get("end_date", data.get("endDate"))
        occurrences = data.get("occurrences")
        if day_of_week is not None:
            day_of_week = _as_int(day_of_week, "Day of week")
        if occurrences is not None:
            occurrences = _as_int(occurrences, "Occurrence count")
        return cls(
            type=RECURRENCE_WEEKLY,
            day_of_week=day_of_week,
            end_date=parse_date(end_date) if end_date else None,
            occurrences=occurrences,
        )


@dataclass
class SessionDraft:
    """A scheduled session that has not been persisted yet.

    Construction validates and normalizes the draft, so an instance that
    exists is safe to store.

    Raises:
        ValidationError: on an empty title, an unparseable ``scheduled_at``,
            a non-positive duration, an unknown status, or a weekly rule that
            ends before it starts.
    """

    owner_id: str
    title: str
    scheduled_at: datetime
    description: str | None = None
    estimated_duration: int | None = None
    recurrence: Recurrence = field(default_factory=Recurrence)
    status: str = STATUS_PENDING
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.title = (self.title or "").strip()
        if not self.title:
            msg = "Session title must not be empty"
            raise ValidationError(msg)
        self.scheduled_at = parse_wall_clock(self.scheduled_at)
        self.description = self.description or None
        if self.estimated_duration is not None:
            self.estimated_duration = positive_minutes(self.estimated_duration)
        if self.status not in STATUSES:
            msg = f"Unknown status: {self.status!r}"
            raise ValidationError(msg)
        self.tags = normalize_tags(self.tags)
        self.recurrence = self._checked_recurrence(self.recurrence)

    def _checked_recurrence(self, rule: Recurrence) -> Recurrence:
        if not rule.is_weekly:
            return Recurrence()
        if rule.end_date is not None and rule.end_date < self.scheduled_at.date():
            msg = (
                f"Recurrence end date {rule.end_date.isoformat()} is before "
                f"the first session on {self.scheduled_at.date().isoformat()}"
            )
            raise ValidationError(msg)
        if rule.occurrences is not None and rule.occurrences < 0:
            msg = f"Occurrence count must not be negative, got {rule.occurrences}"
            raise ValidationError(msg)
        return Recurrence(
            type=RECURRENCE_WEEKLY,
            day_of_week=self.scheduled_at.isoweekday(),
            end_date=rule.end_date,
            occurrences=rule.occurrences,
        )


@dataclass
class ScheduledSession:
    """A persisted scheduled session.

    Attributes:
        id: Unique identifier (UUID hex).
        owner_id: User who planned the session.
        title: Short title shown in the calendar.
        scheduled_at: Local wall-clock start time (naive).
        description: Optional free text.
        estimated_duration: Planned length in minutes.
        recurrence: The weekly rule on a base row; ``none`` on instances.
        status: ``"pending"``, ``"completed"`` or ``"cancelled"``.
        created_at: ISO 8601 timestamp.
        last_notification_sent: When the day-before reminder last went out.
        linked_session_id: Tracking session created when this one started.
        tags: Tag names attached to the session.
    """

    id: str
    owner_id: str
    title: str
    scheduled_at: datetime
    description: str | None = None
    estimated_duration: int | None = None
    recurrence: Recurrence = field(default_factory=Recurrence)
    status: str = STATUS_PENDING
    created_at: str = ""
    last_notification_sent: datetime | None = None
    linked_session_id: str | None = None
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = datetime.now(UTC).isoformat()

    # -- Convenience properties ------------------------------------------------

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    def notified_on(self, day: date) -> bool:
        """Whether a day-before reminder was already sent on *day*."""
        sent = self.last_notification_sent
        return sent is not None and sent.date() >= day

    # -- Construction ------------------------------------------------------------

    @classmethod
    def from_draft(cls, draft: SessionDraft, session_id: str | None = None) -> ScheduledSession:
        return cls(
            id=session_id or make_session_id(),
            owner_id=draft.owner_id,
            title=draft.title,
            scheduled_at=draft.scheduled_at,
            description=draft.description,
            estimated_duration=draft.estimated_duration,
            recurrence=draft.recurrence,
            status=draft.status,
            tags=list(draft.tags),
        )

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``scheduled_sessions`` column order."""
        data = self.recurrence.to_data()
        return (
            self.id,
            self.owner_id,
            self.title,
            self.description,
            format_wall_clock(self.scheduled_at),
            self.estimated_duration,
            self.recurrence.type,
            json.dumps(data) if data is not None else None,
            self.status,
            self.created_at,
            format_wall_clock(self.last_notification_sent)
            if self.last_notification_sent
            else None,
            self.linked_session_id,
        )

    @classmethod
    def from_row(cls, row: tuple, tags: list[str] | None = None) -> ScheduledSession:
        """Deserialize from a ``scheduled_sessions`` row tuple."""
        return cls(
            id=row[0],
            owner_id=row[1],
            title=row[2],
            description=row[3],
            scheduled_at=parse_wall_clock(row[4]),
            estimated_duration=row[5],
            recurrence=Recurrence.from_data(row[6], json.loads(row[7]) if row[7] else None),
            status=row[8],
            created_at=row[9],
            last_notification_sent=parse_wall_clock(row[10]) if row[10] else None,
            linked_session_id=row[11],
            tags=list(tags or []),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view with the stored column names."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "scheduled_datetime": format_wall_clock(self.scheduled_at),
            "estimated_duration": self.estimated_duration,
            "recurrence_type": self.recurrence.type,
            "recurrence_data": self.recurrence.to_data(),
            "status": self.status,
            "created_at": self.created_at,
            "last_notification_sent": format_wall_clock(self.last_notification_sent)
            if self.last_notification_sent
            else None,
            "linked_session_id": self.linked_session_id,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class NotificationEvent:
    """A reminder that should be shown for a scheduled session right now."""

    session_id: str
    title: str
    scheduled_at: datetime
    kind: str
    estimated_duration: int | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def for_session(cls, session: ScheduledSession, kind: str) -> NotificationEvent:
        return cls(
            session_id=session.id,
            title=session.title,
            scheduled_at=session.scheduled_at,
            kind=kind,
            estimated_duration=session.estimated_duration,
            tags=tuple(session.tags),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["scheduled_at"] = format_wall_clock(self.scheduled_at)
        data["tags"] = list(self.tags)
        return data
