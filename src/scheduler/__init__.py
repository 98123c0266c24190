"""Scheduled session engine — planning, recurrence, reminders and lifecycle."""

from src.scheduler.dispatcher import ReminderDispatcher
from src.scheduler.engine import ReminderEngine
from src.scheduler.errors import NotFoundError, SchedulerError, StoreError, ValidationError
from src.scheduler.evaluator import evaluate
from src.scheduler.lifecycle import SessionLifecycle
from src.scheduler.models import NotificationEvent, Recurrence, ScheduledSession, SessionDraft
from src.scheduler.recurrence import expand
from src.scheduler.service import ScheduledSessionService
from src.scheduler.store import ScheduledSessionStore

__all__ = [
    "NotFoundError",
    "NotificationEvent",
    "Recurrence",
    "ReminderDispatcher",
    "ReminderEngine",
    "ScheduledSession",
    "ScheduledSessionService",
    "ScheduledSessionStore",
    "SchedulerError",
    "SessionDraft",
    "SessionLifecycle",
    "StoreError",
    "ValidationError",
    "evaluate",
    "expand",
]
