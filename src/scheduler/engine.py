"""ReminderEngine — APScheduler loop that polls for due reminders."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config import settings
from src.scheduler.models import KIND_DAY_BEFORE
from src.scheduler.timeutil import local_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date, datetime

    from src.scheduler.dispatcher import ReminderDispatcher
    from src.scheduler.models import NotificationEvent
    from src.scheduler.service import ScheduledSessionService

logger = logging.getLogger(__name__)

_JOB_ID = "scheduled-session-reminders"


class ReminderEngine:
    """Runs the reminder check on a fixed interval and delivers the results.

    The evaluator is stateless, so the engine remembers which
    ``(session, kind)`` pairs it already delivered today and skips them on
    later ticks.  Day-before reminders are additionally stamped in the store.

    Args:
        service: ScheduledSessionService used to evaluate and stamp reminders.
        dispatcher: ReminderDispatcher that delivers the messages.
        poll_seconds: Interval between checks (default from settings).
        timezone: IANA timezone string (default from settings).
        clock: Callable returning the current local wall-clock time.
    """

    def __init__(
        self,
        service: ScheduledSessionService,
        dispatcher: ReminderDispatcher,
        *,
        poll_seconds: int | None = None,
        timezone: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._service = service
        self._dispatcher = dispatcher
        self._poll_seconds = poll_seconds or settings.reminder_poll_seconds
        self._timezone = timezone or settings.scheduler_timezone
        self._clock = clock or (lambda: local_now(self._timezone))
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._delivered: set[tuple[str, str, date]] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start polling. The first check runs immediately."""
        if self._running:
            return
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self._poll_seconds, timezone=self._timezone),
            id=_JOB_ID,
            name="Scheduled session reminders",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Reminder engine started (every %ds, tz=%s)", self._poll_seconds, self._timezone
        )
        await self._tick()

    async def stop(self) -> None:
        """Stop polling at the next tick boundary."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Reminder engine stopped")

    # -- Checks ----------------------------------------------------------------

    async def check_now(self, now: datetime | None = None) -> list[NotificationEvent]:
        """Evaluate and deliver reminders once. Returns the events delivered.

        Reminders already delivered today are skipped.  A reminder whose
        delivery fails is retried on the next check.
        """
        now = now or self._clock()
        try:
            events = await asyncio.wait_for(
                self._service.get_upcoming_notifications(now),
                timeout=settings.store_timeout_seconds,
            )
        except TimeoutError:
            logger.warning("Reminder check timed out; skipping this tick")
            return []

        self._forget_before(now.date())
        delivered: list[NotificationEvent] = []
        for event in events:
            key = (event.session_id, event.kind, now.date())
            if key in self._delivered:
                continue
            if not await self._dispatcher.dispatch(event, now):
                logger.warning(
                    "Reminder delivery failed for %s (%s); will retry",
                    event.session_id,
                    event.kind,
                )
                continue
            self._delivered.add(key)
            if event.kind == KIND_DAY_BEFORE:
                await self._service.mark_notification_sent(event.session_id, at=now)
            delivered.append(event)

        if delivered:
            logger.info("Delivered %d reminder(s)", len(delivered))
        return delivered

    # -- Internal --------------------------------------------------------------

    async def _tick(self) -> None:
        """Callback invoked by APScheduler. Never raises."""
        try:
            await self.check_now()
        except Exception:
            logger.exception("Reminder check failed")

    def _forget_before(self, today: date) -> None:
        self._delivered = {key for key in self._delivered if key[2] >= today}
