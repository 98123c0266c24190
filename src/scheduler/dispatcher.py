"""ReminderDispatcher — turns notification events into messages on a channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.scheduler.models import KIND_DAY_BEFORE, KIND_SAME_DAY, KIND_TIME_TO_START

if TYPE_CHECKING:
    from datetime import datetime

    from src.notifications.router import NotificationRouter
    from src.scheduler.models import NotificationEvent

logger = logging.getLogger(__name__)


def _describe_remaining(event: NotificationEvent, now: datetime) -> str:
    minutes = max(int((event.scheduled_at - now).total_seconds() // 60), 0)
    hours, minutes = divmod(minutes, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def format_reminder(event: NotificationEvent, now: datetime) -> str:
    """Render the reminder text shown to the user."""
    start = event.scheduled_at.strftime("%H:%M")
    if event.kind == KIND_DAY_BEFORE:
        text = f"Scheduled for tomorrow at {start}"
    elif event.kind == KIND_SAME_DAY:
        text = f"Starts in {_describe_remaining(event, now)} (at {start})"
    elif event.kind == KIND_TIME_TO_START:
        text = "Time to start your session"
    else:
        msg = f"Unknown notification kind: {event.kind}"
        raise ValueError(msg)

    details = []
    if event.estimated_duration:
        details.append(f"{event.estimated_duration} min")
    if event.tags:
        details.append(", ".join(event.tags))
    suffix = f" [{'; '.join(details)}]" if details else ""
    return f"{event.title} - {text}{suffix}"


class ReminderDispatcher:
    """Sends reminders for notification events through the router.

    Args:
        router: NotificationRouter for delivery.
        owner_user_id: The user the reminders are for.
        channel: Channel name override (None → router default).
    """

    def __init__(
        self,
        router: NotificationRouter,
        owner_user_id: str,
        channel: str | None = None,
    ) -> None:
        self._router = router
        self._owner_user_id = owner_user_id
        self._channel = channel

    async def dispatch(self, event: NotificationEvent, now: datetime) -> bool:
        """Deliver one reminder. Returns True if the channel accepted it."""
        message = format_reminder(event, now)
        logger.info(
            "Sending %s reminder for '%s' (%s)", event.kind, event.title, event.session_id
        )
        return await self._router.send(self._owner_user_id, message, channel=self._channel)
