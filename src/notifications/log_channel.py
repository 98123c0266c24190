"""Log-backed implementation of the NotificationChannel protocol.

Used when the planner runs headless: reminders are written to the
application log instead of being shown in a window.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes reminders to a logger at INFO level."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._log = target or logger

    @property
    def name(self) -> str:
        return "log"

    async def send(self, user_id: str, message: str) -> bool:
        self._log.info("[reminder → %s] %s", user_id, message)
        return True
