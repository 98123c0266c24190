"""NotificationRouter — picks the channel a reminder goes out on."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Delivers reminder text through one of the registered channels.

    Singleton accessed via ``NotificationRouter.get()``.  A reminder goes to
    the channel named in the call, else the default channel, else the sole
    registered channel.  Delivery never raises: a channel error counts as a
    failed delivery, which the reminder engine retries on its next check.
    """

    _instance: NotificationRouter | None = None

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._default: str = ""

    @classmethod
    def get(cls) -> NotificationRouter:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset singleton — for tests only."""
        cls._instance = None

    # -- Channels ----------------------------------------------------------------

    def register_channel(self, channel: NotificationChannel) -> None:
        """Add a channel. Raises ValueError if the name is taken."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel
        logger.debug("Registered reminder channel '%s'", channel.name)

    def set_default_channel(self, name: str) -> None:
        """Make *name* the fallback channel. Raises KeyError if unknown."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def list_channels(self) -> list[str]:
        return list(self._channels)

    @property
    def default_channel_name(self) -> str:
        return self._default

    def _pick(self, requested: str | None) -> NotificationChannel | None:
        if requested:
            return self._channels.get(requested)
        if self._default:
            return self._channels[self._default]
        if len(self._channels) == 1:
            (only,) = self._channels.values()
            return only
        return None

    # -- Delivery ----------------------------------------------------------------

    async def send(self, user_id: str, message: str, *, channel: str | None = None) -> bool:
        """Deliver one reminder. Returns True only if a channel accepted it."""
        target = self._pick(channel)
        if target is None:
            logger.warning(
                "No reminder channel for %s (requested=%s, registered=%s)",
                user_id,
                channel,
                self.list_channels(),
            )
            return False
        try:
            delivered = await target.send(user_id, message)
        except Exception:
            logger.exception("Reminder channel '%s' failed", target.name)
            return False
        if not delivered:
            logger.warning("Reminder channel '%s' rejected the message", target.name)
        return delivered
