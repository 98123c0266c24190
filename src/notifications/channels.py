"""NotificationChannel protocol — interface for reminder delivery channels."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationChannel(Protocol):
    """Anything that can show a reminder to a user."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'log', 'desktop')."""
        ...

    async def send(self, user_id: str, message: str) -> bool:
        """Show one reminder. Returns True if it was delivered."""
        ...
