"""SessionLifecycle — status transitions for scheduled sessions.

``pending → completed`` happens when the user starts (or completes) a
session, and stamps the tracking session it spawned.  ``pending →
cancelled`` is a deletion: the row and its tag links go away.  Edits keep a
session ``pending``.  A session whose start time passes untouched stays
``pending``; nothing marks it missed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.scheduler.errors import ValidationError
from src.scheduler.models import STATUS_COMPLETED

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.scheduler.models import ScheduledSession
    from src.scheduler.store import ScheduledSessionStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"title", "description", "scheduled_at", "estimated_duration", "tags"}
)


class SessionLifecycle:
    """Applies user edits and status transitions through the store.

    Args:
        store: ScheduledSessionStore for persistence.
    """

    def __init__(self, store: ScheduledSessionStore) -> None:
        self._store = store

    async def update(self, owner_id: str, session_id: str, fields: dict[str, Any]) -> bool:
        """Edit title, description, time, duration or tags. Status is untouched.

        Raises:
            ValidationError: if *fields* names anything else.
        """
        rejected = set(fields) - EDITABLE_FIELDS
        if rejected:
            msg = f"Field(s) not editable: {', '.join(sorted(rejected))}"
            raise ValidationError(msg)
        return await self._store.update(owner_id, session_id, fields)

    async def complete(self, owner_id: str, session_id: str, linked_session_id: str) -> bool:
        """Mark a session completed and link the tracking session.

        Returns False when the session does not exist.  Completing an
        already-completed session reports success and keeps its original
        link.
        """
        if not linked_session_id:
            msg = "A completed session needs the ID of its tracking session"
            raise ValidationError(msg)

        session = await self._store.get_session(owner_id, session_id)
        if session is None:
            logger.info("Cannot complete missing scheduled session %s", session_id)
            return False
        if session.is_completed:
            logger.debug("Scheduled session %s already completed", session_id)
            return True

        updated = await self._store.update(
            owner_id,
            session_id,
            {"status": STATUS_COMPLETED, "linked_session_id": linked_session_id},
        )
        if updated:
            logger.info(
                "Completed scheduled session '%s' (%s) → tracking session %s",
                session.title,
                session_id,
                linked_session_id,
            )
        return updated

    async def delete(self, owner_id: str, session_id: str) -> bool:
        """Cancel a session by deleting it. Other weekly instances are kept."""
        return await self._store.delete(owner_id, session_id)

    async def start(
        self,
        owner_id: str,
        session_id: str,
        start_tracking: Callable[[ScheduledSession], Awaitable[str]],
    ) -> str | None:
        """Start tracking a scheduled session now and mark it completed.

        *start_tracking* creates the real tracking session and returns its ID.
        Returns that ID, the existing link when the session was already
        started, or None when the session does not exist or could not be
        marked completed.
        """
        session = await self._store.get_session(owner_id, session_id)
        if session is None:
            logger.info("Cannot start missing scheduled session %s", session_id)
            return None
        if session.is_completed:
            return session.linked_session_id

        linked_session_id = await start_tracking(session)
        if not await self.complete(owner_id, session_id, linked_session_id):
            logger.warning(
                "Scheduled session %s vanished while starting; tracking session %s is unlinked",
                session_id,
                linked_session_id,
            )
            return None
        return linked_session_id
