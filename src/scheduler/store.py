"""ScheduledSessionStore — libsql CRUD for scheduled sessions and their tags."""

from __future__ import annotations

import contextlib
import logging
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from src.config import settings
from src.db import get_connection
from src.scheduler.errors import StoreError, ValidationError
from src.scheduler.models import (
    STATUS_PENDING,
    STATUSES,
    ScheduledSession,
    make_session_id,
    normalize_tags,
    positive_minutes,
)
from src.scheduler.timeutil import format_wall_clock, parse_wall_clock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from pathlib import Path

    from src.db import _AsyncConnection
    from src.scheduler.models import SessionDraft

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS scheduled_sessions (
        id                     TEXT PRIMARY KEY,
        owner_id               TEXT NOT NULL,
        title                  TEXT NOT NULL,
        description            TEXT,
        scheduled_datetime     TEXT NOT NULL,
        estimated_duration     INTEGER,
        recurrence_type        TEXT NOT NULL DEFAULT 'none',
        recurrence_data        TEXT,
        status                 TEXT NOT NULL DEFAULT 'pending',
        created_at             TEXT NOT NULL,
        last_notification_sent TEXT,
        linked_session_id      TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_scheduled_sessions_owner_time
        ON scheduled_sessions (owner_id, scheduled_datetime)
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id         TEXT PRIMARY KEY,
        owner_id   TEXT NOT NULL,
        name       TEXT NOT NULL,
        color      TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (owner_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scheduled_session_tags (
        scheduled_session_id TEXT NOT NULL,
        tag_id               TEXT NOT NULL,
        position             INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (scheduled_session_id, tag_id)
    )
    """,
)

_COLUMNS = (
    "id, owner_id, title, description, scheduled_datetime, estimated_duration, "
    "recurrence_type, recurrence_data, status, created_at, last_notification_sent, "
    "linked_session_id"
)

# Fields accepted by update(), mapped to their column (tags handled separately).
_UPDATABLE = {
    "title": "title",
    "description": "description",
    "scheduled_at": "scheduled_datetime",
    "estimated_duration": "estimated_duration",
    "status": "status",
    "last_notification_sent": "last_notification_sent",
    "linked_session_id": "linked_session_id",
}


def _column_value(field_name: str, value: Any) -> Any:
    """Convert an update value into its stored representation."""
    if field_name in ("scheduled_at", "last_notification_sent"):
        return format_wall_clock(parse_wall_clock(value)) if value is not None else None
    if field_name == "title":
        title = (value or "").strip()
        if not title:
            msg = "Session title must not be empty"
            raise ValidationError(msg)
        return title
    if field_name == "status" and value not in STATUSES:
        msg = f"Unknown status: {value!r}"
        raise ValidationError(msg)
    if field_name == "estimated_duration" and value is not None:
        return positive_minutes(value)
    return value


class ScheduledSessionStore:
    """Persists scheduled sessions and their tag links in SQLite / Turso.

    Singleton accessed via ``ScheduledSessionStore.get()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).

    Every driver failure surfaces as :class:`StoreError`.
    """

    _instance: ScheduledSessionStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> ScheduledSessionStore:
        """Return the shared ScheduledSessionStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> _AsyncConnection:
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            try:
                for statement in _SCHEMA:
                    await db.execute(statement)
                await db.commit()
            except Exception:
                await db.close()
                raise
            self._initialised = True
        return db

    @contextlib.asynccontextmanager
    async def _open(self, action: str) -> AsyncIterator[_AsyncConnection]:
        """Yield a connection, converting driver failures into StoreError."""
        try:
            db = await self._connect()
        except Exception as exc:
            msg = f"Could not open scheduled session store ({action})"
            raise StoreError(msg) from exc
        try:
            yield db
        except StoreError:
            raise
        except Exception as exc:
            msg = f"Scheduled session store failed ({action})"
            raise StoreError(msg) from exc
        finally:
            await db.close()

    async def _write_tags(
        self, db: _AsyncConnection, owner_id: str, session_id: str, names: list[str]
    ) -> None:
        """Replace a session's tag links, creating missing tags by name."""
        await db.execute(
            "DELETE FROM scheduled_session_tags WHERE scheduled_session_id = ?",
            (session_id,),
        )
        for position, name in enumerate(names):
            tag_id = await self._upsert_tag(db, owner_id, name)
            await db.execute(
                """
                INSERT OR IGNORE INTO scheduled_session_tags
                    (scheduled_session_id, tag_id, position)
                VALUES (?, ?, ?)
                """,
                (session_id, tag_id, position),
            )

    async def _upsert_tag(self, db: _AsyncConnection, owner_id: str, name: str) -> str:
        cursor = await db.execute(
            "SELECT id FROM tags WHERE owner_id = ? AND name = ?", (owner_id, name)
        )
        row = await cursor.fetchone()
        if row:
            return row[0]
        tag_id = make_session_id()
        await db.execute(
            "INSERT INTO tags (id, owner_id, name, color, created_at) VALUES (?, ?, ?, ?, ?)",
            (tag_id, owner_id, name, settings.default_tag_color, datetime.now(UTC).isoformat()),
        )
        logger.debug("Created tag '%s' for owner %s", name, owner_id)
        return tag_id

    async def _load_tags(
        self, db: _AsyncConnection, session_ids: list[str]
    ) -> dict[str, list[str]]:
        if not session_ids:
            return {}
        placeholders = ",".join("?" for _ in session_ids)
        cursor = await db.execute(
            f"""
            SELECT sst.scheduled_session_id, t.name
            FROM scheduled_session_tags sst
            JOIN tags t ON t.id = sst.tag_id
            WHERE sst.scheduled_session_id IN ({placeholders})
            ORDER BY sst.position
            """,  # noqa: S608
            tuple(session_ids),
        )
        tags: dict[str, list[str]] = {}
        for session_id, name in await cursor.fetchall():
            tags.setdefault(session_id, []).append(name)
        return tags

    async def _exists(self, db: _AsyncConnection, owner_id: str, session_id: str) -> bool:
        cursor = await db.execute(
            "SELECT 1 FROM scheduled_sessions WHERE owner_id = ? AND id = ?",
            (owner_id, session_id),
        )
        return await cursor.fetchone() is not None

    # -- CRUD ------------------------------------------------------------------

    async def insert_many(self, drafts: Iterable[SessionDraft]) -> list[str]:
        """Insert drafts and their tags in one transaction. Returns the new IDs.

        Either every row is stored or none is.
        """
        sessions = [ScheduledSession.from_draft(draft) for draft in drafts]
        if not sessions:
            return []
        async with self._open("insert") as db, db.transaction():
            for session in sessions:
                await db.execute(
                    f"INSERT INTO scheduled_sessions ({_COLUMNS}) "  # noqa: S608
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    session.to_row(),
                )
                if session.tags:
                    await self._write_tags(db, session.owner_id, session.id, session.tags)
        logger.info(
            "Stored %d scheduled session(s) starting with '%s' (%s)",
            len(sessions),
            sessions[0].title,
            sessions[0].id,
        )
        return [session.id for session in sessions]

    async def insert(self, draft: SessionDraft) -> str:
        """Insert a single draft. Returns its new ID."""
        ids = await self.insert_many([draft])
        return ids[0]

    async def get_session(self, owner_id: str, session_id: str) -> ScheduledSession | None:
        """Fetch a session by ID, or None if the owner has no such session."""
        async with self._open("get_session") as db:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM scheduled_sessions "  # noqa: S608
                "WHERE owner_id = ? AND id = ?",
                (owner_id, session_id),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            tags = await self._load_tags(db, [session_id])
            return ScheduledSession.from_row(row, tags.get(session_id))

    async def find(
        self,
        owner_id: str,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[ScheduledSession]:
        """Return the owner's sessions, earliest first.

        Date bounds are inclusive and compare the calendar date of the
        scheduled start.
        """
        query = f"SELECT {_COLUMNS} FROM scheduled_sessions WHERE owner_id = ?"  # noqa: S608
        params: list[Any] = [owner_id]
        if start_date is not None:
            query += " AND date(scheduled_datetime) >= date(?)"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND date(scheduled_datetime) <= date(?)"
            params.append(end_date.isoformat())
        wanted = list(statuses or [])
        if wanted:
            query += f" AND status IN ({','.join('?' for _ in wanted)})"
            params.extend(wanted)
        query += " ORDER BY scheduled_datetime ASC, created_at ASC"

        async with self._open("find") as db:
            cursor = await db.execute(query, tuple(params))
            rows = await cursor.fetchall()
            tags = await self._load_tags(db, [row[0] for row in rows])
            return [ScheduledSession.from_row(row, tags.get(row[0])) for row in rows]

    async def find_pending(
        self, owner_id: str, date_range: tuple[date, date] | None = None
    ) -> list[ScheduledSession]:
        """Return pending sessions, optionally limited to an inclusive date range."""
        start, end = date_range if date_range else (None, None)
        return await self.find(
            owner_id, start_date=start, end_date=end, statuses=[STATUS_PENDING]
        )

    async def update(self, owner_id: str, session_id: str, fields: dict[str, Any]) -> bool:
        """Apply a partial update. Returns True if the session exists and changed.

        Raises:
            ValidationError: on an unknown field name or an invalid value.
        """
        unknown = set(fields) - set(_UPDATABLE) - {"tags"}
        if unknown:
            msg = f"Cannot update field(s): {', '.join(sorted(unknown))}"
            raise ValidationError(msg)
        assignments = [
            (_UPDATABLE[name], _column_value(name, value))
            for name, value in fields.items()
            if name != "tags"
        ]
        tags = normalize_tags(fields["tags"]) if "tags" in fields else None
        if not assignments and tags is None:
            return False

        async with self._open("update") as db, db.transaction():
            if assignments:
                set_clause = ", ".join(f"{column} = ?" for column, _ in assignments)
                cursor = await db.execute(
                    f"UPDATE scheduled_sessions SET {set_clause} "  # noqa: S608
                    "WHERE owner_id = ? AND id = ?",
                    (*[value for _, value in assignments], owner_id, session_id),
                )
                updated = cursor.rowcount > 0
            else:
                updated = await self._exists(db, owner_id, session_id)
            if updated and tags is not None:
                await self._write_tags(db, owner_id, session_id, tags)

        if updated:
            logger.info("Updated scheduled session %s (%s)", session_id, ", ".join(fields))
        return updated

    async def set_tags(self, owner_id: str, session_id: str, names: list[str]) -> None:
        """Replace the session's tags, creating any tag the owner lacks."""
        async with self._open("set_tags") as db, db.transaction():
            if not await self._exists(db, owner_id, session_id):
                logger.warning("Cannot tag missing scheduled session %s", session_id)
                return
            await self._write_tags(db, owner_id, session_id, normalize_tags(names))

    async def delete(self, owner_id: str, session_id: str) -> bool:
        """Delete a session and its tag links. Returns True if a row was removed."""
        async with self._open("delete") as db, db.transaction():
            cursor = await db.execute(
                "DELETE FROM scheduled_sessions WHERE owner_id = ? AND id = ?",
                (owner_id, session_id),
            )
            deleted = cursor.rowcount > 0
            if deleted:
                await db.execute(
                    "DELETE FROM scheduled_session_tags WHERE scheduled_session_id = ?",
                    (session_id,),
                )
        if deleted:
            logger.info("Deleted scheduled session %s", session_id)
        return deleted

    async def mark_notification_sent(self, session_id: str, at: datetime) -> bool:
        """Stamp ``last_notification_sent``. Returns True if a row was updated."""
        async with self._open("mark_notification_sent") as db, db.transaction():
            cursor = await db.execute(
                "UPDATE scheduled_sessions SET last_notification_sent = ? WHERE id = ?",
                (format_wall_clock(parse_wall_clock(at)), session_id),
            )
            return cursor.rowcount > 0
