"""Async database connection abstraction over libsql.

Wraps the synchronous ``libsql`` driver with ``asyncio.to_thread()`` so the
reminder loop never blocks on disk or network I/O.  Connection target is
determined by settings:

- **Synced**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Local/test**: no Turso env vars → local SQLite file via ``database_path``

Writes that must land together (a recurring session and its materialised
weeks) are committed once and rolled back on failure via ``transaction()``.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from pathlib import Path

from src.config import settings


class _AsyncCursor:
    """Thin async wrapper around a synchronous libsql cursor."""

    def __init__(self, cursor: Any, lock: threading.Lock) -> None:
        self._cursor = cursor
        self._lock = lock

    def _locked(self, fn: Callable[[], Any]) -> Any:
        with self._lock:
            return fn()

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._locked, self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._locked, self._cursor.fetchall)

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount


class _AsyncConnection:
    """Thin async wrapper around a synchronous libsql connection.

    Driver calls on one connection run one at a time.  Cancelling a call
    (e.g. a reminder check hitting its timeout) leaves the worker thread
    running, so ``close()`` defers to that thread instead of closing the
    connection underneath it.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def _locked(self, fn: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            return fn(*args)

    async def execute(self, sql: str, params: tuple = ()) -> _AsyncCursor:
        cursor = await asyncio.to_thread(self._locked, self._conn.execute, sql, params)
        return _AsyncCursor(cursor, self._lock)

    async def commit(self) -> None:
        await asyncio.to_thread(self._locked, self._conn.commit)

    async def rollback(self) -> None:
        await asyncio.to_thread(self._locked, self._conn.rollback)

    async def close(self) -> None:
        if self._lock.locked():
            # A cancelled statement still owns the connection; close after it returns.
            asyncio.get_running_loop().run_in_executor(None, self._locked, self._conn.close)
            return
        await asyncio.to_thread(self._locked, self._conn.close)

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[_AsyncConnection]:
        """Commit everything executed inside the block, or nothing.

        Usage::

            async with db.transaction():
                await db.execute(...)
                await db.execute(...)
        """
        try:
            yield self
        except BaseException:
            await self.rollback()
            raise
        await self.commit()


def _open_local(path: str) -> Any:
    """Open a local libsql connection with WAL mode and busy timeout."""
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def get_connection(local_path_override: Path | None = None) -> _AsyncConnection:
    """Return an async-wrapped libsql connection.

    If *local_path_override* is given (test isolation), it takes priority.
    Otherwise, ``TURSO_DATABASE_URL`` triggers a remote connection, and
    ``database_path`` falls back to a local file.
    """
    if local_path_override:
        local_path_override.parent.mkdir(parents=True, exist_ok=True)
        conn = await asyncio.to_thread(_open_local, str(local_path_override))
        return _AsyncConnection(conn)

    if settings.turso_database_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
        return _AsyncConnection(conn)

    # Local file fallback
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(settings.database_path))
    return _AsyncConnection(conn)
