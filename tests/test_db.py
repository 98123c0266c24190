"""Tests for async database connection abstraction."""

import asyncio
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.db import _AsyncConnection, get_connection

pytestmark = pytest.mark.usefixtures("_no_turso")


class TestGetConnection:
    async def test_returns_async_connection(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        assert isinstance(conn, _AsyncConnection)
        await conn.close()

    async def test_creates_parent_dirs(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "dir" / "test.db"
        conn = await get_connection(local_path_override=db_path)
        assert db_path.parent.exists()
        await conn.close()


class TestAsyncConnection:
    async def test_execute_and_fetchall(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.execute("INSERT INTO t (name) VALUES (?)", ("alice",))
        await conn.commit()

        cursor = await conn.execute("SELECT name FROM t")
        rows = await cursor.fetchall()
        assert rows == [("alice",)]
        await conn.close()

    async def test_execute_and_fetchone(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        await conn.execute("INSERT INTO t (val) VALUES (?)", ("hello",))
        await conn.commit()

        cursor = await conn.execute("SELECT val FROM t WHERE id = 1")
        row = await cursor.fetchone()
        assert row == ("hello",)
        await conn.close()

    async def test_fetchone_returns_none_when_empty(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")

        cursor = await conn.execute("SELECT * FROM t WHERE id = 999")
        row = await cursor.fetchone()
        assert row is None
        await conn.close()

    async def test_rowcount(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.execute("INSERT INTO t (name) VALUES (?)", ("a",))
        await conn.execute("INSERT INTO t (name) VALUES (?)", ("b",))
        await conn.commit()

        cursor = await conn.execute("DELETE FROM t")
        assert cursor.rowcount == 2
        await conn.close()


class TestTransaction:
    async def test_commits_on_success(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.commit()

        async with conn.transaction():
            await conn.execute("INSERT INTO t (name) VALUES (?)", ("a",))
            await conn.execute("INSERT INTO t (name) VALUES (?)", ("b",))
        await conn.close()

        reopened = await get_connection(local_path_override=tmp_path / "test.db")
        cursor = await reopened.execute("SELECT name FROM t ORDER BY id")
        assert await cursor.fetchall() == [("a",), ("b",)]
        await reopened.close()

    async def test_rolls_back_on_error(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.commit()

        with pytest.raises(RuntimeError, match="boom"):
            async with conn.transaction():
                await conn.execute("INSERT INTO t (name) VALUES (?)", ("a",))
                raise RuntimeError("boom")

        cursor = await conn.execute("SELECT COUNT(*) FROM t")
        assert await cursor.fetchone() == (0,)
        await conn.close()


class TestClose:
    async def test_close_waits_for_cancelled_statement(self):
        calls: list[str] = []

        class SlowConn:
            def execute(self, sql, params):
                time.sleep(0.2)
                calls.append("execute")
                return MagicMock()

            def close(self):
                calls.append("close")

        conn = _AsyncConnection(SlowConn())
        with pytest.raises(TimeoutError):
            await asyncio.wait_for(conn.execute("SELECT 1"), timeout=0.01)

        await conn.close()
        await asyncio.sleep(0.5)
        assert calls == ["execute", "close"]

    async def test_close_idle_connection(self, tmp_path: Path):
        conn = await get_connection(local_path_override=tmp_path / "test.db")
        await conn.close()
        assert not conn._lock.locked()
