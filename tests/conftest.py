"""Shared test fixtures."""

from pathlib import Path

import pytest

from src.scheduler.store import ScheduledSessionStore


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("src.config.settings.turso_database_url", "")


@pytest.fixture
async def store(tmp_path: Path, _no_turso: None) -> ScheduledSessionStore:
    """Create a ScheduledSessionStore backed by a temp database."""
    return ScheduledSessionStore(db_path=tmp_path / "test.db")
