"""Tests for Settings configuration model."""

from pathlib import Path

import pytest

from src.config import Settings


class TestDefaults:
    def test_default_owner(self):
        s = Settings()
        assert s.owner_id == "local"

    def test_default_database_path(self):
        s = Settings()
        assert s.database_path == Path("data/planner.db")

    def test_default_scheduler_timezone(self):
        s = Settings()
        assert s.scheduler_timezone == "America/Chicago"

    def test_default_poll_interval(self):
        s = Settings()
        assert s.reminder_poll_seconds == 60

    def test_default_recurrence_caps(self):
        s = Settings()
        assert s.recurrence_default_occurrences == 52
        assert s.recurrence_horizon_days == 365

    def test_past_sessions_rejected_by_default(self):
        s = Settings()
        assert s.reject_past_sessions is True

    def test_default_tag_color(self):
        s = Settings()
        assert s.default_tag_color == "#808080"

    def test_default_notification_channel(self):
        s = Settings()
        assert s.default_notification_channel == "log"


class TestValidation:
    def test_poll_interval_must_be_positive(self):
        with pytest.raises(ValueError, match="greater_than"):
            Settings(reminder_poll_seconds=0)

    def test_negative_occurrences_rejected(self):
        with pytest.raises(ValueError, match="greater_than_equal"):
            Settings(recurrence_default_occurrences=-1)

    def test_overrides_accepted(self):
        s = Settings(scheduler_timezone="Europe/Berlin", reject_past_sessions=False)
        assert s.scheduler_timezone == "Europe/Berlin"
        assert s.reject_past_sessions is False


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})
