"""Tests for LogChannel and protocol conformance."""

import logging

import pytest

from src.notifications.channels import NotificationChannel
from src.notifications.log_channel import LogChannel

# -- Protocol conformance ---------------------------------------------------


def test_log_channel_satisfies_protocol() -> None:
    assert isinstance(LogChannel(), NotificationChannel)


def test_name_property() -> None:
    assert LogChannel().name == "log"


# -- send() -----------------------------------------------------------------


async def test_send_writes_reminder_to_log(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="src.notifications.log_channel"):
        ok = await LogChannel().send("local", "Deep work - Time to start your session")

    assert ok is True
    assert "Deep work - Time to start your session" in caplog.text
    assert "local" in caplog.text


async def test_send_uses_given_logger(caplog: pytest.LogCaptureFixture) -> None:
    target = logging.getLogger("planner.reminders")
    with caplog.at_level(logging.INFO, logger="planner.reminders"):
        await LogChannel(target).send("local", "hello")

    assert [r.name for r in caplog.records] == ["planner.reminders"]

