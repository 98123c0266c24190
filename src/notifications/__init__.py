"""Reminder delivery channels."""

from src.notifications.channels import NotificationChannel
from src.notifications.log_channel import LogChannel
from src.notifications.router import NotificationRouter

__all__ = [
    "LogChannel",
    "NotificationChannel",
    "NotificationRouter",
]
