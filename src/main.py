"""Session planner entry point: runs the reminder loop until interrupted."""

import asyncio
import logging
import signal

from src.config import settings
from src.notifications import LogChannel, NotificationRouter
from src.scheduler.dispatcher import ReminderDispatcher
from src.scheduler.engine import ReminderEngine
from src.scheduler.service import ScheduledSessionService
from src.scheduler.store import ScheduledSessionStore

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def build_engine() -> ReminderEngine:
    """Wire store, service, router and dispatcher into a reminder engine."""
    service = ScheduledSessionService(ScheduledSessionStore.get())

    router = NotificationRouter.get()
    if "log" not in router.list_channels():
        router.register_channel(LogChannel())
    if settings.default_notification_channel in router.list_channels():
        router.set_default_channel(settings.default_notification_channel)
    else:
        logger.warning(
            "Notification channel '%s' is not available; using '%s'",
            settings.default_notification_channel,
            "log",
        )
        router.set_default_channel("log")

    dispatcher = ReminderDispatcher(router, service.owner_id)
    return ReminderEngine(service, dispatcher)


async def run() -> None:
    """Start the reminder engine and wait for SIGINT/SIGTERM."""
    engine = build_engine()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await engine.start()
    try:
        await stop.wait()
    finally:
        await engine.stop()


def main() -> None:
    logger.info("Starting session planner reminders for owner %s", settings.owner_id)
    asyncio.run(run())


if __name__ == "__main__":
    main()
