#!/usr/bin/env python3
"""Plan and inspect scheduled coding sessions from the command line.

Usage examples:
    # Plan a one-off session
    uv run python scripts/sessions.py add "Refactor parser" 2026-03-10T09:00 --duration 90

    # Plan a weekly session for eight weeks, tagged
    uv run python scripts/sessions.py add "Code review" 2026-03-10T14:00 --weekly --occurrences 8 --tags review,team

    # List this month's pending sessions
    uv run python scripts/sessions.py list --start 2026-03-01 --end 2026-03-31 --status pending

    # Show reminders that are due right now
    uv run python scripts/sessions.py upcoming

    # Delete one session
    uv run python scripts/sessions.py delete 3f2a...
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import settings
from src.scheduler.errors import ValidationError
from src.scheduler.service import ScheduledSessionService
from src.scheduler.store import ScheduledSessionStore


async def _add(service: ScheduledSessionService, args: argparse.Namespace) -> int:
    request = {
        "title": args.title,
        "scheduled_datetime": args.when,
        "description": args.description,
        "estimated_duration": args.duration,
        "tags": args.tags or [],
    }
    if args.weekly:
        request["recurrence_type"] = "weekly"
        request["recurrence_data"] = {
            "end_date": args.until,
            "occurrences": args.occurrences,
        }
    try:
        session_id = await service.create_scheduled_session(settings.owner_id, request)
    except ValidationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    if session_id is None:
        print("ERROR: could not store the session", file=sys.stderr)
        return 1
    print(session_id)
    return 0


async def _list(service: ScheduledSessionService, args: argparse.Namespace) -> int:
    sessions = await service.get_scheduled_sessions(
        settings.owner_id, start_date=args.start, end_date=args.end, status=args.status
    )
    if not sessions:
        print("No scheduled sessions found.")
        return 0
    for session in sessions:
        tags = f" [{', '.join(session.tags)}]" if session.tags else ""
        duration = f" ({session.estimated_duration} min)" if session.estimated_duration else ""
        print(
            f"{session.scheduled_at:%Y-%m-%d %H:%M} {session.status:9s} "
            f"{session.title}{duration}{tags}  {session.id}"
        )
    return 0


async def _upcoming(service: ScheduledSessionService, args: argparse.Namespace) -> int:
    events = await service.get_upcoming_notifications()
    if not events:
        print("No reminders due.")
        return 0
    for event in events:
        print(f"{event.kind:14s} {event.scheduled_at:%Y-%m-%d %H:%M} {event.title}")
    return 0


async def _delete(service: ScheduledSessionService, args: argparse.Namespace) -> int:
    deleted = await service.delete_scheduled_session(settings.owner_id, args.session_id)
    print("Deleted" if deleted else "Not found")
    return 0 if deleted else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage scheduled coding sessions")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Plan a new session")
    add.add_argument("title")
    add.add_argument("when", help="Local start time, e.g. 2026-03-10T09:00")
    add.add_argument("--description", "-d")
    add.add_argument("--duration", type=int, help="Estimated minutes")
    add.add_argument("--tags", help="Comma-separated tag names")
    add.add_argument("--weekly", action="store_true", help="Repeat every week")
    add.add_argument("--until", help="Last date for weekly repeats (YYYY-MM-DD)")
    add.add_argument("--occurrences", type=int, help="Total sessions including the first")

    listing = commands.add_parser("list", help="List sessions")
    listing.add_argument("--start", help="First date (YYYY-MM-DD)")
    listing.add_argument("--end", help="Last date (YYYY-MM-DD)")
    listing.add_argument("--status", choices=["pending", "completed", "cancelled"])

    commands.add_parser("upcoming", help="Show reminders due now")

    delete = commands.add_parser("delete", help="Delete one session")
    delete.add_argument("session_id")

    args = parser.parse_args()
    handlers = {"add": _add, "list": _list, "upcoming": _upcoming, "delete": _delete}
    service = ScheduledSessionService(ScheduledSessionStore.get())
    sys.exit(asyncio.run(handlers[args.command](service, args)))


if __name__ == "__main__":
    main()
