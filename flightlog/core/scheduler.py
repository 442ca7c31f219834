"""
Pilot Logbook: Daily Reminder Push.

Once a day (REMINDER_CHECK_HOUR in the configured timezone) every allowed
user gets a "Tomorrow you have a flight" notice for each unseen reminder
dated tomorrow. A reminder stays due until the user dismisses it.

This module is provider-agnostic: it depends on the LogbookService and the
NotificationPort protocol, not on Telegram.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from flightlog.core.normalizer import parse_timestamp

if TYPE_CHECKING:
    from flightlog.core.logbook_service import LogbookService
    from flightlog.data.models import Reminder
    from flightlog.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


def format_reminder_notice(
    reminders: list[Reminder],
    escape: Callable[[str], str] = str,
) -> str:
    """Render the tomorrow-notice text (Markdown).

    `escape` is applied to user-entered fields so they cannot break the markup.
    """
    lines = ["✈️ *Tomorrow you have a flight*", ""]
    for reminder in reminders:
        when, ok = parse_timestamp(reminder.date)
        stamp = when.strftime("%d.%m.%Y %H:%M") if ok else escape(reminder.date)
        parts = [stamp]
        if reminder.aircraft:
            parts.append(escape(reminder.aircraft))
        if reminder.crew:
            parts.append(escape(reminder.crew))
        lines.append("• " + " | ".join(parts))
        if reminder.note:
            lines.append(f"  {escape(reminder.note)}")
    return "\n".join(lines)


async def send_reminder_notices(
    notifier: NotificationPort,
    service: LogbookService,
    user_ids: Iterable[int],
    now: datetime | None = None,
    dismiss_markup: Callable[[list[Reminder]], object] | None = None,
    escape: Callable[[str], str] = str,
) -> int:
    """Push tomorrow's reminders to each user. Returns the number of users notified.

    A failure for one user is logged and does not stop the others.
    """
    notified = 0
    for user_id in user_ids:
        try:
            session = service.open_session(user_id)
            await service.load(session)
            if not session.loaded:
                logger.warning("Skipping reminders for %d: logbook unavailable", user_id)
                continue
            due = service.upcoming_reminders(session, now=now)
            if not due:
                continue
            markup = dismiss_markup(due) if dismiss_markup else None
            await notifier.send_message(user_id, format_reminder_notice(due, escape), markup)
            notified += 1
            logger.info("Reminder notice (%d due) sent to user %d", len(due), user_id)
        except Exception as exc:
            logger.error("Failed to send reminder notice to %d: %s", user_id, exc)
    return notified
