"""Flight reminders: pure business logic.

Normalizes reminder input and finds unseen reminders that fall on the next
local calendar day (the "you have a flight tomorrow" notice).

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, tzinfo

from flightlog.core.normalizer import (
    new_record_id,
    normalize_date,
    parse_flag,
    parse_timestamp,
    resolve_fields,
)
from flightlog.data.models import Reminder

logger = logging.getLogger(__name__)


def normalize_reminder(raw: Mapping) -> Reminder:
    """Build a Reminder from loosely-typed input, sharing the flight aliases.

    Raises:
        ValueError: no date was given.
    """
    fields = resolve_fields(raw)
    if fields["date"] is None:
        raise ValueError("Reminder date is required")

    seen, _ = parse_flag(raw.get("seen"))
    user_id = fields["user_id"]
    return Reminder(
        id=str(fields["id"]).strip() if fields["id"] is not None else new_record_id(),
        date=normalize_date(fields["date"]),
        aircraft=str(fields["aircraft"] or "").strip(),
        crew=str(fields["crew"] or "").strip(),
        note=str(fields["note"] or "").strip(),
        seen=seen,
        user_id=int(user_id) if isinstance(user_id, int) else None,
    )


def _sort_key(reminder: Reminder, tz: tzinfo | None) -> tuple[int, datetime]:
    when, ok = parse_timestamp(reminder.date, tz)
    # Undated reminders go last
    return (0, when) if ok else (1, datetime.max)


def sort_by_date(reminders: Iterable[Reminder], tz: tzinfo | None = None) -> list[Reminder]:
    return sorted(reminders, key=lambda r: _sort_key(r, tz))


def due_tomorrow(
    reminders: Iterable[Reminder],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[Reminder]:
    """Unseen reminders whose local date is the day after `now`."""
    if now is None:
        now = datetime.now(tz)
    if now.tzinfo is not None:
        now = now.astimezone(tz).replace(tzinfo=None)
    return due_on(reminders, (now + timedelta(days=1)).date(), tz)


def due_on(
    reminders: Iterable[Reminder],
    day: date,
    tz: tzinfo | None = None,
) -> list[Reminder]:
    """Unseen reminders whose local date is `day`."""
    due = []
    for reminder in reminders:
        if reminder.seen:
            continue
        when, ok = parse_timestamp(reminder.date, tz)
        if ok and when.date() == day:
            due.append(reminder)
    return sort_by_date(due, tz)


def reminders_from_rows(rows: Iterable[Mapping]) -> list[Reminder]:
    """Normalize stored rows, skipping rows that lost their date."""
    reminders = []
    for row in rows:
        try:
            reminders.append(normalize_reminder(row))
        except ValueError:
            logger.warning("Skipping stored reminder without a date: %r", row.get("id"))
    return reminders
