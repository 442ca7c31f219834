"""Text rendering of logbook data for Telegram (Markdown)."""

from __future__ import annotations

from telegram.helpers import escape_markdown

from flightlog.core.aggregator import Summary
from flightlog.core.classifier import FlightType
from flightlog.core.normalizer import parse_timestamp
from flightlog.data.models import FlightRecord, Reminder

_TYPE_LABELS = {
    FlightType.TRAINING.value: "Training",
    FlightType.CHECK.value: "Check",
    FlightType.VIP.value: "VIP",
    FlightType.MEDICAL.value: "Medical",
    FlightType.RESCUE.value: "Rescue",
    FlightType.OPERATION.value: "Operation",
    FlightType.UNKNOWN.value: "Unknown",
}


def md(text: str) -> str:
    """Escape user-entered text for legacy Markdown messages."""
    return escape_markdown(text)


def _code(text: str) -> str:
    # Backticks cannot be escaped inside a code span
    return "`" + text.replace("`", "'") + "`"


def hours(value: float) -> str:
    return f"{value:.1f}"


def format_date(value: str) -> str:
    """dd.mm.yyyy HH:MM when parseable, else the raw text (or '-')."""
    parsed, ok = parse_timestamp(value)
    if not ok:
        return md(value) if value else "-"
    return parsed.strftime("%d.%m.%Y %H:%M")


def type_label(bucket: str) -> str:
    return _TYPE_LABELS.get(bucket, md(bucket))


def format_flight(record: FlightRecord) -> str:
    route = f"{md(record.departure) or '?'} → {md(record.arrival) or '?'}"
    line = (
        f"{_code(record.id)} {format_date(record.date)}  {md(record.aircraft) or '-'}  "
        f"{route}  {hours(record.duration_hours)} h"
    )
    extras = [md(x) for x in (record.crew, record.flight_type) if x]
    if record.night_vision:
        extras.append("NVG")
    if extras:
        line += "\n    " + " | ".join(extras)
    return line


def format_flights(records: list[FlightRecord]) -> str:
    if not records:
        return "No flights logged yet. Use /addflight to log one."
    lines = [f"*Logged flights ({len(records)}):*\n"]
    lines.extend(format_flight(r) for r in records)
    return "\n".join(lines)


def _grouped(title: str, bucket: dict[str, float], labels: bool = True) -> list[str]:
    if not bucket:
        return []
    lines = [f"\n*{title}:*"]
    for key, value in sorted(bucket.items(), key=lambda kv: -kv[1]):
        name = type_label(key) if labels else md(key)
        lines.append(f"• {name}: {hours(value)} h")
    return lines


def format_summary(summary: Summary) -> str:
    """Render a Summary; all hour values with one decimal place."""
    lines = [
        "*Flight statistics*\n",
        f"This week: {hours(summary.weekly)} h",
        f"This month: {hours(summary.monthly)} h",
        f"Total: {hours(summary.total)} h",
        f"Flights: {summary.flight_count}",
    ]
    lines += _grouped("By type", summary.by_type)
    lines += _grouped("Day", summary.by_type_day)
    lines += _grouped("Night", summary.by_type_night)
    lines += _grouped("By crew", summary.by_pilot, labels=False)
    return "\n".join(lines)


def format_reminders(reminders: list[Reminder]) -> str:
    if not reminders:
        return "No reminders. Use /remind to add one."
    lines = ["*Reminders:*\n"]
    for r in reminders:
        parts = [format_date(r.date)]
        parts += [md(x) for x in (r.aircraft, r.crew, r.note) if x]
        seen = " ✓" if r.seen else ""
        lines.append(f"{_code(r.id)} " + " | ".join(parts) + seen)
    return "\n".join(lines)
