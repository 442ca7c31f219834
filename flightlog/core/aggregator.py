"""Flight statistics aggregator: pure business logic.

Folds a set of canonical flight records into week/month/all-time hour
totals and grouped sums (by type, by day/night x type, by crew).

Records whose date cannot be parsed are left out of the three time sums
(they cannot be attributed to a window) but still count in every grouped
sum. No I/O, no formatting: callers get raw floats.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo

from flightlog.core.classifier import classify
from flightlog.core.normalizer import parse_timestamp
from flightlog.data.models import FlightRecord

UNKNOWN_PILOT = "unknown"


@dataclass
class Summary:
    """Aggregated hours for the presentation layer."""

    weekly: float = 0.0
    monthly: float = 0.0
    total: float = 0.0
    flight_count: int = 0
    by_type: dict[str, float] = field(default_factory=dict)
    by_type_day: dict[str, float] = field(default_factory=dict)
    by_type_night: dict[str, float] = field(default_factory=dict)
    by_pilot: dict[str, float] = field(default_factory=dict)


def week_start(as_of: datetime) -> datetime:
    """Monday 00:00 of the week containing as_of."""
    monday = as_of - timedelta(days=as_of.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def month_start(as_of: datetime) -> datetime:
    """Day 1, 00:00 of the month containing as_of."""
    return as_of.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _add(bucket: dict[str, float], key: str, hours: float) -> None:
    bucket[key] = bucket.get(key, 0.0) + hours


def aggregate(
    records: Iterable[FlightRecord],
    as_of: datetime | None = None,
    tz: tzinfo | None = None,
) -> Summary:
    """Aggregate flight hours relative to as_of (defaults to now, local time).

    Args:
        records: Canonical flight records.
        as_of: Reference instant; windows end here inclusively.
        tz: Timezone used to localize offset-aware dates (system local if None).
    """
    if as_of is None:
        as_of = datetime.now(tz)
    if as_of.tzinfo is not None:
        as_of = as_of.astimezone(tz).replace(tzinfo=None)

    week_from = week_start(as_of)
    month_from = month_start(as_of)

    summary = Summary()
    for record in records:
        summary.flight_count += 1
        hours = record.duration_hours

        when, dated = parse_timestamp(record.date, tz)
        if dated:
            summary.total += hours
            if week_from <= when <= as_of:
                summary.weekly += hours
            if month_from <= when <= as_of:
                summary.monthly += hours

        label = classify(record, tz)
        bucket = label.type_bucket.value
        _add(summary.by_type, bucket, hours)
        if label.is_night:
            _add(summary.by_type_night, bucket, hours)
        else:
            _add(summary.by_type_day, bucket, hours)

        _add(summary.by_pilot, record.crew or UNKNOWN_PILOT, hours)

    return summary
