"""
Pilot Logbook: Data Models.

Canonical shapes for everything the logbook stores. Flights, saved aircraft
and reminders all belong to one user (or to no user in local-only mode).
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class FlightRecord:
    """A single logged flight in canonical form.

    Produced only by the normalizer, so every field is already typed:
    duration_hours is a finite non-negative float and date is an ISO-8601
    string whenever the input could be parsed (otherwise the raw text).
    """

    id: str
    aircraft: str = ""
    crew: str = ""                    # comma-separated names, e.g. "A. Yilmaz, M. Demir"
    duration_hours: float = 0.0
    departure: str = ""
    arrival: str = ""
    date: str = ""                    # ISO-8601, or raw input if unparseable
    flight_type: str = ""             # free text, bucketed by the classifier
    flight_time: str = ""             # "night" / "day" hint, may be empty
    night_vision: bool = False
    note: str = ""
    user_id: int | None = None


@dataclass
class Aircraft:
    """A saved aircraft name, unique within a user's list."""

    name: str
    user_id: int | None = None


@dataclass
class Reminder:
    """An upcoming-flight reminder.

    seen flips to True once the "flight tomorrow" notice is dismissed.
    """

    id: str
    date: str                         # ISO-8601 date and time
    aircraft: str = ""
    crew: str = ""
    note: str = ""
    seen: bool = field(default=False)
    user_id: int | None = None
