"""Flight classifier: pure business logic.

Derives two labels per flight record: a flight-type bucket from a closed
table, and a day/night flag from explicit markers or the local hour.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum

from flightlog.core.normalizer import parse_timestamp
from flightlog.data.models import FlightRecord

NIGHT_START_HOUR = 18
NIGHT_END_HOUR = 6


class FlightType(str, Enum):
    TRAINING = "training"
    CHECK = "check"
    VIP = "vip"
    MEDICAL = "medical"
    RESCUE = "rescue"
    OPERATION = "operation"
    UNKNOWN = "unknown"


# Case-folded labels (English, Turkish, Spanish) -> bucket
_TYPE_TABLE: dict[str, FlightType] = {
    "training": FlightType.TRAINING,
    "eğitim": FlightType.TRAINING,
    "egitim": FlightType.TRAINING,
    "entrenamiento": FlightType.TRAINING,
    "check": FlightType.CHECK,
    "kontrol": FlightType.CHECK,
    "vip": FlightType.VIP,
    "medical": FlightType.MEDICAL,
    "sıhhiye": FlightType.MEDICAL,
    "sihhiye": FlightType.MEDICAL,
    "médico": FlightType.MEDICAL,
    "rescue": FlightType.RESCUE,
    "kurtarma": FlightType.RESCUE,
    "rescate": FlightType.RESCUE,
    "operation": FlightType.OPERATION,
    "operasyon": FlightType.OPERATION,
    "operación": FlightType.OPERATION,
    "operacion": FlightType.OPERATION,
}

NIGHT_TOKENS = frozenset({"night", "gece", "noche", "nuit", "nacht"})
DAY_TOKENS = frozenset({"day", "gündüz", "gunduz", "día", "dia", "jour", "tag"})


@dataclass(frozen=True)
class Classification:
    type_bucket: FlightType
    is_night: bool


def type_bucket(label: str | None) -> FlightType:
    """Map a free-text flight type onto its canonical bucket."""
    if not label:
        return FlightType.UNKNOWN
    return _TYPE_TABLE.get(label.strip().casefold(), FlightType.UNKNOWN)


def is_night_hour(hour: int) -> bool:
    return hour < NIGHT_END_HOUR or hour >= NIGHT_START_HOUR


def is_night(record: FlightRecord, tz: tzinfo | None = None) -> bool:
    """Resolve day/night for a record, first match wins.

    1. night_vision flag
    2. flight_time is a night token
    3. flight_time is a day token
    4. local hour of the record date (day when the date is unparseable)
    """
    if record.night_vision:
        return True

    hint = (record.flight_time or "").strip().casefold()
    if hint in NIGHT_TOKENS:
        return True
    if hint in DAY_TOKENS:
        return False

    when, ok = parse_timestamp(record.date, tz)
    if not ok:
        return False
    return is_night_hour(when.hour)


def classify(record: FlightRecord, tz: tzinfo | None = None) -> Classification:
    return Classification(
        type_bucket=type_bucket(record.flight_type),
        is_night=is_night(record, tz),
    )
