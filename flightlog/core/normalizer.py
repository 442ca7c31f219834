"""
Pilot Logbook: Field Normalizer.

Maps loosely-typed input dictionaries (CSV rows, JSON import elements, legacy
storage shapes, database rows) onto the canonical FlightRecord.

No I/O and no exceptions: malformed fields degrade to defaults, they never
abort the whole record.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from collections.abc import Mapping
from datetime import datetime, tzinfo
from typing import Any

from flightlog.data.models import FlightRecord

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Alias table: canonical field -> candidate source keys, in priority order
# ---------------------------------------------------------------------------

FIELD_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("id", ("id",)),
    ("aircraft", ("aircraft", "hava", "ac", "havaAraci")),
    ("crew", ("crew", "pilot", "pilots", "pilotlar")),
    ("duration_hours", (
        "duration_hours", "durationHours", "duration", "sure", "sureh", "ucusSuresi",
    )),
    ("departure", ("departure", "kalkis", "from")),
    ("arrival", ("arrival", "inis", "to")),
    ("date", ("date", "tarih")),
    ("flight_type", ("flight_type", "flightType", "ucusTipi", "tip", "type")),
    ("flight_time", ("flight_time", "flightTime", "ucusZamani")),
    ("night_vision", ("night_vision", "nightVision")),
    ("note", ("note", "ucusNotu")),
    ("user_id", ("user_id",)),
)

# Non-ISO layouts seen in hand-made CSV files
_DATE_FORMATS = (
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)

_TRUE_WORDS = {"true", "1", "yes", "on", "evet"}
_FALSE_WORDS = {"false", "0", "no", "off", "hayir", "hayır"}


# ---------------------------------------------------------------------------
# Parse-and-fallback helpers: (value, valid)
# ---------------------------------------------------------------------------


def parse_hours(value: Any) -> tuple[float, bool]:
    """Parse a flight duration in hours.

    Accepts numbers and numeric strings (comma or dot decimal separator).
    Returns (0.0, False) for anything missing, non-numeric, negative,
    NaN or infinite.
    """
    if value is None or isinstance(value, bool):
        return 0.0, False
    if isinstance(value, (int, float)):
        try:
            hours = float(value)
        except OverflowError:
            return 0.0, False
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return 0.0, False
        try:
            hours = float(text)
        except (OverflowError, ValueError):
            return 0.0, False
    if not math.isfinite(hours) or hours < 0:
        return 0.0, False
    return hours, True


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 (or common day-first) string as written.

    Offsets are preserved; callers decide how to localize.
    """
    if isinstance(value, datetime):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_timestamp(value: Any, tz: tzinfo | None = None) -> tuple[datetime | None, bool]:
    """Parse a record date into a naive local wall-clock datetime.

    Offset-aware inputs are converted to `tz` (system local time when None)
    before the offset is dropped, so hour-of-day and window comparisons
    always happen on the local clock.
    """
    parsed = _parse_datetime(value)
    if parsed is None:
        return None, False
    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(tz).replace(tzinfo=None)
        except (OverflowError, ValueError):
            return None, False
    return parsed, True


def parse_flag(value: Any) -> tuple[bool, bool]:
    """Parse a boolean flag from bools, numbers or yes/no style strings."""
    if isinstance(value, bool):
        return value, True
    if isinstance(value, (int, float)):
        return value != 0, True
    if value is None:
        return False, False
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True, True
    if text in _FALSE_WORDS:
        return False, True
    return False, False


def normalize_date(value: Any) -> str:
    """Return the canonical ISO string for a date, or the raw text if unparseable."""
    parsed = _parse_datetime(value)
    if parsed is None:
        return _text(value)
    return parsed.isoformat()


# ---------------------------------------------------------------------------
# Record normalization
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _lookup(raw: Mapping, keys: tuple[str, ...]) -> Any:
    """Return the first non-blank value among `keys`, or None."""
    for key in keys:
        value = raw.get(key)
        if not _is_blank(value):
            return value
    return None


def new_record_id(row_index: int | None = None) -> str:
    """Synthesize a record id: epoch millis plus a row index or random suffix."""
    millis = int(time.time() * 1000)
    if row_index is not None:
        return f"{millis}_{row_index}"
    return f"{millis}_{uuid.uuid4().hex[:6]}"


def _parse_user_id(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (OverflowError, TypeError, ValueError):
        return None


def resolve_fields(raw: Mapping) -> dict[str, Any]:
    """Resolve every canonical field against the alias table (values untouched)."""
    return {name: _lookup(raw, keys) for name, keys in FIELD_ALIASES}


def normalize_record(raw: Mapping, row_index: int | None = None) -> FlightRecord:
    """Produce a canonical FlightRecord from a loosely-typed dictionary.

    Args:
        raw: Input mapping with canonical or aliased keys.
        row_index: Position in an import batch, used when an id must be
            synthesized.
    """
    if not isinstance(raw, Mapping):
        logger.debug("Non-mapping record %r, using empty record", raw)
        raw = {}

    fields = resolve_fields(raw)

    record_id = _text(fields["id"]) or new_record_id(row_index)

    hours, hours_ok = parse_hours(fields["duration_hours"])
    if not hours_ok and fields["duration_hours"] is not None:
        logger.debug(
            "Invalid duration %r in record %s, defaulting to 0",
            fields["duration_hours"], record_id,
        )

    night_vision, _ = parse_flag(fields["night_vision"])

    return FlightRecord(
        id=record_id,
        aircraft=_text(fields["aircraft"]),
        crew=_text(fields["crew"]),
        duration_hours=hours,
        departure=_text(fields["departure"]),
        arrival=_text(fields["arrival"]),
        date=normalize_date(fields["date"]),
        flight_type=_text(fields["flight_type"]),
        flight_time=_text(fields["flight_time"]),
        night_vision=night_vision,
        note=_text(fields["note"]),
        user_id=_parse_user_id(fields["user_id"]),
    )
