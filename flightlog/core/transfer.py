"""
Pilot Logbook: Import/Export codec.

Turns CSV or JSON text into a raw sequence of record dictionaries for the
reconciler, and serializes canonical records back to CSV or JSON.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable
from dataclasses import asdict

from flightlog.core.reconciler import ImportEmpty, ImportFormatError
from flightlog.data.models import FlightRecord

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "id", "aircraft", "crew", "duration_hours", "departure", "arrival",
    "date", "flight_type", "flight_time", "night_vision", "note",
]


def _export_dict(record: FlightRecord) -> dict:
    data = asdict(record)
    data.pop("user_id", None)
    return data


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def to_csv(records: Iterable[FlightRecord]) -> str:
    """Serialize records as CSV with a canonical header row."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_HEADERS, lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow(_export_dict(record))
    return output.getvalue()


def to_json(records: Iterable[FlightRecord]) -> str:
    """Serialize records as a pretty-printed JSON array."""
    return json.dumps([_export_dict(r) for r in records], indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def parse_csv(text: str) -> list[dict]:
    """Parse CSV text (first row is the header) into raw row dicts.

    Quoted fields may contain commas, quotes and newlines. Blank lines are
    skipped; header names and values are trimmed.
    """
    text = text.lstrip("\ufeff")
    if not text.strip():
        return []

    reader = csv.reader(io.StringIO(text))
    headers: list[str] | None = None
    rows: list[dict] = []
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        if headers is None:
            headers = [h.strip() for h in row]
            continue
        rows.append({
            header: (row[i].strip() if i < len(row) else "")
            for i, header in enumerate(headers)
        })
    return rows


def parse_json(text: str) -> list:
    """Parse a JSON import document.

    Raises:
        ImportFormatError: text is not valid JSON.
        ImportEmpty: the top level is not an array, or the array is empty.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatError(str(exc)) from exc

    if not isinstance(data, list) or not data:
        raise ImportEmpty("Nothing to import")
    return data


def parse_import(filename: str, content: bytes | str) -> list:
    """Decode an uploaded file: `.json` is parsed as JSON, anything else as CSV.

    Raises:
        ImportFormatError: content is not UTF-8 or not valid JSON.
        ImportEmpty: no records found.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ImportFormatError(f"File is not UTF-8 text: {exc}") from exc

    if filename.lower().endswith(".json"):
        rows = parse_json(content)
    else:
        rows = parse_csv(content)
        if not rows:
            raise ImportEmpty("Nothing to import")

    logger.info("Parsed %d raw rows from %s", len(rows), filename)
    return rows
