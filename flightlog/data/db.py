"""
Pilot Logbook: Local Database.

The local storage variant: flights, saved aircraft and reminders persist in
SQLite. Every row carries the owning user id (NULL in no-user local mode).
Rows are read back through the normalizer, so callers only ever see
canonical records.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import asdict
from pathlib import Path

from flightlog.core.normalizer import normalize_record
from flightlog.core.reminders import reminders_from_rows
from flightlog.data.models import Aircraft, FlightRecord, Reminder

logger = logging.getLogger(__name__)


class _SQLiteTable(ABC):
    """Shared connection handling for the logbook tables."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from flightlog.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @abstractmethod
    def _init_db(self) -> None:
        """Create the table and apply schema migrations."""


class FlightDB(_SQLiteTable):
    """SQLite-backed storage for logged flights."""

    def _init_db(self) -> None:
        """Create the flights table if it doesn't exist, and migrate schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS flights (
                    row_id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    id             TEXT    NOT NULL,
                    user_id        INTEGER,
                    aircraft       TEXT    NOT NULL DEFAULT '',
                    crew           TEXT    NOT NULL DEFAULT '',
                    duration_hours REAL    NOT NULL DEFAULT 0,
                    departure      TEXT    NOT NULL DEFAULT '',
                    arrival        TEXT    NOT NULL DEFAULT '',
                    date           TEXT    NOT NULL DEFAULT '',
                    flight_type    TEXT    NOT NULL DEFAULT '',
                    flight_time    TEXT    NOT NULL DEFAULT '',
                    night_vision   INTEGER NOT NULL DEFAULT 0,
                    note           TEXT    NOT NULL DEFAULT ''
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(flights)").fetchall()
            }
            if "flight_type" not in existing_cols:
                conn.execute(
                    "ALTER TABLE flights ADD COLUMN flight_type TEXT NOT NULL DEFAULT ''"
                )
            if "flight_time" not in existing_cols:
                conn.execute(
                    "ALTER TABLE flights ADD COLUMN flight_time TEXT NOT NULL DEFAULT ''"
                )
            if "night_vision" not in existing_cols:
                conn.execute(
                    "ALTER TABLE flights ADD COLUMN night_vision INTEGER NOT NULL DEFAULT 0"
                )
            if "note" not in existing_cols:
                conn.execute("ALTER TABLE flights ADD COLUMN note TEXT NOT NULL DEFAULT ''")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_flights_owner ON flights (user_id, id)"
            )
        logger.debug("Flights table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_flight(row: sqlite3.Row) -> FlightRecord:
        return normalize_record(dict(row))

    def list_all(self, user_id: int | None = None) -> list[FlightRecord]:
        """Return the user's flights in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM flights WHERE user_id IS ? ORDER BY row_id",
                (user_id,),
            ).fetchall()
        return [self._row_to_flight(r) for r in rows]

    def get_flight(self, record_id: str, user_id: int | None = None) -> FlightRecord | None:
        """Fetch a single flight by id."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM flights WHERE id = ? AND user_id IS ?",
                (record_id, user_id),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_flight(row)

    def upsert(self, record: FlightRecord) -> FlightRecord:
        """Replace the flight with the same id, or append it."""
        values = asdict(record)
        columns = [c for c in values if c not in ("id", "user_id")]
        params = [int(v) if isinstance(v, bool) else v for v in (values[c] for c in columns)]

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE flights SET {', '.join(f'{c} = ?' for c in columns)} "
                "WHERE id = ? AND user_id IS ?",
                (*params, record.id, record.user_id),
            )
            replaced = cursor.rowcount > 0
            if not replaced:
                conn.execute(
                    f"INSERT INTO flights (id, user_id, {', '.join(columns)}) "
                    f"VALUES (?, ?, {', '.join('?' for _ in columns)})",
                    (record.id, record.user_id, *params),
                )

        logger.info(
            "Flight %s %s: %s %.1fh",
            record.id, "replaced" if replaced else "added",
            record.aircraft or "-", record.duration_hours,
        )
        return record

    def delete(self, record_id: str, user_id: int | None = None) -> bool:
        """Permanently delete a flight by id."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM flights WHERE id = ? AND user_id IS ?",
                (record_id, user_id),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Flight %s deleted", record_id)
        return deleted


class AircraftDB(_SQLiteTable):
    """SQLite-backed storage for saved aircraft names."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS aircraft (
                    id      INTEGER PRIMARY KEY AUTOINCREMENT,
                    name    TEXT NOT NULL,
                    user_id INTEGER
                )
            """)
        logger.debug("Aircraft table initialized at %s", self._db_path)

    def list_all(self, user_id: int | None = None) -> list[Aircraft]:
        """Return saved aircraft in the order they were added."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, user_id FROM aircraft WHERE user_id IS ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [Aircraft(name=r["name"], user_id=r["user_id"]) for r in rows]

    def add(self, name: str, user_id: int | None = None) -> Aircraft:
        """Save an aircraft name; an existing name is left as is."""
        name = name.strip()
        if not name:
            raise ValueError("Aircraft name is empty")

        with self._connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM aircraft WHERE name = ? AND user_id IS ?",
                (name, user_id),
            ).fetchone()
            if exists is None:
                conn.execute(
                    "INSERT INTO aircraft (name, user_id) VALUES (?, ?)",
                    (name, user_id),
                )
                logger.info("Aircraft saved: '%s'", name)
        return Aircraft(name=name, user_id=user_id)

    def delete(self, name: str, user_id: int | None = None) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM aircraft WHERE name = ? AND user_id IS ?",
                (name.strip(), user_id),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Aircraft '%s' deleted", name)
        return deleted


class ReminderDB(_SQLiteTable):
    """SQLite-backed storage for flight reminders."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    row_id   INTEGER PRIMARY KEY AUTOINCREMENT,
                    id       TEXT    NOT NULL,
                    user_id  INTEGER,
                    date     TEXT    NOT NULL,
                    aircraft TEXT    NOT NULL DEFAULT '',
                    crew     TEXT    NOT NULL DEFAULT '',
                    note     TEXT    NOT NULL DEFAULT '',
                    seen     INTEGER NOT NULL DEFAULT 0
                )
            """)
        logger.debug("Reminders table initialized at %s", self._db_path)

    def list_all(self, user_id: int | None = None) -> list[Reminder]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE user_id IS ? ORDER BY row_id",
                (user_id,),
            ).fetchall()
        return reminders_from_rows(dict(r) for r in rows)

    def upsert(self, reminder: Reminder) -> Reminder:
        """Replace the reminder with the same id, or append it."""
        params = (
            reminder.date, reminder.aircraft, reminder.crew,
            reminder.note, int(reminder.seen),
        )
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE reminders
                   SET date = ?, aircraft = ?, crew = ?, note = ?, seen = ?
                 WHERE id = ? AND user_id IS ?
                """,
                (*params, reminder.id, reminder.user_id),
            )
            if cursor.rowcount == 0:
                conn.execute(
                    """
                    INSERT INTO reminders (date, aircraft, crew, note, seen, id, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (*params, reminder.id, reminder.user_id),
                )
        logger.info("Reminder %s saved for %s", reminder.id, reminder.date)
        return reminder

    def delete(self, reminder_id: str, user_id: int | None = None) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM reminders WHERE id = ? AND user_id IS ?",
                (reminder_id, user_id),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Reminder %s deleted", reminder_id)
        return deleted


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    db = FlightDB(db_path="data/test_logbook.db")
    db.upsert(normalize_record({
        "id": "1", "havaAraci": "Cessna 172", "pilotlar": "Ahmet Yilmaz, Mehmet Demir",
        "sure": "2.5", "kalkis": "Istanbul", "inis": "Ankara", "tarih": "2025-11-07T10:00",
    }))
    print(f"All flights: {db.list_all()}")

    db.delete("1")
    print(f"After delete: {db.list_all()}")
