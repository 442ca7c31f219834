"""SQLite store adapters: implement the store ports over the local database.

The DB classes are synchronous; every call is wrapped with asyncio.to_thread
so the bot's event loop never blocks on disk I/O. Each adapter is bound to
one user id (None in no-user local mode).
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import replace

from flightlog.data.db import AircraftDB, FlightDB, ReminderDB
from flightlog.data.models import Aircraft, FlightRecord, Reminder
from flightlog.ports.store_port import PersistenceError

logger = logging.getLogger(__name__)


class SQLiteFlightStore:
    """SQLite implementation of FlightStorePort."""

    def __init__(self, user_id: int | None = None, db: FlightDB | None = None) -> None:
        self._user_id = user_id
        self._db = db or FlightDB()

    async def list_all(self) -> list[FlightRecord]:
        try:
            return await asyncio.to_thread(self._db.list_all, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (list flights): %s", exc)
            raise PersistenceError(f"Failed to load flights: {exc}") from exc

    async def upsert(self, record: FlightRecord) -> FlightRecord:
        record = replace(record, user_id=self._user_id)
        try:
            return await asyncio.to_thread(self._db.upsert, record)
        except sqlite3.Error as exc:
            logger.error("SQLite error (upsert flight %s): %s", record.id, exc)
            raise PersistenceError(f"Failed to save flight: {exc}") from exc

    async def remove(self, record_id: str) -> bool:
        try:
            return await asyncio.to_thread(self._db.delete, record_id, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (delete flight %s): %s", record_id, exc)
            raise PersistenceError(f"Failed to delete flight: {exc}") from exc


class SQLiteAircraftStore:
    """SQLite implementation of AircraftStorePort."""

    def __init__(self, user_id: int | None = None, db: AircraftDB | None = None) -> None:
        self._user_id = user_id
        self._db = db or AircraftDB()

    async def list_all(self) -> list[Aircraft]:
        try:
            return await asyncio.to_thread(self._db.list_all, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (list aircraft): %s", exc)
            raise PersistenceError(f"Failed to load aircraft: {exc}") from exc

    async def add(self, name: str) -> Aircraft:
        try:
            return await asyncio.to_thread(self._db.add, name, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (add aircraft '%s'): %s", name, exc)
            raise PersistenceError(f"Failed to save aircraft: {exc}") from exc

    async def remove(self, name: str) -> bool:
        try:
            return await asyncio.to_thread(self._db.delete, name, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (delete aircraft '%s'): %s", name, exc)
            raise PersistenceError(f"Failed to delete aircraft: {exc}") from exc


class SQLiteReminderStore:
    """SQLite implementation of ReminderStorePort."""

    def __init__(self, user_id: int | None = None, db: ReminderDB | None = None) -> None:
        self._user_id = user_id
        self._db = db or ReminderDB()

    async def list_all(self) -> list[Reminder]:
        try:
            return await asyncio.to_thread(self._db.list_all, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (list reminders): %s", exc)
            raise PersistenceError(f"Failed to load reminders: {exc}") from exc

    async def upsert(self, reminder: Reminder) -> Reminder:
        reminder = replace(reminder, user_id=self._user_id)
        try:
            return await asyncio.to_thread(self._db.upsert, reminder)
        except sqlite3.Error as exc:
            logger.error("SQLite error (upsert reminder %s): %s", reminder.id, exc)
            raise PersistenceError(f"Failed to save reminder: {exc}") from exc

    async def remove(self, reminder_id: str) -> bool:
        try:
            return await asyncio.to_thread(self._db.delete, reminder_id, self._user_id)
        except sqlite3.Error as exc:
            logger.error("SQLite error (delete reminder %s): %s", reminder_id, exc)
            raise PersistenceError(f"Failed to delete reminder: {exc}") from exc
