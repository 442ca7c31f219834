"""Supabase store adapters: implement the store ports over a remote row-store.

Tables `flights`, `aircraft` and `reminders` hold one row per record, keyed
by the record id and the owning user id. The supabase client is synchronous;
calls are wrapped with asyncio.to_thread for async compatibility.

A store without a client (no credentials) or without a user id (nobody
signed in) raises StoreUnavailable on every call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, replace

from supabase import Client, create_client

from flightlog.config import settings
from flightlog.core.normalizer import normalize_record
from flightlog.core.reminders import normalize_reminder, reminders_from_rows
from flightlog.data.models import Aircraft, FlightRecord, Reminder
from flightlog.ports.store_port import PersistenceError, StoreUnavailable

logger = logging.getLogger(__name__)

FLIGHTS_TABLE = "flights"
AIRCRAFT_TABLE = "aircraft"
REMINDERS_TABLE = "reminders"


def create_supabase_client() -> Client | None:
    """Create a client from SUPABASE_URL / SUPABASE_KEY, or None if unset."""
    url = settings.SUPABASE_URL
    key = settings.SUPABASE_KEY
    if not url or not key:
        logger.warning("Supabase credentials not found")
        return None
    return create_client(url, key)


class _SupabaseTable:
    """Owner-scoped access to one Supabase table."""

    table_name = ""

    def __init__(self, client: Client | None, user_id: int | None) -> None:
        self._client = client
        self._user_id = user_id

    def _table(self):
        if self._client is None:
            raise StoreUnavailable("Remote storage is not configured.")
        if self._user_id is None:
            raise StoreUnavailable("Sign in to use remote storage.")
        return self._client.table(self.table_name)

    async def _run(self, action: str, fn):
        """Run a blocking query, translating client errors."""
        try:
            return await asyncio.to_thread(fn)
        except StoreUnavailable:
            raise
        except Exception as exc:
            logger.error("Supabase error (%s %s): %s", action, self.table_name, exc)
            raise PersistenceError(f"Failed to {action} {self.table_name}: {exc}") from exc

    def _select_all(self) -> list[dict]:
        resp = self._table().select("*").eq("user_id", self._user_id).execute()
        return resp.data or []

    def _update_or_insert(self, key_column: str, key: str, row: dict) -> dict:
        table = self._table()
        resp = (
            table.update(row)
            .eq(key_column, key)
            .eq("user_id", self._user_id)
            .execute()
        )
        if resp.data:
            return resp.data[0]
        resp = table.insert(row).execute()
        return resp.data[0] if resp.data else row

    def _delete(self, key_column: str, key: str) -> bool:
        resp = (
            self._table()
            .delete()
            .eq(key_column, key)
            .eq("user_id", self._user_id)
            .execute()
        )
        return bool(resp.data)


class SupabaseFlightStore(_SupabaseTable):
    """Supabase implementation of FlightStorePort."""

    table_name = FLIGHTS_TABLE

    async def list_all(self) -> list[FlightRecord]:
        rows = await self._run("load", self._select_all)
        return [normalize_record(row) for row in rows]

    async def upsert(self, record: FlightRecord) -> FlightRecord:
        record = replace(record, user_id=self._user_id)
        row = await self._run(
            "save", lambda: self._update_or_insert("id", record.id, asdict(record)),
        )
        logger.info("Flight %s stored remotely for user %s", record.id, self._user_id)
        return normalize_record(row)

    async def remove(self, record_id: str) -> bool:
        return await self._run("delete", lambda: self._delete("id", record_id))


class SupabaseAircraftStore(_SupabaseTable):
    """Supabase implementation of AircraftStorePort."""

    table_name = AIRCRAFT_TABLE

    async def list_all(self) -> list[Aircraft]:
        rows = await self._run("load", self._select_all)
        return [Aircraft(name=r.get("name", ""), user_id=r.get("user_id")) for r in rows]

    def _add(self, name: str) -> None:
        table = self._table()
        existing = (
            table.select("name")
            .eq("name", name)
            .eq("user_id", self._user_id)
            .execute()
        )
        if not existing.data:
            table.insert({"name": name, "user_id": self._user_id}).execute()

    async def add(self, name: str) -> Aircraft:
        name = name.strip()
        await self._run("save", lambda: self._add(name))
        return Aircraft(name=name, user_id=self._user_id)

    async def remove(self, name: str) -> bool:
        return await self._run("delete", lambda: self._delete("name", name.strip()))


class SupabaseReminderStore(_SupabaseTable):
    """Supabase implementation of ReminderStorePort."""

    table_name = REMINDERS_TABLE

    async def list_all(self) -> list[Reminder]:
        rows = await self._run("load", self._select_all)
        return reminders_from_rows(rows)

    async def upsert(self, reminder: Reminder) -> Reminder:
        reminder = replace(reminder, user_id=self._user_id)
        row = await self._run(
            "save", lambda: self._update_or_insert("id", reminder.id, asdict(reminder)),
        )
        return normalize_reminder(row)

    async def remove(self, reminder_id: str) -> bool:
        return await self._run("delete", lambda: self._delete("id", reminder_id))
