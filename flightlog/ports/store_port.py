"""Record store port: abstract interface for logbook persistence.

Core modules depend on these protocols, never on a specific backend. Each
store instance is bound to one user context (or to no user in local mode).
Stores hand back canonical records only.
"""

from __future__ import annotations

from typing import Protocol

from flightlog.data.models import Aircraft, FlightRecord, Reminder


class StoreUnavailable(Exception):
    """Raised when no storage or session context is available."""


class PersistenceError(Exception):
    """Raised when the backing store rejects a read or write."""


class FlightStorePort(Protocol):
    """Identity-keyed flight storage."""

    async def list_all(self) -> list[FlightRecord]: ...

    async def upsert(self, record: FlightRecord) -> FlightRecord: ...

    async def remove(self, record_id: str) -> bool: ...


class AircraftStorePort(Protocol):
    """Saved aircraft names, unique per user."""

    async def list_all(self) -> list[Aircraft]: ...

    async def add(self, name: str) -> Aircraft: ...

    async def remove(self, name: str) -> bool: ...


class ReminderStorePort(Protocol):
    """Identity-keyed reminder storage."""

    async def list_all(self) -> list[Reminder]: ...

    async def upsert(self, reminder: Reminder) -> Reminder: ...

    async def remove(self, reminder_id: str) -> bool: ...
