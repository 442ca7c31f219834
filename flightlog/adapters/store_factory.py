"""Store adapter factory: creates the right store adapters based on config."""

from __future__ import annotations

from dataclasses import dataclass

from flightlog.config import settings
from flightlog.ports.store_port import (
    AircraftStorePort,
    FlightStorePort,
    ReminderStorePort,
)


@dataclass
class LogbookStores:
    """The three per-user stores a logbook session works against."""

    flights: FlightStorePort
    aircraft: AircraftStorePort
    reminders: ReminderStorePort


def create_stores(user_id: int | None = None) -> LogbookStores:
    """Return store adapters matching the STORAGE_BACKEND setting.

    Args:
        user_id: Owner of every record the stores read or write. None is
            the local no-user mode (rejected by the remote backend).
    """
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "local":
        from flightlog.adapters.sqlite_store import (
            SQLiteAircraftStore,
            SQLiteFlightStore,
            SQLiteReminderStore,
        )

        return LogbookStores(
            flights=SQLiteFlightStore(user_id=user_id),
            aircraft=SQLiteAircraftStore(user_id=user_id),
            reminders=SQLiteReminderStore(user_id=user_id),
        )

    if backend == "supabase":
        from flightlog.adapters.supabase_store import (
            SupabaseAircraftStore,
            SupabaseFlightStore,
            SupabaseReminderStore,
            create_supabase_client,
        )

        client = create_supabase_client()
        return LogbookStores(
            flights=SupabaseFlightStore(client, user_id),
            aircraft=SupabaseAircraftStore(client, user_id),
            reminders=SupabaseReminderStore(client, user_id),
        )

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")
