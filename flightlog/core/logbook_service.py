"""
Pilot Logbook: UI-Agnostic Logbook Service.

Orchestrates normalization, storage, import reconciliation, statistics and
reminders, and returns structured response objects. Each UI adapter (the
Telegram bot today) renders those objects in its own way.

State lives in an explicit LogbookSession owned by the caller. The session
cache is changed only after the store confirms a write; a failed store call
leaves it exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any

from flightlog.core.aggregator import Summary, aggregate
from flightlog.core.normalizer import normalize_record
from flightlog.core.reconciler import (
    ImportEmpty,
    ImportFormatError,
    find_collisions,
    merge_batch,
    normalize_batch,
)
from flightlog.core.reminders import (
    due_on,
    due_tomorrow,
    normalize_reminder,
    sort_by_date,
)
from flightlog.core.transfer import parse_import, to_csv, to_json
from flightlog.data.models import FlightRecord, Reminder
from flightlog.ports.store_port import PersistenceError, StoreUnavailable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    UNAVAILABLE = "unavailable"
    NO_ENTRIES = "no_entries"
    IMPORT_EMPTY = "import_empty"
    COLLISION_PROMPT = "collision_prompt"
    IMPORT_RESULT = "import_result"
    STATS = "stats"
    EXPORT = "export"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class SuccessResponse(ServiceResponse):
    record: FlightRecord | None = None
    reminder: Reminder | None = None


@dataclass
class ErrorResponse(ServiceResponse):
    pass


@dataclass
class PendingImport:
    """An import batch waiting for the overwrite yes/no decision."""

    rows: list = field(default_factory=list)         # raw rows, as parsed
    collisions: list[str] = field(default_factory=list)


@dataclass
class CollisionPromptResponse(ServiceResponse):
    collisions: list[str] = field(default_factory=list)
    pending: PendingImport | None = None


@dataclass
class ImportResultResponse(ServiceResponse):
    imported_count: int = 0
    collisions: list[str] = field(default_factory=list)


@dataclass
class StatsResponse(ServiceResponse):
    summary: Summary = field(default_factory=Summary)
    flights: list[FlightRecord] = field(default_factory=list)


@dataclass
class ExportResponse(ServiceResponse):
    filename: str = ""
    content: bytes = b""
    mime_type: str = ""


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass
class LogbookSession:
    """Per-user logbook context, owned by the calling layer."""

    user_id: int | None
    stores: Any                                  # LogbookStores
    flights: list[FlightRecord] = field(default_factory=list)
    aircraft: list[str] = field(default_factory=list)
    reminders: list[Reminder] = field(default_factory=list)
    loaded: bool = False


def _store_error(exc: Exception) -> ErrorResponse:
    if isinstance(exc, StoreUnavailable):
        return ErrorResponse(
            kind=ResponseKind.UNAVAILABLE,
            message=f"No storage available: {exc}",
        )
    return ErrorResponse(
        kind=ResponseKind.ERROR,
        message=f"The logbook store rejected the request: {exc}",
    )


_STORE_ERRORS = (StoreUnavailable, PersistenceError)


# ---------------------------------------------------------------------------
# LogbookService
# ---------------------------------------------------------------------------


class LogbookService:
    """Stateless service over caller-owned sessions.

    Returns structured response objects and never sends messages directly.
    """

    def __init__(
        self,
        store_factory: Callable[[int | None], Any] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        if store_factory is None:
            from flightlog.adapters.store_factory import create_stores
            store_factory = create_stores
        self._store_factory = store_factory
        self._tz = tz

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def open_session(self, user_id: int | None) -> LogbookSession:
        return LogbookSession(user_id=user_id, stores=self._store_factory(user_id))

    async def load(self, session: LogbookSession) -> ServiceResponse:
        """Fill the session cache from the stores (all or nothing)."""
        try:
            flights = await session.stores.flights.list_all()
            aircraft = await session.stores.aircraft.list_all()
            reminders = await session.stores.reminders.list_all()
        except _STORE_ERRORS as exc:
            logger.error("Loading logbook for user %s failed: %s", session.user_id, exc)
            return _store_error(exc)

        session.flights = flights
        session.aircraft = [a.name for a in aircraft]
        session.reminders = reminders
        session.loaded = True
        logger.info(
            "Loaded logbook for user %s: %d flights, %d aircraft, %d reminders",
            session.user_id, len(flights), len(aircraft), len(reminders),
        )
        return SuccessResponse(kind=ResponseKind.SUCCESS, message="Logbook loaded.")

    # ------------------------------------------------------------------
    # Flights
    # ------------------------------------------------------------------

    def find_flight(self, session: LogbookSession, record_id: str) -> FlightRecord | None:
        for record in session.flights:
            if record.id == record_id:
                return record
        return None

    def _cache_flight(self, session: LogbookSession, record: FlightRecord) -> None:
        for i, existing in enumerate(session.flights):
            if existing.id == record.id:
                session.flights[i] = record
                return
        session.flights.append(record)

    async def save_flight(self, session: LogbookSession, raw: Mapping) -> ServiceResponse:
        """Normalize and store a flight (replacing any flight with the same id)."""
        record = replace(normalize_record(raw), user_id=session.user_id)
        try:
            stored = await session.stores.flights.upsert(record)
        except _STORE_ERRORS as exc:
            logger.error("Saving flight %s failed: %s", record.id, exc)
            return _store_error(exc)

        self._cache_flight(session, stored)
        await self._remember_aircraft(session, [stored.aircraft])
        return SuccessResponse(
            kind=ResponseKind.SUCCESS,
            message=f"Flight saved: {stored.aircraft or '-'} ({stored.duration_hours:.1f} h)",
            record=stored,
        )

    async def update_flight(
        self, session: LogbookSession, record_id: str, changes: Mapping,
    ) -> ServiceResponse:
        """Apply field changes to an existing flight and store it."""
        existing = self.find_flight(session, record_id)
        if existing is None:
            return ErrorResponse(
                kind=ResponseKind.ERROR, message=f"Flight {record_id} not found.",
            )
        merged = {**asdict(existing), **changes, "id": record_id}
        return await self.save_flight(session, merged)

    async def move_flight(
        self, session: LogbookSession, record_id: str, new_date: str,
    ) -> ServiceResponse:
        """Move a flight to a new date/time (calendar drag-and-drop)."""
        return await self.update_flight(session, record_id, {"date": new_date})

    async def delete_flight(self, session: LogbookSession, record_id: str) -> ServiceResponse:
        try:
            deleted = await session.stores.flights.remove(record_id)
        except _STORE_ERRORS as exc:
            logger.error("Deleting flight %s failed: %s", record_id, exc)
            return _store_error(exc)

        session.flights = [r for r in session.flights if r.id != record_id]
        if not deleted:
            return ErrorResponse(
                kind=ResponseKind.ERROR, message=f"Flight {record_id} not found.",
            )
        return SuccessResponse(kind=ResponseKind.SUCCESS, message="Flight deleted.")

    async def clear_flights(self, session: LogbookSession) -> ServiceResponse:
        """Delete every flight of the session's user."""
        removed = 0
        for record in list(session.flights):
            try:
                await session.stores.flights.remove(record.id)
            except _STORE_ERRORS as exc:
                logger.error("Clearing flights stopped at %s: %s", record.id, exc)
                return _store_error(exc)
            session.flights = [r for r in session.flights if r.id != record.id]
            removed += 1
        logger.info("Cleared %d flights for user %s", removed, session.user_id)
        return SuccessResponse(
            kind=ResponseKind.SUCCESS, message=f"{removed} flight record(s) deleted.",
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def statistics(
        self, session: LogbookSession, as_of: datetime | None = None,
    ) -> StatsResponse:
        summary = aggregate(session.flights, as_of=as_of, tz=self._tz)
        return StatsResponse(
            kind=ResponseKind.STATS,
            message="Flight statistics",
            summary=summary,
            flights=list(session.flights),
        )

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    async def import_rows(
        self,
        session: LogbookSession,
        rows: Any,
        overwrite: bool | None = None,
    ) -> ServiceResponse:
        """Merge raw rows into the logbook.

        Args:
            rows: Raw record dicts (already decoded from CSV/JSON).
            overwrite: Batch-level answer for id collisions. None means the
                user has not been asked yet: if any collision exists a
                CollisionPromptResponse is returned and nothing is written.
        """
        try:
            batch = normalize_batch(rows, user_id=session.user_id)
        except ImportEmpty:
            return ServiceResponse(
                kind=ResponseKind.IMPORT_EMPTY,
                message="The file contains no records to import.",
            )

        collisions = find_collisions(session.flights, batch)
        if collisions and overwrite is None:
            return CollisionPromptResponse(
                kind=ResponseKind.COLLISION_PROMPT,
                message=(
                    f"{len(collisions)} record(s) already exist. "
                    "Overwrite them with the imported version?"
                ),
                collisions=collisions,
                pending=PendingImport(rows=list(rows), collisions=collisions),
            )

        result = merge_batch(
            session.flights, batch,
            overwrite=bool(overwrite) if collisions else True,
        )

        try:
            for record in result.written:
                await session.stores.flights.upsert(record)
        except _STORE_ERRORS as exc:
            logger.error("Import aborted while storing records: %s", exc)
            return _store_error(exc)

        session.flights = result.merged
        await self._remember_aircraft(session, [r.aircraft for r in result.written])
        return ImportResultResponse(
            kind=ResponseKind.IMPORT_RESULT,
            message=f"Import complete: {result.imported_count} record(s) imported.",
            imported_count=result.imported_count,
            collisions=result.collisions,
        )

    async def import_file(
        self,
        session: LogbookSession,
        filename: str,
        content: bytes | str,
        overwrite: bool | None = None,
    ) -> ServiceResponse:
        """Decode an uploaded CSV/JSON file and import its rows."""
        try:
            rows = parse_import(filename, content)
        except ImportFormatError as exc:
            return ErrorResponse(
                kind=ResponseKind.ERROR, message=f"Couldn't read the import file: {exc}",
            )
        except ImportEmpty:
            return ServiceResponse(
                kind=ResponseKind.IMPORT_EMPTY,
                message="The file contains no records to import.",
            )
        return await self.import_rows(session, rows, overwrite=overwrite)

    def export(self, session: LogbookSession, fmt: str = "csv") -> ServiceResponse:
        if not session.flights:
            return ServiceResponse(
                kind=ResponseKind.NO_ENTRIES, message="There are no entries to export.",
            )
        fmt = fmt.lower()
        if fmt == "json":
            content = to_json(session.flights).encode("utf-8")
            filename, mime = "pilot_flights.json", "application/json"
        elif fmt == "csv":
            content = to_csv(session.flights).encode("utf-8-sig")
            filename, mime = "pilot_flights.csv", "text/csv"
        else:
            return ErrorResponse(
                kind=ResponseKind.ERROR, message=f"Unknown export format: {fmt}",
            )
        return ExportResponse(
            kind=ResponseKind.EXPORT,
            message=f"Exported {len(session.flights)} flight(s).",
            filename=filename,
            content=content,
            mime_type=mime,
        )

    # ------------------------------------------------------------------
    # Aircraft
    # ------------------------------------------------------------------

    async def _remember_aircraft(self, session: LogbookSession, names: list[str]) -> None:
        """Save aircraft names seen on flights; failures only cost the shortcut list."""
        for name in names:
            name = (name or "").strip()
            if not name or name in session.aircraft:
                continue
            try:
                await session.stores.aircraft.add(name)
            except _STORE_ERRORS as exc:
                logger.warning("Couldn't remember aircraft '%s': %s", name, exc)
                continue
            session.aircraft.append(name)

    async def add_aircraft(self, session: LogbookSession, name: str) -> ServiceResponse:
        name = (name or "").strip()
        if not name:
            return ErrorResponse(kind=ResponseKind.ERROR, message="Aircraft name is empty.")
        if name in session.aircraft:
            return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"{name} is already saved.")
        try:
            await session.stores.aircraft.add(name)
        except _STORE_ERRORS as exc:
            return _store_error(exc)
        session.aircraft.append(name)
        return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Added {name}.")

    async def delete_aircraft(self, session: LogbookSession, name: str) -> ServiceResponse:
        name = (name or "").strip()
        try:
            deleted = await session.stores.aircraft.remove(name)
        except _STORE_ERRORS as exc:
            return _store_error(exc)
        session.aircraft = [a for a in session.aircraft if a != name]
        if not deleted:
            return ErrorResponse(kind=ResponseKind.ERROR, message=f"{name} is not saved.")
        return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Deleted {name}.")

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    async def add_reminder(self, session: LogbookSession, raw: Mapping) -> ServiceResponse:
        try:
            reminder = normalize_reminder(raw)
        except ValueError:
            return ErrorResponse(
                kind=ResponseKind.ERROR, message="Please select date & time.",
            )
        reminder = replace(reminder, user_id=session.user_id)

        try:
            stored = await session.stores.reminders.upsert(reminder)
        except _STORE_ERRORS as exc:
            logger.error("Saving reminder failed: %s", exc)
            return _store_error(exc)

        session.reminders = [r for r in session.reminders if r.id != stored.id] + [stored]
        await self._remember_aircraft(session, [stored.aircraft])
        return SuccessResponse(
            kind=ResponseKind.SUCCESS, message="Reminder added.", reminder=stored,
        )

    async def delete_reminder(self, session: LogbookSession, reminder_id: str) -> ServiceResponse:
        try:
            deleted = await session.stores.reminders.remove(reminder_id)
        except _STORE_ERRORS as exc:
            return _store_error(exc)
        session.reminders = [r for r in session.reminders if r.id != reminder_id]
        if not deleted:
            return ErrorResponse(
                kind=ResponseKind.ERROR, message=f"Reminder {reminder_id} not found.",
            )
        return SuccessResponse(kind=ResponseKind.SUCCESS, message="Reminder deleted.")

    def list_reminders(self, session: LogbookSession) -> list[Reminder]:
        return sort_by_date(session.reminders, self._tz)

    def upcoming_reminders(
        self, session: LogbookSession, now: datetime | None = None,
    ) -> list[Reminder]:
        return due_tomorrow(session.reminders, now=now, tz=self._tz)

    def reminders_on(self, session: LogbookSession, day: date) -> list[Reminder]:
        return due_on(session.reminders, day, tz=self._tz)

    async def dismiss_reminders(
        self, session: LogbookSession, reminder_ids: list[str],
    ) -> ServiceResponse:
        """Mark reminders as seen so their notice is not repeated."""
        wanted = set(reminder_ids)
        for reminder in list(session.reminders):
            if reminder.id not in wanted or reminder.seen:
                continue
            seen = replace(reminder, seen=True)
            try:
                await session.stores.reminders.upsert(seen)
            except _STORE_ERRORS as exc:
                logger.error("Dismissing reminder %s failed: %s", reminder.id, exc)
                return _store_error(exc)
            session.reminders = [seen if r.id == seen.id else r for r in session.reminders]
        return SuccessResponse(kind=ResponseKind.SUCCESS, message="Reminder dismissed.")
