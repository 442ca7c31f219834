"""Shared test fixtures and configuration.

Sets up fake environment variables so flightlog.config doesn't sys.exit(),
and provides temp-file logbook databases.
"""

import os

# Patch env vars BEFORE any flightlog imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("TIMEZONE", "Europe/Istanbul")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_logbook.db")


@pytest.fixture
def flight_db(tmp_db_path):
    """Return a FlightDB instance backed by a temp file."""
    from flightlog.data.db import FlightDB
    return FlightDB(db_path=tmp_db_path)


@pytest.fixture
def aircraft_db(tmp_db_path):
    """Return an AircraftDB instance backed by a temp file."""
    from flightlog.data.db import AircraftDB
    return AircraftDB(db_path=tmp_db_path)


@pytest.fixture
def reminder_db(tmp_db_path):
    """Return a ReminderDB instance backed by a temp file."""
    from flightlog.data.db import ReminderDB
    return ReminderDB(db_path=tmp_db_path)
