"""Tests for flightlog.data.models."""

from dataclasses import asdict

from flightlog.data.models import Aircraft, FlightRecord, Reminder


class TestFlightRecord:
    def test_defaults(self):
        record = FlightRecord(id="1")
        assert record.aircraft == ""
        assert record.duration_hours == 0.0
        assert record.night_vision is False
        assert record.user_id is None

    def test_asdict_has_every_field(self):
        data = asdict(FlightRecord(id="1", aircraft="Bell 412"))
        assert set(data) == {
            "id", "aircraft", "crew", "duration_hours", "departure", "arrival",
            "date", "flight_type", "flight_time", "night_vision", "note", "user_id",
        }


class TestAircraft:
    def test_name_and_owner(self):
        ac = Aircraft(name="AW139", user_id=7)
        assert ac.name == "AW139"
        assert ac.user_id == 7


class TestReminder:
    def test_unseen_by_default(self):
        reminder = Reminder(id="r1", date="2025-11-08T09:00:00")
        assert reminder.seen is False
