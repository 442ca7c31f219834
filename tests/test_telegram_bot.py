"""Tests for flightlog.bot.telegram_bot: Telegram bot handlers.

Tests the conversation flow logic, command handlers, and authorization.
The bot runs against a real LogbookService whose store ports are mocked.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from telegram.ext import ConversationHandler

from flightlog.bot.telegram_bot import (
    FLIGHT_DATE,
    FLIGHT_DURATION,
    FLIGHT_NOTE,
    FLIGHT_ROUTE,
    FLIGHT_TYPE,
    _clear_flight_data,
    _parse_remind_args,
    _parse_route,
)
from flightlog.core.logbook_service import LogbookService, PendingImport
from flightlog.data.models import Aircraft, FlightRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_stores(flights=None):
    stores = MagicMock()
    stores.flights = AsyncMock()
    stores.flights.list_all.return_value = list(flights or [])
    stores.flights.upsert.side_effect = lambda record: record
    stores.flights.remove.return_value = True
    stores.aircraft = AsyncMock()
    stores.aircraft.list_all.return_value = []
    stores.aircraft.add.side_effect = lambda name: Aircraft(name=name)
    stores.reminders = AsyncMock()
    stores.reminders.list_all.return_value = []
    stores.reminders.upsert.side_effect = lambda reminder: reminder
    return stores


def _make_update(text="", user_id=12345):
    """Create a mock Update with a text message from an authorized user."""
    update = MagicMock()
    update.message.text = text
    update.effective_user.id = user_id
    update.message.reply_text = AsyncMock()
    update.message.reply_document = AsyncMock()
    update.effective_message = update.message
    return update


def _make_callback_update(data, user_id=12345):
    update = MagicMock()
    update.effective_user.id = user_id
    update.callback_query.data = data
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()
    update.effective_message.reply_text = AsyncMock()
    return update


def _make_context(stores=None, args=None):
    """Create a mock context with user_data and a service in bot_data."""
    stores = stores or _make_stores()
    context = MagicMock()
    context.user_data = {}
    context.args = args or []
    context.bot_data = {"service": LogbookService(store_factory=lambda uid: stores)}
    return context


def _replies(update):
    return [c.args[0] for c in update.message.reply_text.await_args_list]


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestParseRoute:
    def test_dash(self):
        assert _parse_route("LTBA-LTAC") == ("LTBA", "LTAC")

    def test_arrow_and_spaces(self):
        assert _parse_route("LTBA -> LTAC") == ("LTBA", "LTAC")
        assert _parse_route("Istanbul Ankara") == ("Istanbul", "Ankara")

    def test_single_word(self):
        assert _parse_route("LTBA") is None


class TestParseRemindArgs:
    def test_full(self):
        raw = _parse_remind_args(["2025-11-08", "09:30", "AW139;", "A.", "Yilmaz;", "bring", "charts"])
        assert raw == {
            "date": "2025-11-08 09:30", "aircraft": "AW139",
            "crew": "A. Yilmaz", "note": "bring charts",
        }

    def test_date_only(self):
        raw = _parse_remind_args(["2025-11-08", "09:30"])
        assert raw["aircraft"] == ""
        assert raw["note"] == ""

    def test_missing_or_bad_date(self):
        assert _parse_remind_args([]) is None
        assert _parse_remind_args(["tomorrow", "morning"]) is None


class TestClearFlightData:
    def test_clears_draft_only(self):
        context = MagicMock()
        context.user_data = {"new_flight": {"aircraft": "AW139"}, "session": "keep"}
        _clear_flight_data(context)
        assert "new_flight" not in context.user_data
        assert context.user_data["session"] == "keep"


# ---------------------------------------------------------------------------
# Authorization and session loading
# ---------------------------------------------------------------------------


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_unauthorized_user_is_ignored(self):
        from flightlog.bot.telegram_bot import cmd_stats

        stores = _make_stores()
        update = _make_update(user_id=99999)
        await cmd_stats(update, _make_context(stores))
        update.message.reply_text.assert_not_called()
        stores.flights.list_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authorized_user_gets_response(self):
        from flightlog.bot.telegram_bot import cmd_help

        update = _make_update()
        await cmd_help(update, _make_context())
        update.message.reply_text.assert_called_once()


class TestSessionLoading:
    @pytest.mark.asyncio
    async def test_session_loaded_once(self):
        from flightlog.bot.telegram_bot import cmd_flights

        stores = _make_stores([FlightRecord(id="1", aircraft="AW139")])
        context = _make_context(stores)
        await cmd_flights(_make_update(), context)
        await cmd_flights(_make_update(), context)
        stores.flights.list_all.assert_awaited_once()
        assert context.user_data["session"].user_id == 12345

    @pytest.mark.asyncio
    async def test_store_unavailable_reported(self):
        from flightlog.bot.telegram_bot import cmd_flights
        from flightlog.ports.store_port import StoreUnavailable

        stores = _make_stores()
        stores.flights.list_all.side_effect = StoreUnavailable("Remote storage is not configured.")
        update = _make_update()
        context = _make_context(stores)
        await cmd_flights(update, context)
        assert "No storage available" in _replies(update)[0]
        assert "session" not in context.user_data


# ---------------------------------------------------------------------------
# /addflight conversation
# ---------------------------------------------------------------------------


class TestAddflightDuration:
    @pytest.mark.asyncio
    async def test_valid_duration(self):
        from flightlog.bot.telegram_bot import addflight_duration

        context = _make_context()
        context.user_data["new_flight"] = {}
        result = await addflight_duration(_make_update("1,5"), context)
        assert context.user_data["new_flight"]["duration_hours"] == 1.5
        assert result == FLIGHT_ROUTE

    @pytest.mark.asyncio
    async def test_invalid_duration_retries(self):
        from flightlog.bot.telegram_bot import addflight_duration

        context = _make_context()
        context.user_data["new_flight"] = {}
        assert await addflight_duration(_make_update("abc"), context) == FLIGHT_DURATION
        assert await addflight_duration(_make_update("-2"), context) == FLIGHT_DURATION


class TestAddflightRouteAndDate:
    @pytest.mark.asyncio
    async def test_route(self):
        from flightlog.bot.telegram_bot import addflight_route

        context = _make_context()
        context.user_data["new_flight"] = {}
        assert await addflight_route(_make_update("LTBA-LTAC"), context) == FLIGHT_DATE
        assert context.user_data["new_flight"]["departure"] == "LTBA"
        assert context.user_data["new_flight"]["arrival"] == "LTAC"

    @pytest.mark.asyncio
    async def test_bad_date_retries(self):
        from flightlog.bot.telegram_bot import addflight_date

        context = _make_context()
        context.user_data["new_flight"] = {}
        assert await addflight_date(_make_update("soon"), context) == FLIGHT_DATE
        assert await addflight_date(_make_update("2025-11-07 21:00"), context) == FLIGHT_TYPE


class TestAddflightTime:
    @pytest.mark.asyncio
    async def test_night_vision_choice(self):
        from flightlog.bot.telegram_bot import addflight_time

        context = _make_context()
        context.user_data["new_flight"] = {}
        result = await addflight_time(_make_update("Night (NVG)"), context)
        assert result == FLIGHT_NOTE
        assert context.user_data["new_flight"]["flight_time"] == "night"
        assert context.user_data["new_flight"]["night_vision"] is True


class TestAddflightNote:
    @pytest.mark.asyncio
    async def test_saves_flight(self):
        from flightlog.bot.telegram_bot import addflight_note

        stores = _make_stores()
        context = _make_context(stores)
        context.user_data["new_flight"] = {
            "aircraft": "AW139", "crew": "A, B", "duration_hours": 1.5,
            "departure": "LTBA", "arrival": "LTAC", "date": "2025-11-07 21:00",
            "flight_type": "Training", "flight_time": "night", "night_vision": False,
        }
        update = _make_update("-")
        result = await addflight_note(update, context)
        assert result == ConversationHandler.END
        saved = stores.flights.upsert.await_args[0][0]
        assert saved.aircraft == "AW139"
        assert saved.note == ""
        assert saved.user_id == 12345
        assert "new_flight" not in context.user_data
        assert "Flight saved" in _replies(update)[-1]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestStatsCommand:
    @pytest.mark.asyncio
    async def test_renders_summary(self):
        from flightlog.bot.telegram_bot import cmd_stats

        stores = _make_stores([
            FlightRecord(id="1", duration_hours=2.5, date="2025-11-03T09:00:00", flight_type="training"),
        ])
        update = _make_update()
        await cmd_stats(update, _make_context(stores))
        text = _replies(update)[0]
        assert "Total: 2.5 h" in text
        assert "Training: 2.5 h" in text


class TestMoveflightCommand:
    @pytest.mark.asyncio
    async def test_usage(self):
        from flightlog.bot.telegram_bot import cmd_moveflight

        update = _make_update()
        await cmd_moveflight(update, _make_context(args=["1"]))
        assert "Usage" in _replies(update)[0]

    @pytest.mark.asyncio
    async def test_moves(self):
        from flightlog.bot.telegram_bot import cmd_moveflight

        stores = _make_stores([FlightRecord(id="1", date="2025-11-03T09:00:00")])
        context = _make_context(stores, args=["1", "2025-11-05", "14:00"])
        await cmd_moveflight(_make_update(), context)
        assert context.user_data["session"].flights[0].date == "2025-11-05T14:00:00"


class TestRemindCommand:
    @pytest.mark.asyncio
    async def test_requires_date(self):
        from flightlog.bot.telegram_bot import cmd_remind

        update = _make_update()
        await cmd_remind(update, _make_context(args=["AW139"]))
        assert _replies(update)[0].startswith("Please select date & time.")

    @pytest.mark.asyncio
    async def test_adds_reminder(self):
        from flightlog.bot.telegram_bot import cmd_remind

        stores = _make_stores()
        update = _make_update()
        await cmd_remind(update, _make_context(stores, args=["2025-11-08", "09:30", "AW139"]))
        stores.reminders.upsert.assert_awaited_once()
        assert "Reminder added" in _replies(update)[0]


class TestExportCommand:
    @pytest.mark.asyncio
    async def test_no_entries(self):
        from flightlog.bot.telegram_bot import cmd_export

        update = _make_update()
        await cmd_export(update, _make_context())
        assert "no entries" in _replies(update)[0]
        update.message.reply_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_json_file(self):
        from flightlog.bot.telegram_bot import cmd_export

        stores = _make_stores([FlightRecord(id="1", aircraft="AW139")])
        update = _make_update()
        await cmd_export(update, _make_context(stores, args=["json"]))
        kwargs = update.message.reply_document.await_args.kwargs
        assert kwargs["filename"] == "pilot_flights.json"
        assert b"AW139" in kwargs["document"]


class TestDeleteFlightFlow:
    @pytest.mark.asyncio
    async def test_shows_flight_buttons(self):
        from flightlog.bot.telegram_bot import _flight_key, cmd_deleteflight

        stores = _make_stores([FlightRecord(id="abc", aircraft="AW139")])
        update = _make_update()
        await cmd_deleteflight(update, _make_context(stores))
        markup = update.message.reply_text.await_args.kwargs["reply_markup"]
        assert markup.inline_keyboard[0][0].callback_data == f"delflight:{_flight_key('abc')}"

    @pytest.mark.asyncio
    async def test_long_ids_fit_callback_limit(self):
        from flightlog.bot.telegram_bot import cmd_deleteflight

        long_id = "imported-" + "x" * 120
        stores = _make_stores([FlightRecord(id=long_id)])
        update = _make_update()
        await cmd_deleteflight(update, _make_context(stores))
        markup = update.message.reply_text.await_args.kwargs["reply_markup"]
        assert len(markup.inline_keyboard[0][0].callback_data.encode("utf-8")) <= 64

    @pytest.mark.asyncio
    async def test_callback_deletes(self):
        from flightlog.bot.telegram_bot import _flight_key, _handle_deleteflight_callback

        long_id = "imported-" + "x" * 120
        stores = _make_stores([FlightRecord(id="abc"), FlightRecord(id=long_id)])
        context = _make_context(stores)
        update = _make_callback_update(f"delflight:{_flight_key(long_id)}")
        await _handle_deleteflight_callback(update, context)
        stores.flights.remove.assert_awaited_once_with(long_id)
        update.callback_query.edit_message_text.assert_awaited_once_with("Flight deleted.")

    @pytest.mark.asyncio
    async def test_callback_for_vanished_flight(self):
        from flightlog.bot.telegram_bot import _flight_key, _handle_deleteflight_callback

        stores = _make_stores([FlightRecord(id="abc")])
        update = _make_callback_update(f"delflight:{_flight_key('gone')}")
        await _handle_deleteflight_callback(update, _make_context(stores))
        stores.flights.remove.assert_not_awaited()
        assert "no longer" in update.callback_query.edit_message_text.await_args[0][0]


# ---------------------------------------------------------------------------
# Import flow
# ---------------------------------------------------------------------------


class TestImportFlow:
    @pytest.mark.asyncio
    async def test_collision_prompt_parks_batch(self):
        from flightlog.bot.telegram_bot import handle_document

        stores = _make_stores([FlightRecord(id="1", aircraft="Cessna")])
        context = _make_context(stores)
        tg_file = MagicMock()
        tg_file.download_as_bytearray = AsyncMock(return_value=bytearray(b"id,aircraft\n1,Piper\n"))
        context.bot.get_file = AsyncMock(return_value=tg_file)

        update = _make_update()
        update.message.document.file_name = "flights.csv"
        await handle_document(update, context)

        pending = context.user_data["pending_import"]
        assert pending.collisions == ["1"]
        markup = update.message.reply_text.await_args.kwargs["reply_markup"]
        assert [b.callback_data for b in markup.inline_keyboard[0]] == [
            "importconfirm:yes", "importconfirm:no",
        ]
        stores.flights.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirm_yes_overwrites(self):
        from flightlog.bot.telegram_bot import _handle_import_confirm_callback

        stores = _make_stores([FlightRecord(id="1", aircraft="Cessna")])
        context = _make_context(stores)
        context.user_data["pending_import"] = PendingImport(
            rows=[{"id": "1", "aircraft": "Piper"}], collisions=["1"],
        )
        update = _make_callback_update("importconfirm:yes")
        await _handle_import_confirm_callback(update, context)
        assert context.user_data["session"].flights[0].aircraft == "Piper"
        assert "pending_import" not in context.user_data

    @pytest.mark.asyncio
    async def test_confirm_no_keeps_existing(self):
        from flightlog.bot.telegram_bot import _handle_import_confirm_callback

        stores = _make_stores([FlightRecord(id="1", aircraft="Cessna")])
        context = _make_context(stores)
        context.user_data["pending_import"] = PendingImport(
            rows=[{"id": "1", "aircraft": "Piper"}], collisions=["1"],
        )
        update = _make_callback_update("importconfirm:no")
        await _handle_import_confirm_callback(update, context)
        assert context.user_data["session"].flights[0].aircraft == "Cessna"
        stores.flights.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_import(self):
        from flightlog.bot.telegram_bot import _handle_import_confirm_callback

        update = _make_callback_update("importconfirm:yes")
        await _handle_import_confirm_callback(update, _make_context())
        assert "expired" in update.callback_query.edit_message_text.await_args[0][0]


# ---------------------------------------------------------------------------
# Reminder dismiss
# ---------------------------------------------------------------------------


class TestDismissCallback:
    def test_markup_carries_flight_day(self):
        from flightlog.bot.telegram_bot import _dismiss_markup
        from flightlog.data.models import Reminder

        markup = _dismiss_markup([Reminder(id="r1", date="2025-11-08T09:30:00")])
        assert markup.inline_keyboard[0][0].callback_data == "dismiss:2025-11-08"

    @pytest.mark.asyncio
    async def test_marks_that_days_reminders_seen(self):
        from flightlog.bot.telegram_bot import _handle_dismiss_callback
        from flightlog.data.models import Reminder

        stores = _make_stores()
        stores.reminders.list_all.return_value = [
            Reminder(id="r1", date="2025-11-08T09:30:00"),
            Reminder(id="r2", date="2025-11-09T09:30:00"),
        ]
        context = _make_context(stores)
        update = _make_callback_update("dismiss:2025-11-08")
        update.callback_query.edit_message_reply_markup = AsyncMock()
        update.callback_query.message.reply_text = AsyncMock()

        await _handle_dismiss_callback(update, context)

        stores.reminders.upsert.assert_awaited_once()
        saved = stores.reminders.upsert.await_args[0][0]
        assert saved.id == "r1"
        assert saved.seen is True
        update.callback_query.edit_message_reply_markup.assert_awaited_once()
        update.callback_query.message.reply_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nothing_to_dismiss_is_reported(self):
        from flightlog.bot.telegram_bot import _handle_dismiss_callback
        from flightlog.data.models import Reminder

        stores = _make_stores()
        stores.reminders.list_all.return_value = [
            Reminder(id="r1", date="2025-11-08T09:30:00", seen=True),
        ]
        update = _make_callback_update("dismiss:2025-11-08")
        update.callback_query.edit_message_reply_markup = AsyncMock()
        update.callback_query.message.reply_text = AsyncMock()

        await _handle_dismiss_callback(update, _make_context(stores))

        stores.reminders.upsert.assert_not_awaited()
        assert "Nothing left" in update.callback_query.message.reply_text.await_args[0][0]
