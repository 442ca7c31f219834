"""
Pilot Logbook: Telegram Bot.

Telegram is the logbook's user interface. Pilots log flights, read their
statistics, manage saved aircraft and reminders, and import/export records
through this bot.

Each Telegram user gets a LogbookSession kept in context.user_data; the
session is loaded from the store on first use and updated by the service
only after a successful write.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import hashlib
from datetime import date
from datetime import time as dt_time
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
    Update,
)
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from flightlog.bot.formatting import (
    format_flights,
    format_reminders,
    format_summary,
    md,
)
from flightlog.config import settings
from flightlog.core.logbook_service import (
    CollisionPromptResponse,
    ExportResponse,
    LogbookService,
    LogbookSession,
    ResponseKind,
    ServiceResponse,
    StatsResponse,
)
from flightlog.core.normalizer import parse_hours, parse_timestamp

if TYPE_CHECKING:
    from flightlog.data.models import Reminder
    from flightlog.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, Any]],
) -> Callable[..., Coroutine[Any, Any, Any]]:
    """Decorator that silently ignores updates from unauthorized users.

    Does NOT send any response to strangers: the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return None  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


def _service(context: ContextTypes.DEFAULT_TYPE) -> LogbookService:
    return context.bot_data["service"]


async def _get_session(
    update: Update, context: ContextTypes.DEFAULT_TYPE,
) -> LogbookSession | None:
    """Return the user's loaded session, loading it on first use.

    Replies with the error and returns None when the store can't be read.
    """
    session: LogbookSession | None = context.user_data.get("session")
    if session is not None and session.loaded:
        return session

    service = _service(context)
    session = service.open_session(update.effective_user.id)
    response = await service.load(session)
    if not session.loaded:
        await update.effective_message.reply_text(response.message)
        return None
    context.user_data["session"] = session
    return session


def _split_args(text: str) -> list[str]:
    """Split '; '-separated command arguments, keeping empty slots."""
    return [part.strip() for part in text.split(";")]


# ---------------------------------------------------------------------------
# Basic commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start: welcome message."""
    await update.message.reply_text(
        "Welcome to your *Pilot Logbook*!\n\n"
        "• Use /addflight to log a flight\n"
        "• Use /stats to see your weekly, monthly and total hours\n"
        "• Use /remind to get a notice the day before a flight\n"
        "• Send me a CSV or JSON file to import records\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help: list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/addflight: Log a flight step by step\n"
        "/flights: List logged flights\n"
        "/deleteflight: Delete a flight\n"
        "/moveflight <id> <YYYY-MM-DD HH:MM>: Move a flight to another date\n"
        "/stats: Flight hour statistics\n"
        "/aircraft: List saved aircraft\n"
        "/addaircraft <name>: Save an aircraft\n"
        "/deleteaircraft <name>: Remove a saved aircraft\n"
        "/remind <YYYY-MM-DD HH:MM> <aircraft>; <crew>; <note>: Add a reminder\n"
        "/reminders: List reminders\n"
        "/deletereminder <id>: Delete a reminder\n"
        "/export [csv|json]: Download all flights\n"
        "/clear: Delete all flights\n"
        "Send a .csv or .json file to import flights.\n"
        "/help: Show this message",
        parse_mode="Markdown",
    )


# ---------------------------------------------------------------------------
# /addflight conversation
# ---------------------------------------------------------------------------

(
    FLIGHT_AIRCRAFT,
    FLIGHT_CREW,
    FLIGHT_DURATION,
    FLIGHT_ROUTE,
    FLIGHT_DATE,
    FLIGHT_TYPE,
    FLIGHT_TIME,
    FLIGHT_NOTE,
) = range(8)

_TYPE_KEYBOARD = [["Training", "Check", "VIP"], ["Medical", "Rescue", "Operation"]]
_TIME_KEYBOARD = [["Day", "Night", "Night (NVG)"]]
_SKIP = ("-", "skip")


def _parse_route(text: str) -> tuple[str, str] | None:
    """Parse 'LTBA-LTAC', 'LTBA > LTAC' or 'LTBA LTAC' into (departure, arrival)."""
    for sep in ("->", ">", "-", "–", " "):
        if sep in text:
            dep, arr = text.split(sep, 1)
            dep, arr = dep.strip(), arr.strip()
            if dep and arr:
                return dep, arr
    return None


def _clear_flight_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    context.user_data.pop("new_flight", None)


@authorized_only
async def cmd_addflight(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /addflight: start flight logging conversation."""
    session = await _get_session(update, context)
    if session is None:
        return ConversationHandler.END

    context.user_data["new_flight"] = {}
    reply_markup = ReplyKeyboardRemove()
    if session.aircraft:
        rows = [session.aircraft[i:i + 3] for i in range(0, len(session.aircraft), 3)]
        reply_markup = ReplyKeyboardMarkup(rows, one_time_keyboard=True, resize_keyboard=True)
    await update.message.reply_text(
        "Which aircraft? Pick a saved one or type the name.",
        reply_markup=reply_markup,
    )
    return FLIGHT_AIRCRAFT


async def addflight_aircraft(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["new_flight"]["aircraft"] = update.message.text.strip()
    await update.message.reply_text(
        "Who flew? Comma-separated crew names.", reply_markup=ReplyKeyboardRemove(),
    )
    return FLIGHT_CREW


async def addflight_crew(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["new_flight"]["crew"] = update.message.text.strip()
    await update.message.reply_text("Flight duration in hours? (e.g. 1.5)")
    return FLIGHT_DURATION


async def addflight_duration(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive duration; re-ask on anything that isn't a non-negative number."""
    value, ok = parse_hours(update.message.text)
    if not ok:
        await update.message.reply_text("Please enter the duration as a number of hours (e.g. 1.5).")
        return FLIGHT_DURATION
    context.user_data["new_flight"]["duration_hours"] = value
    await update.message.reply_text("Route? Departure and arrival, e.g. 'LTBA-LTAC'.")
    return FLIGHT_ROUTE


async def addflight_route(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    route = _parse_route(update.message.text.strip())
    if route is None:
        await update.message.reply_text("Please send departure and arrival, e.g. 'LTBA-LTAC'.")
        return FLIGHT_ROUTE
    flight = context.user_data["new_flight"]
    flight["departure"], flight["arrival"] = route
    await update.message.reply_text("Date and time? Format: YYYY-MM-DD HH:MM")
    return FLIGHT_DATE


async def addflight_date(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    text = update.message.text.strip()
    _, ok = parse_timestamp(text)
    if not ok:
        await update.message.reply_text("I couldn't read that date. Format: YYYY-MM-DD HH:MM")
        return FLIGHT_DATE
    context.user_data["new_flight"]["date"] = text
    await update.message.reply_text(
        "Flight type?",
        reply_markup=ReplyKeyboardMarkup(_TYPE_KEYBOARD, one_time_keyboard=True, resize_keyboard=True),
    )
    return FLIGHT_TYPE


async def addflight_type(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["new_flight"]["flight_type"] = update.message.text.strip()
    await update.message.reply_text(
        "Day or night?",
        reply_markup=ReplyKeyboardMarkup(_TIME_KEYBOARD, one_time_keyboard=True, resize_keyboard=True),
    )
    return FLIGHT_TIME


async def addflight_time(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    text = update.message.text.strip().lower()
    flight = context.user_data["new_flight"]
    flight["night_vision"] = "nvg" in text
    flight["flight_time"] = "night" if text.startswith("night") else text
    await update.message.reply_text(
        "Any note? Send '-' to skip.", reply_markup=ReplyKeyboardRemove(),
    )
    return FLIGHT_NOTE


async def addflight_note(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive the note and save the flight."""
    text = update.message.text.strip()
    flight = context.user_data.get("new_flight", {})
    flight["note"] = "" if text.lower() in _SKIP else text

    session = await _get_session(update, context)
    if session is None:
        _clear_flight_data(context)
        return ConversationHandler.END

    response = await _service(context).save_flight(session, flight)
    prefix = "✅ " if response.kind == ResponseKind.SUCCESS else ""
    await update.message.reply_text(prefix + response.message)
    _clear_flight_data(context)
    return ConversationHandler.END


async def addflight_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    _clear_flight_data(context)
    await update.message.reply_text(
        "Flight logging cancelled.", reply_markup=ReplyKeyboardRemove(),
    )
    return ConversationHandler.END


# ---------------------------------------------------------------------------
# Flight commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_flights(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /flights: list logged flights."""
    session = await _get_session(update, context)
    if session is None:
        return
    await update.message.reply_text(format_flights(session.flights), parse_mode="Markdown")


def _flight_key(record_id: str) -> str:
    """Short stable key for callback data (Telegram caps it at 64 bytes)."""
    return hashlib.sha1(record_id.encode("utf-8")).hexdigest()[:16]


@authorized_only
async def cmd_deleteflight(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deleteflight: show flights as buttons to pick from."""
    session = await _get_session(update, context)
    if session is None:
        return
    if not session.flights:
        await update.message.reply_text("No flights to delete.")
        return

    keyboard = [
        [InlineKeyboardButton(
            f"{r.date[:10] or '?'} {r.aircraft or '-'} {r.duration_hours:.1f}h",
            callback_data=f"delflight:{_flight_key(r.id)}",
        )]
        for r in session.flights
    ]
    await update.message.reply_text(
        "Which flight do you want to delete?",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


@authorized_only
async def _handle_deleteflight_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE,
) -> None:
    """Handle the inline button tap to delete a flight."""
    query = update.callback_query
    await query.answer()

    session = await _get_session(update, context)
    if session is None:
        return

    key = query.data.split(":", 1)[1]
    record = next((r for r in session.flights if _flight_key(r.id) == key), None)
    if record is None:
        await query.edit_message_text("That flight is no longer in the logbook.")
        return
    response = await _service(context).delete_flight(session, record.id)
    await query.edit_message_text(response.message)


@authorized_only
async def cmd_moveflight(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /moveflight <id> <YYYY-MM-DD HH:MM>."""
    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text(
            "Usage: /moveflight <id> <YYYY-MM-DD HH:MM>\nUse /flights to see IDs."
        )
        return

    new_date = " ".join(args[1:])
    if not parse_timestamp(new_date)[1]:
        await update.message.reply_text("I couldn't read that date. Format: YYYY-MM-DD HH:MM")
        return

    session = await _get_session(update, context)
    if session is None:
        return
    response = await _service(context).move_flight(session, args[0], new_date)
    await update.message.reply_text(response.message)


@authorized_only
async def cmd_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats: weekly/monthly/total hours and grouped sums."""
    session = await _get_session(update, context)
    if session is None:
        return
    response: StatsResponse = _service(context).statistics(session)
    await update.message.reply_text(format_summary(response.summary), parse_mode="Markdown")


@authorized_only
async def cmd_clear(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clear: ask before deleting every flight."""
    keyboard = [[
        InlineKeyboardButton("Yes, delete all", callback_data="clear:yes"),
        InlineKeyboardButton("No", callback_data="clear:no"),
    ]]
    await update.message.reply_text(
        "Delete ALL logged flights? This cannot be undone.",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


@authorized_only
async def _handle_clear_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    if query.data != "clear:yes":
        await query.edit_message_text("Nothing was deleted.")
        return

    session = await _get_session(update, context)
    if session is None:
        return
    response = await _service(context).clear_flights(session)
    await query.edit_message_text(response.message)


# ---------------------------------------------------------------------------
# Aircraft commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_aircraft(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = await _get_session(update, context)
    if session is None:
        return
    if not session.aircraft:
        await update.message.reply_text("No saved aircraft. Use /addaircraft <name>.")
        return
    lines = ["*Saved aircraft:*\n"] + [f"• {md(name)}" for name in session.aircraft]
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_addaircraft(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    name = " ".join(context.args or []).strip()
    if not name:
        await update.message.reply_text("Usage: /addaircraft <name>")
        return
    session = await _get_session(update, context)
    if session is None:
        return
    response = await _service(context).add_aircraft(session, name)
    await update.message.reply_text(response.message)


@authorized_only
async def cmd_deleteaircraft(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    name = " ".join(context.args or []).strip()
    if not name:
        await update.message.reply_text("Usage: /deleteaircraft <name>")
        return
    session = await _get_session(update, context)
    if session is None:
        return
    response = await _service(context).delete_aircraft(session, name)
    await update.message.reply_text(response.message)


# ---------------------------------------------------------------------------
# Reminder commands
# ---------------------------------------------------------------------------


def _parse_remind_args(args: list[str]) -> dict | None:
    """Parse '/remind 2025-11-08 09:30 Bell 412; A. Yilmaz; bring charts'.

    The first two words are date and time; the rest is split on ';' into
    aircraft, crew and note. Returns None without a date.
    """
    if len(args) < 2:
        return None
    when = f"{args[0]} {args[1]}"
    if not parse_timestamp(when)[1]:
        return None
    rest = _split_args(" ".join(args[2:])) + ["", "", ""]
    return {"date": when, "aircraft": rest[0], "crew": rest[1], "note": rest[2]}


@authorized_only
async def cmd_remind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /remind <YYYY-MM-DD HH:MM> <aircraft>; <crew>; <note>."""
    raw = _parse_remind_args(context.args or [])
    if raw is None:
        await update.message.reply_text(
            "Please select date & time.\n"
            "Usage: /remind <YYYY-MM-DD HH:MM> <aircraft>; <crew>; <note>"
        )
        return
    session = await _get_session(update, context)
    if session is None:
        return
    response = await _service(context).add_reminder(session, raw)
    prefix = "⏰ " if response.kind == ResponseKind.SUCCESS else ""
    await update.message.reply_text(prefix + response.message)


@authorized_only
async def cmd_reminders(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = await _get_session(update, context)
    if session is None:
        return
    reminders = _service(context).list_reminders(session)
    await update.message.reply_text(format_reminders(reminders), parse_mode="Markdown")


@authorized_only
async def cmd_deletereminder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /deletereminder <id>\nUse /reminders to see IDs.")
        return
    session = await _get_session(update, context)
    if session is None:
        return
    response = await _service(context).delete_reminder(session, args[0])
    await update.message.reply_text(response.message)


def _dismiss_markup(reminders: list[Reminder]) -> InlineKeyboardMarkup:
    # The button carries the flight day, so a late tap still targets it
    when, _ = parse_timestamp(reminders[0].date, ZoneInfo(settings.TIMEZONE))
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("Dismiss", callback_data=f"dismiss:{when.date().isoformat()}")]]
    )


@authorized_only
async def _handle_dismiss_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Mark the notified day's reminders as seen."""
    query = update.callback_query
    await query.answer()

    session = await _get_session(update, context)
    if session is None:
        return
    try:
        day = date.fromisoformat(query.data.split(":", 1)[1])
    except ValueError:
        await query.edit_message_reply_markup(reply_markup=None)
        return

    service = _service(context)
    due = service.reminders_on(session, day)
    await query.edit_message_reply_markup(reply_markup=None)
    if not due:
        await query.message.reply_text("Nothing left to dismiss for that day.")
        return
    response = await service.dismiss_reminders(session, [r.id for r in due])
    if response.kind != ResponseKind.SUCCESS:
        await query.message.reply_text(response.message)


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_export(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export [csv|json]: send all flights as a file."""
    fmt = (context.args or ["csv"])[0]
    session = await _get_session(update, context)
    if session is None:
        return
    response = _service(context).export(session, fmt)
    if not isinstance(response, ExportResponse):
        await update.message.reply_text(response.message)
        return
    await update.message.reply_document(
        document=response.content,
        filename=response.filename,
        caption=response.message,
    )


async def _reply_import_result(
    message: Any, response: ServiceResponse, context: ContextTypes.DEFAULT_TYPE,
) -> None:
    """Render an import response; a collision prompt parks the batch in user_data."""
    if isinstance(response, CollisionPromptResponse):
        context.user_data["pending_import"] = response.pending
        keyboard = [[
            InlineKeyboardButton("Yes, overwrite", callback_data="importconfirm:yes"),
            InlineKeyboardButton("No, keep mine", callback_data="importconfirm:no"),
        ]]
        await message.reply_text(response.message, reply_markup=InlineKeyboardMarkup(keyboard))
        return
    await message.reply_text(response.message)


@authorized_only
async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle an uploaded CSV/JSON file: import its flights."""
    document = update.message.document
    session = await _get_session(update, context)
    if session is None:
        return

    try:
        tg_file = await context.bot.get_file(document.file_id)
        content = bytes(await tg_file.download_as_bytearray())
    except Exception as exc:
        logger.error("Import download error: %s", exc)
        await update.message.reply_text("Couldn't download the file. Please try again.")
        return

    logger.info("Import file received: %s (%d bytes)", document.file_name, len(content))
    response = await _service(context).import_file(
        session, document.file_name or "import.csv", content,
    )
    await _reply_import_result(update.message, response, context)


@authorized_only
async def _handle_import_confirm_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE,
) -> None:
    """Apply the user's overwrite decision to the parked import batch."""
    query = update.callback_query
    await query.answer()

    pending = context.user_data.pop("pending_import", None)
    if pending is None:
        await query.edit_message_text("This import has expired. Please send the file again.")
        return

    session = await _get_session(update, context)
    if session is None:
        return

    overwrite = query.data == "importconfirm:yes"
    response = await _service(context).import_rows(session, pending.rows, overwrite=overwrite)
    await query.edit_message_text(response.message)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    service: LogbookService | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        service: Logbook service. Defaults to one over the configured
                 STORAGE_BACKEND in the configured TIMEZONE.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if service is None:
        service = LogbookService(tz=ZoneInfo(settings.TIMEZONE))

    if notifier is None:
        from flightlog.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["service"] = service
    app.bot_data["notifier"] = notifier

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("flights", cmd_flights))
    app.add_handler(CommandHandler("deleteflight", cmd_deleteflight))
    app.add_handler(CommandHandler("moveflight", cmd_moveflight))
    app.add_handler(CommandHandler("stats", cmd_stats))
    app.add_handler(CommandHandler("clear", cmd_clear))
    app.add_handler(CommandHandler("aircraft", cmd_aircraft))
    app.add_handler(CommandHandler("addaircraft", cmd_addaircraft))
    app.add_handler(CommandHandler("deleteaircraft", cmd_deleteaircraft))
    app.add_handler(CommandHandler("remind", cmd_remind))
    app.add_handler(CommandHandler("reminders", cmd_reminders))
    app.add_handler(CommandHandler("deletereminder", cmd_deletereminder))
    app.add_handler(CommandHandler("export", cmd_export))
    app.add_handler(CallbackQueryHandler(_handle_deleteflight_callback, pattern=r"^delflight:"))
    app.add_handler(CallbackQueryHandler(_handle_clear_callback, pattern=r"^clear:(yes|no)$"))
    app.add_handler(CallbackQueryHandler(_handle_dismiss_callback, pattern=r"^dismiss:"))
    app.add_handler(
        CallbackQueryHandler(_handle_import_confirm_callback, pattern=r"^importconfirm:(yes|no)$")
    )

    # /addflight conversation handler
    _text = filters.TEXT & ~filters.COMMAND
    addflight_conv = ConversationHandler(
        entry_points=[CommandHandler("addflight", cmd_addflight)],
        states={
            FLIGHT_AIRCRAFT: [MessageHandler(_text, addflight_aircraft)],
            FLIGHT_CREW: [MessageHandler(_text, addflight_crew)],
            FLIGHT_DURATION: [MessageHandler(_text, addflight_duration)],
            FLIGHT_ROUTE: [MessageHandler(_text, addflight_route)],
            FLIGHT_DATE: [MessageHandler(_text, addflight_date)],
            FLIGHT_TYPE: [MessageHandler(_text, addflight_type)],
            FLIGHT_TIME: [MessageHandler(_text, addflight_time)],
            FLIGHT_NOTE: [MessageHandler(_text, addflight_note)],
        },
        fallbacks=[CommandHandler("cancel", addflight_cancel)],
    )
    app.add_handler(addflight_conv)

    # Uploaded files: import
    app.add_handler(MessageHandler(filters.Document.ALL, handle_document))

    _setup_reminder_push(app, service, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_reminder_push(
    app: Application,
    service: LogbookService,
    notifier: NotificationPort,
) -> None:
    """Register the daily "flight tomorrow" push at REMINDER_CHECK_HOUR."""
    from flightlog.core.scheduler import send_reminder_notices

    tz = ZoneInfo(settings.TIMEZONE)
    push_time = dt_time(hour=settings.REMINDER_CHECK_HOUR, minute=0, tzinfo=tz)

    async def _reminder_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_reminder_notices(
            notifier, service, settings.ALLOWED_USER_IDS,
            dismiss_markup=_dismiss_markup,
            escape=md,
        )

    app.job_queue.run_daily(
        _reminder_job_callback,
        time=push_time,
        name="reminder_push",
    )

    logger.info(
        "Reminder push scheduled at %02d:00 %s",
        settings.REMINDER_CHECK_HOUR,
        settings.TIMEZONE,
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Pilot Logbook bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
