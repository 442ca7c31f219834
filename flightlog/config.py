"""
Pilot Logbook: Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from flightlog/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Storage backend: "local" (SQLite) | "supabase"
    STORAGE_BACKEND: str = "local"

    # SQLite (local backend)
    DATABASE_PATH: str = "data/logbook.db"

    # Supabase (only needed when STORAGE_BACKEND=supabase)
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Reminder push: hour of day the "flight tomorrow" notice goes out
    REMINDER_CHECK_HOUR: int = 18
    TIMEZONE: str = "Europe/Istanbul"

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("REMINDER_CHECK_HOUR", mode="before")
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        hour = int(v)
        if not 0 <= hour <= 23:
            raise ValueError(f"REMINDER_CHECK_HOUR out of range: {hour}")
        return hour

    @field_validator("STORAGE_BACKEND", mode="before")
    @classmethod
    def parse_backend(cls, v: str) -> str:
        return (v or "local").strip().lower()


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        STORAGE_BACKEND=os.getenv("STORAGE_BACKEND", "local"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/logbook.db"),
        SUPABASE_URL=os.getenv("SUPABASE_URL", ""),
        SUPABASE_KEY=os.getenv("SUPABASE_KEY", ""),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        REMINDER_CHECK_HOUR=os.getenv("REMINDER_CHECK_HOUR", "18"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Istanbul"),
    )


# Singleton: imported by all other modules as
#   from flightlog.config import settings
settings = _load_settings()
