from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv


def _parse_chat_id(name: str, raw: str) -> str:
    # Telegram allows numeric IDs; groups/supergroups can be negative.
    try:
        int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer chat id.") from e

    if raw == "0":
        raise RuntimeError(f"Invalid {name} value: '0' is not a valid chat id")
    return raw


def _parse_telegram_chat_ids(raw: str) -> tuple[str, ...]:
    # TELEGRAM_CHAT_ID supports a single value or a comma-separated list.
    # Examples:
    #   TELEGRAM_CHAT_ID=123456789
    #   TELEGRAM_CHAT_ID=123456789,-1001234567890
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        _parse_chat_id("TELEGRAM_CHAT_ID", p)
        if p in seen:
            continue
        seen.add(p)
        result.append(p)

    if not result:
        raise RuntimeError("TELEGRAM_CHAT_ID is empty. Provide at least one chat id.")

    return tuple(result)


def _parse_flag(raw: str) -> bool:
    return raw.strip().lower() not in {"0", "false", "no"}


def _int_env(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer.") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


def _timezone_env(name: str, default: str) -> str:
    value = os.getenv(name, default).strip()
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise RuntimeError(f"Invalid {name} value: {value!r}. Expected IANA time zone.") from e
    return value


def _cron_env(name: str, default: str) -> str:
    value = os.getenv(name, default).strip()
    try:
        CronTrigger.from_crontab(value, timezone="UTC")
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {value!r} ({e})") from e
    return value


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_chat_ids: tuple[str, ...]

    slot_source_url: str
    slot_source_timezone: str = "Europe/Amsterdam"

    telegram_admin_chat_id: str | None = None

    # Update loop (/start, /log, /ping). Can be turned off entirely.
    telegram_updates_enabled: bool = True
    telegram_long_poll_timeout_seconds: int = 30

    # Cadences are evaluated in the site's time zone.
    day_cron: str = "*/10 * * * *"
    night_cron: str = "0 * * * *"

    history_capacity: int = 100

    # How many times a single check may hit the source before it counts as failed.
    check_retry_attempts: int = 2
    source_timeout_seconds: int = 20

    log_level: str = "INFO"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    admin_raw = (os.getenv("TELEGRAM_ADMIN_CHAT_ID") or "").strip()
    admin_chat_id = _parse_chat_id("TELEGRAM_ADMIN_CHAT_ID", admin_raw) if admin_raw else None

    return Settings(
        telegram_bot_token=_require("TELEGRAM_BOT_TOKEN"),
        telegram_chat_ids=_parse_telegram_chat_ids(_require("TELEGRAM_CHAT_ID")),
        slot_source_url=_require("SLOT_SOURCE_URL"),
        slot_source_timezone=_timezone_env("SLOT_SOURCE_TIMEZONE", "Europe/Amsterdam"),
        telegram_admin_chat_id=admin_chat_id,
        telegram_updates_enabled=_parse_flag(os.getenv("TELEGRAM_UPDATES_ENABLED", "1")),
        telegram_long_poll_timeout_seconds=_int_env("TELEGRAM_LONG_POLL_TIMEOUT_SECONDS", 30),
        day_cron=_cron_env("DAY_CRON", "*/10 * * * *"),
        night_cron=_cron_env("NIGHT_CRON", "0 * * * *"),
        history_capacity=_int_env("HISTORY_CAPACITY", 100),
        check_retry_attempts=_int_env("CHECK_RETRY_ATTEMPTS", 2),
        source_timeout_seconds=_int_env("SOURCE_TIMEOUT_SECONDS", 20),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
