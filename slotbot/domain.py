from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Protocol
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class SlotSourceDescriptor:
    """A watched site: where to look and which local time it lives in."""

    base_url: str
    timezone: str  # IANA name, e.g. Europe/Amsterdam

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True, order=True)
class Slot:
    """A single available appointment."""

    date_time: dt.datetime
    description: str


@dataclass(frozen=True)
class IncomingMessage:
    chat_id: int
    text: str | None


@dataclass(frozen=True)
class Update:
    update_id: int
    message: IncomingMessage | None = None


@dataclass(frozen=True)
class UpdatesResponse:
    ok: bool
    error_code: int | None = None
    description: str | None = None
    updates: tuple[Update, ...] = field(default_factory=tuple)


class SourceError(RuntimeError):
    """Base class for slot source failures."""


class SourceUnavailable(SourceError):
    """Сайт недоступен или ответил ошибкой; можно повторить позже."""


class SourceFormatChanged(SourceError):
    """Ответ получен, но его структура не похожа на ожидаемую.

    Повтор здесь не поможет, поэтому такие ошибки не ретраим.
    """


class TransportError(RuntimeError):
    """Telegram API не принял запрос (сеть, HTTP-статус или ok=false)."""


class SlotSource(Protocol):
    def fetch_available_slots(self, descriptor: SlotSourceDescriptor) -> list[Slot]: ...


class MessageChannel(Protocol):
    def send(self, chat_id: int | str, text: str) -> None: ...

    def fetch_updates(self, offset: int | None, timeout_seconds: int) -> UpdatesResponse: ...
