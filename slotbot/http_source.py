from __future__ import annotations

import datetime as dt
from typing import Any

import httpx

from slotbot.domain import Slot, SlotSourceDescriptor, SourceFormatChanged, SourceUnavailable


def _parse_slot(raw: Any, descriptor: SlotSourceDescriptor) -> Slot:
    if not isinstance(raw, dict):
        raise SourceFormatChanged(f"Unexpected slot item: {raw!r}")
    try:
        date_time = dt.datetime.fromisoformat(str(raw["datetime"]))
    except (KeyError, ValueError) as e:
        raise SourceFormatChanged(f"Slot without a valid datetime: {raw!r}") from e

    if date_time.tzinfo is None:
        # Фид отдаёт локальное время сайта.
        date_time = date_time.replace(tzinfo=descriptor.zone)

    return Slot(date_time=date_time, description=str(raw.get("description", "")).strip())


class HttpSlotSource:
    """Reads available slots from a JSON feed at ``descriptor.base_url``.

    Expected payload::

        {"slots": [{"datetime": "2025-01-01T10:30:00", "description": "Passport"}]}
    """

    def __init__(self, *, timeout_seconds: float = 20.0, transport: httpx.BaseTransport | None = None) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def fetch_available_slots(self, descriptor: SlotSourceDescriptor) -> list[Slot]:
        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                r = client.get(descriptor.base_url, headers={"Accept": "application/json"})
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"{descriptor.base_url} is unavailable ({type(e).__name__}: {e})") from e

        try:
            data = r.json()
        except ValueError as e:
            raise SourceFormatChanged(f"{descriptor.base_url} returned non-JSON content") from e

        if not isinstance(data, dict) or not isinstance(data.get("slots"), list):
            raise SourceFormatChanged(f"{descriptor.base_url} returned unexpected payload without 'slots' list")

        return sorted(_parse_slot(item, descriptor) for item in data["slots"])
