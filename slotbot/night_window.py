from __future__ import annotations

import datetime as dt

from slotbot.domain import SlotSourceDescriptor

NIGHT_STARTS_AT_HOUR = 23
NIGHT_ENDS_AT_HOUR = 7  # inclusive: 07:59 is still night


def is_night(descriptor: SlotSourceDescriptor, now: dt.datetime | None = None) -> bool:
    """True between 23:00 and 07:59 local time of the watched site."""
    if now is None:
        now = dt.datetime.now(dt.timezone.utc)
    hour = now.astimezone(descriptor.zone).hour
    return hour >= NIGHT_STARTS_AT_HOUR or hour <= NIGHT_ENDS_AT_HOUR
