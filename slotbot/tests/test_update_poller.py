from __future__ import annotations

import threading
import time

from slotbot.domain import IncomingMessage, TransportError, Update, UpdatesResponse
from slotbot.poller import UpdateCursor, UpdatePoller
from slotbot.tests.fakes import FakeChannel


def _updates(*ids: int) -> UpdatesResponse:
    return UpdatesResponse(
        ok=True,
        updates=tuple(Update(update_id=i, message=IncomingMessage(chat_id=1, text="/ping")) for i in ids),
    )


def test_cursor_starts_absent_and_moves_forward_only() -> None:
    cursor = UpdateCursor()
    assert cursor.offset is None

    assert cursor.advance_past(7) is True
    assert cursor.offset == 8
    assert cursor.advance_past(5) is False
    assert cursor.offset == 8


def test_cursor_advances_even_if_one_update_fails(channel: FakeChannel) -> None:
    handled: list[int] = []

    def handler(update: Update) -> None:
        if update.update_id == 6:
            raise RuntimeError("bad update")
        handled.append(update.update_id)

    channel.responses.append(_updates(5, 6, 7))
    poller = UpdatePoller(channel=channel, handler=handler)

    poller.poll_once()

    assert handled == [5, 7]
    assert poller.cursor.offset == 8


def test_next_request_uses_advanced_offset(channel: FakeChannel) -> None:
    channel.responses.extend([_updates(5, 6, 7), _updates(8)])
    poller = UpdatePoller(channel=channel, handler=lambda update: None)

    poller.poll_once()
    poller.poll_once()
    poller.poll_once()

    assert channel.offsets == [None, 8, 9]


def test_empty_batch_keeps_cursor(channel: FakeChannel) -> None:
    channel.responses.append(UpdatesResponse(ok=True))
    poller = UpdatePoller(channel=channel, handler=lambda update: None)

    poller.poll_once()

    assert poller.cursor.offset is None


def test_not_ok_response_does_not_advance_or_raise(channel: FakeChannel) -> None:
    channel.responses.extend(
        [
            _updates(1),
            UpdatesResponse(ok=False, error_code=502, description="Bad Gateway"),
            TransportError("connection reset"),
        ]
    )
    poller = UpdatePoller(channel=channel, handler=lambda update: None)

    poller.poll_once()
    poller.poll_once()
    poller.poll_once()

    assert poller.cursor.offset == 2
    assert channel.offsets == [None, 2, 2]


def test_loop_survives_errors_until_stopped(channel: FakeChannel) -> None:
    channel.responses.extend(
        [
            TransportError("network down"),
            ValueError("garbage from the wire"),
            UpdatesResponse(ok=False, error_code=409, description="Conflict"),
            _updates(10),
        ]
    )
    handled: list[int] = []
    drained = threading.Event()

    def on_empty() -> None:
        drained.set()
        time.sleep(0.01)

    channel.on_empty = on_empty
    poller = UpdatePoller(channel=channel, handler=lambda update: handled.append(update.update_id), timeout_seconds=1)

    poller.start()
    poller.start()  # idempotent
    assert drained.wait(timeout=5)
    poller.stop()

    assert not poller.is_running
    assert handled == [10]
    assert poller.cursor.offset == 11
    poller.stop()  # idempotent


def test_disabled_poller_never_starts(channel: FakeChannel) -> None:
    poller = UpdatePoller(channel=channel, handler=lambda update: None, enabled=False)

    poller.start()
    poller.stop()

    assert not poller.is_running
    assert channel.offsets == []
