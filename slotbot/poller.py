from __future__ import annotations

import logging
import threading
from typing import Callable

from slotbot.domain import MessageChannel, TransportError, Update

logger = logging.getLogger(__name__)

# stop() ждёт поток не дольше long-poll таймаута плюс этот запас.
_JOIN_MARGIN_SECONDS = 15.0


class UpdateCursor:
    """Offset of the next update to ask Telegram for.

    Only the poller thread touches it, so there is no lock.
    """

    def __init__(self) -> None:
        self._offset: int | None = None

    @property
    def offset(self) -> int | None:
        return self._offset

    def advance_past(self, last_update_id: int) -> bool:
        new_offset = last_update_id + 1
        if self._offset is not None and new_offset <= self._offset:
            logger.warning("Ignoring stale update id %s for offset %s", last_update_id, self._offset)
            return False
        self._offset = new_offset
        return True


class UpdatePoller:
    """Background long-poll loop feeding inbound updates to a handler.

    Survives transport failures and failing updates; only ``stop()`` ends it.
    """

    def __init__(
        self,
        *,
        channel: MessageChannel,
        handler: Callable[[Update], None],
        timeout_seconds: int = 30,
        enabled: bool = True,
    ) -> None:
        self._channel = channel
        self._handler = handler
        self._timeout_seconds = timeout_seconds
        self._enabled = enabled
        self._cursor = UpdateCursor()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def cursor(self) -> UpdateCursor:
        return self._cursor

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        if not self._enabled:
            logger.info("Telegram update loop is disabled")
            return

        with self._lock:
            if self.is_running:
                return
            logger.info("Starting getUpdates background loop")
            self._stop_event.clear()
            self._thread = threading.Thread(target=self.run, name="telegram-updates", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        if not self._enabled:
            return

        with self._lock:
            thread = self._thread
            if thread is None:
                return
            logger.info("Cancelling getUpdates background loop")
            self._stop_event.set()
            # Текущий long-poll запрос может дожить до своего таймаута.
            thread.join(timeout=self._timeout_seconds + _JOIN_MARGIN_SECONDS)
            if thread.is_alive():
                logger.warning("getUpdates loop did not stop within timeout; leaving daemon thread behind")
            self._thread = None
            logger.info("Cancelled getUpdates background loop")

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Unexpected error in getUpdates loop (offset=%s)", self._cursor.offset)
            # Yield to other threads and notice stop() promptly.
            if self._stop_event.wait(0):
                break

    def poll_once(self) -> None:
        offset = self._cursor.offset
        logger.debug("Requesting updates (timeout=%ss offset=%s)", self._timeout_seconds, offset)

        try:
            response = self._channel.fetch_updates(offset, self._timeout_seconds)
        except TransportError as e:
            logger.error("getUpdates failed for offset=%s (%s)", offset, e)
            return

        if not response.ok:
            logger.error(
                "getUpdates returned an error for offset=%s: %s %s",
                offset,
                response.error_code,
                response.description,
            )
            return

        for update in response.updates:
            try:
                self._handler(update)
            except Exception:
                logger.exception("Failed to process an update: %s", update)

        if response.updates:
            self._cursor.advance_past(response.updates[-1].update_id)
