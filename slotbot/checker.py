from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from slotbot.domain import MessageChannel, Slot, SlotSource, SlotSourceDescriptor, SourceUnavailable, TransportError
from slotbot.history import HistoryLog
from slotbot.night_window import is_night

logger = logging.getLogger(__name__)

SLOT_DATETIME_FORMAT = "%Y.%m.%d %I:%M"


def _short_exc_text(exc: BaseException) -> str:
    # Без стектрейса: только тип и сообщение.
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def format_slots(slots: Iterable[Slot], descriptor: SlotSourceDescriptor) -> str:
    zone = descriptor.zone
    return "\n".join(
        f"* {s.date_time.astimezone(zone).strftime(SLOT_DATETIME_FORMAT)} {s.description}" for s in slots
    )


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    return _short_exc_text(exc)


def _log_after_attempt(retry_state: RetryCallState) -> None:
    # after вызывается в конце каждой неуспешной попытки
    reason = _short_exc(retry_state)
    logger.warning("Fetch attempt %s failed (%s)", retry_state.attempt_number, reason or "unknown error")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    if sleep_seconds is None:
        logger.info("Retrying fetch (attempt %s)", retry_state.attempt_number + 1)
        return
    logger.info("Retrying fetch in %.0f sec. (attempt %s)", sleep_seconds, retry_state.attempt_number + 1)


class SlotChecker:
    """Scheduled slot check for one watched site.

    Two entry points are driven by separate cron cadences. Each one gates itself
    on the site's night window, so only one of them does real work at a time of
    day. Every check that reaches the source is recorded in ``history``.
    """

    def __init__(
        self,
        *,
        source: SlotSource,
        channel: MessageChannel,
        history: HistoryLog,
        descriptor: SlotSourceDescriptor,
        subscriber_chat_ids: Sequence[str],
        admin_chat_id: str | None = None,
        retry_attempts: int = 2,
        retry_wait: wait_base | None = None,
        night_predicate: Callable[[SlotSourceDescriptor], bool] = is_night,
    ) -> None:
        self._source = source
        self._channel = channel
        self._history = history
        self._descriptor = descriptor
        self._subscriber_chat_ids = tuple(subscriber_chat_ids)
        self._admin_chat_id = admin_chat_id
        self._retry_attempts = retry_attempts
        self._retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=2, min=2, max=4)
        self._is_night = night_predicate

    @property
    def descriptor(self) -> SlotSourceDescriptor:
        return self._descriptor

    def run_day_check(self) -> None:
        logger.debug("Started a day check")
        if self._is_night(self._descriptor):
            logger.debug("Stopped day check, because it's a night at %s", self._descriptor.base_url)
            return
        self._check()

    def run_night_check(self) -> None:
        logger.debug("Started a night check")
        if not self._is_night(self._descriptor):
            logger.debug("Stopped night check, because it's a day at %s", self._descriptor.base_url)
            return
        self._check()

    def run_scheduled_check(self) -> None:
        """Run a check now, whichever window it falls in."""
        logger.debug("Started a %s check", "night" if self._is_night(self._descriptor) else "day")
        self._check()

    def _fetch_with_retry(self) -> list[Slot]:
        decorated = retry(
            stop=stop_after_attempt(self._retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(SourceUnavailable),
            after=_log_after_attempt,
            before_sleep=_log_before_sleep,
            reraise=True,
        )(self._source.fetch_available_slots)

        return decorated(self._descriptor)

    def _check(self) -> None:
        logger.info("Started finding available slots for %s", self._descriptor.base_url)

        try:
            slots = self._fetch_with_retry()
        except Exception as e:
            # Стектрейс не логируем: планировщик получит исключение и залогирует его сам.
            logger.error("Check failed (%s)", _short_exc_text(e))
            self._history.record_failure(_short_exc_text(e))
            self._notify_admin(f"Slot check failed.\nReason: {_short_exc_text(e)}\nLink: {self._descriptor.base_url}")
            raise

        logger.info("Found %d available slots", len(slots))
        if slots:
            text = f"Found available slots on {self._descriptor.base_url} !!!\n{format_slots(slots, self._descriptor)}"
            self._broadcast(text)

        self._history.record_success(f"Found {len(slots)} slots")

    def _broadcast(self, text: str) -> None:
        for chat_id in self._subscriber_chat_ids:
            try:
                self._channel.send(chat_id, text)
            except TransportError as e:
                # Best-effort: don't stop sending to other chat_ids.
                logger.warning("Failed to notify chat_id=%s (%s)", chat_id, e)

    def _notify_admin(self, text: str) -> None:
        if self._admin_chat_id is None:
            return
        try:
            self._channel.send(self._admin_chat_id, text)
        except TransportError:
            logger.warning("Failed to send failure notice to admin chat", exc_info=True)
