from __future__ import annotations

import logging

from slotbot.domain import MessageChannel, TransportError, Update
from slotbot.history import HistoryLog

logger = logging.getLogger(__name__)

# Telegram режет сообщения длиннее 4096 символов; оставляем запас под заголовок и статистику.
TELEGRAM_MESSAGE_LIMIT = 4096
LOG_HISTORY_CHARS = 3900

UNSUPPORTED_TEXT = "Unsupported message. Supported only: /start, /log, /ping"


class CommandDispatcher:
    """Answers /start, /log and /ping sent to the bot by any chat."""

    def __init__(self, *, channel: MessageChannel, history: HistoryLog) -> None:
        self._channel = channel
        self._history = history
        self._handlers = {
            "/start": self._start,
            "/log": self._log,
            "/ping": self._ping,
        }

    def handle(self, update: Update) -> None:
        message = update.message
        if message is None or message.text is None:
            logger.debug("Skipping update %s without a text message", update.update_id)
            return

        handler = self._handlers.get(message.text, self._unsupported)
        handler(message.chat_id)

    def render_log(self) -> str:
        snapshot = self._history.snapshot()
        stats = (
            f"Successful attempts: {snapshot.successful_attempts}/{snapshot.total_attempts} "
            f"({snapshot.success_rate}%)"
        )
        checks = "\n".join(f"* {entry}" for entry in snapshot.entries)
        # Keep the most recent entries.
        trimmed = checks[-LOG_HISTORY_CHARS:]
        return f"Last checks:\n{trimmed}\n\n{stats}"

    def _start(self, chat_id: int) -> None:
        self._reply(chat_id, f"Bot started. Your chat_id is {chat_id}")

    def _ping(self, chat_id: int) -> None:
        self._reply(chat_id, f"Pong. Your chat_id is {chat_id}")

    def _unsupported(self, chat_id: int) -> None:
        self._reply(chat_id, UNSUPPORTED_TEXT)

    def _log(self, chat_id: int) -> None:
        try:
            self._channel.send(chat_id, self.render_log())
        except TransportError as e:
            logger.error("Got an error while sending /log response to chat_id=%s (%s)", chat_id, e)
            self._reply(chat_id, f"Error while sending a response to telegram API: {e}"[:TELEGRAM_MESSAGE_LIMIT])

    def _reply(self, chat_id: int, text: str) -> None:
        try:
            self._channel.send(chat_id, text)
        except TransportError as e:
            logger.error("Got an error while sending a response to chat_id=%s (%s)", chat_id, e)
