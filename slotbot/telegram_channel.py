from __future__ import annotations

import logging
from typing import Any

import httpx

from slotbot.domain import IncomingMessage, TransportError, Update, UpdatesResponse

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.telegram.org"

# Сколько сверх long-poll таймаута ждём ответ от Telegram, прежде чем считать запрос зависшим.
_LONG_POLL_READ_MARGIN_SECONDS = 10.0


def _parse_message(raw: Any) -> IncomingMessage | None:
    if not isinstance(raw, dict) or not isinstance(raw.get("chat"), dict):
        return None
    try:
        chat_id = int(raw["chat"]["id"])
    except (KeyError, TypeError, ValueError):
        return None
    text = raw.get("text")
    return IncomingMessage(chat_id=chat_id, text=text if isinstance(text, str) else None)


def _parse_update(raw: Any) -> Update | None:
    # Битый update не должен ломать весь батч: без update_id пропускаем, без сообщения отдаём message=None.
    try:
        update_id = int(raw["update_id"])
    except (KeyError, TypeError, ValueError):
        logger.warning("Skipping update without a valid update_id: %r", raw)
        return None
    return Update(update_id=update_id, message=_parse_message(raw.get("message")))


class TelegramChannel:
    """Telegram Bot API: sendMessage for replies/pushes, getUpdates for inbound commands."""

    def __init__(
        self,
        *,
        bot_token: str,
        timeout_seconds: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._client = httpx.Client(
            base_url=f"{API_BASE_URL}/bot{bot_token}",
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def send(self, chat_id: int | str, text: str) -> None:
        payload = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        try:
            r = self._client.post("/sendMessage", json=payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Failed to send telegram message to chat_id={chat_id} ({type(e).__name__}: {e})") from e

        if not data.get("ok", False):
            raise TransportError(f"Telegram API error: {data}")

    def fetch_updates(self, offset: int | None, timeout_seconds: int) -> UpdatesResponse:
        params: dict[str, Any] = {"timeout": timeout_seconds, "allowed_updates": '["message"]'}
        if offset is not None:
            params["offset"] = offset

        timeout = httpx.Timeout(self._timeout_seconds, read=timeout_seconds + _LONG_POLL_READ_MARGIN_SECONDS)
        try:
            r = self._client.get("/getUpdates", params=params, timeout=timeout)
        except httpx.HTTPError as e:
            raise TransportError(f"getUpdates failed ({type(e).__name__}: {e})") from e

        try:
            data = r.json()
        except ValueError:
            # Не JSON (прокси/балансер). Отдаём как неуспешный ответ, цикл сам решит что делать.
            return UpdatesResponse(ok=False, error_code=r.status_code, description=r.text[:200])

        if not data.get("ok", False):
            return UpdatesResponse(
                ok=False,
                error_code=data.get("error_code", r.status_code),
                description=data.get("description"),
            )

        result = data.get("result")
        if not isinstance(result, list):
            return UpdatesResponse(ok=False, error_code=r.status_code, description=f"Unexpected getUpdates result: {result!r}"[:200])

        parsed = (_parse_update(u) for u in result)
        return UpdatesResponse(ok=True, updates=tuple(u for u in parsed if u is not None))
