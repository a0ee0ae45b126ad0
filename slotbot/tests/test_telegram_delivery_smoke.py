"""Smoke/integration test for Telegram delivery.

ВАЖНО:
- Этот тест обращается в реальный Telegram API.
- По умолчанию тест пропускается.
- Для запуска установите переменные окружения:
    TELEGRAM_BOT_TOKEN
    TELEGRAM_CHAT_ID

Формат TELEGRAM_CHAT_ID:
- один chat id: "123"
- или список через запятую: "123,456" (в smoke-тесте будет использован *первый* id, чтобы не спамить)

Запуск:
$env:TELEGRAM_BOT_TOKEN="123"
$env:TELEGRAM_CHAT_ID="123"
python -m pytest -q -m telegram

"""

from __future__ import annotations

import os

import pytest

from slotbot.telegram_channel import TelegramChannel


pytestmark = pytest.mark.telegram


def _first_chat_id(raw: str) -> str:
    return raw.split(",", 1)[0].strip()


@pytest.mark.skipif(
    not os.getenv("TELEGRAM_BOT_TOKEN") or not os.getenv("TELEGRAM_CHAT_ID"),
    reason="Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID to run Telegram smoke test",
)
def test_telegram_message_delivery_smoke() -> None:
    channel = TelegramChannel(bot_token=os.environ["TELEGRAM_BOT_TOKEN"])
    try:
        channel.send(_first_chat_id(os.environ["TELEGRAM_CHAT_ID"]), "SlotBot: Telegram smoke test (pytest)")
    finally:
        channel.close()


@pytest.mark.skipif(
    not os.getenv("TELEGRAM_BOT_TOKEN"),
    reason="Set TELEGRAM_BOT_TOKEN to run Telegram smoke test",
)
def test_telegram_get_updates_smoke() -> None:
    # timeout=0: короткий опрос без offset, ничего не подтверждает и не "съедает" апдейты.
    channel = TelegramChannel(bot_token=os.environ["TELEGRAM_BOT_TOKEN"])
    try:
        response = channel.fetch_updates(offset=None, timeout_seconds=0)
    finally:
        channel.close()

    # 409: у бота настроен webhook, getUpdates недоступен. Это тоже валидный ответ API.
    assert response.ok or response.error_code == 409
    assert all(u.update_id > 0 for u in response.updates)
