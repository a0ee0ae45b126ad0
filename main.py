import argparse
import logging
import signal
import threading
from dataclasses import dataclass

from apscheduler.schedulers.background import BackgroundScheduler

from slotbot.checker import SlotChecker
from slotbot.commands import CommandDispatcher
from slotbot.config import Settings, load_settings
from slotbot.domain import SlotSourceDescriptor
from slotbot.history import HistoryLog
from slotbot.http_source import HttpSlotSource
from slotbot.poller import UpdatePoller
from slotbot.scheduler import build_scheduler
from slotbot.telegram_channel import TelegramChannel

logger = logging.getLogger(__name__)


@dataclass
class Components:
    channel: TelegramChannel
    history: HistoryLog
    checker: SlotChecker
    poller: UpdatePoller
    scheduler: BackgroundScheduler


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def build_components(settings: Settings) -> Components:
    channel = TelegramChannel(bot_token=settings.telegram_bot_token)
    history = HistoryLog(capacity=settings.history_capacity)
    checker = SlotChecker(
        source=HttpSlotSource(timeout_seconds=settings.source_timeout_seconds),
        channel=channel,
        history=history,
        descriptor=SlotSourceDescriptor(
            base_url=settings.slot_source_url,
            timezone=settings.slot_source_timezone,
        ),
        subscriber_chat_ids=settings.telegram_chat_ids,
        admin_chat_id=settings.telegram_admin_chat_id,
        retry_attempts=settings.check_retry_attempts,
    )
    dispatcher = CommandDispatcher(channel=channel, history=history)
    poller = UpdatePoller(
        channel=channel,
        handler=dispatcher.handle,
        timeout_seconds=settings.telegram_long_poll_timeout_seconds,
        enabled=settings.telegram_updates_enabled,
    )
    return Components(
        channel=channel,
        history=history,
        checker=checker,
        poller=poller,
        scheduler=build_scheduler(settings, checker),
    )


def _send_status_message(components: Components, settings: Settings, text: str) -> None:
    # Статусные сообщения идут только в админский чат, подписчиков не спамим.
    if settings.telegram_admin_chat_id is None:
        return
    components.channel.send(settings.telegram_admin_chat_id, text)


def _wait_for_shutdown() -> None:
    stop = threading.Event()

    def _on_signal(signum, frame) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)
    stop.wait()


def run_forever(components: Components) -> None:
    components.poller.start()
    components.scheduler.start()
    logger.info("Scheduler started: %s", ", ".join(job.name for job in components.scheduler.get_jobs()))
    try:
        _wait_for_shutdown()
    finally:
        components.poller.stop()
        # Даём текущим проверкам дослать уведомления.
        components.scheduler.shutdown(wait=True)


def main() -> int:
    parser = argparse.ArgumentParser(description="SlotBot: appointment slot watcher")
    parser.add_argument("--once", action="store_true", help="Run single check and exit")
    args = parser.parse_args()

    settings = load_settings()
    _setup_logging(settings.log_level)
    components = build_components(settings)

    # Уведомление о старте (best-effort)
    try:
        _send_status_message(
            components,
            settings,
            text=(
                "SlotBot started.\n"
                f"Mode: {'once' if args.once else 'forever'}\n"
                f"day_cron={settings.day_cron!r} night_cron={settings.night_cron!r}"
            ),
        )
    except Exception:
        logger.warning("Failed to send Telegram startup message", exc_info=True)

    try:
        if args.once:
            components.checker.run_scheduled_check()
            return 0

        run_forever(components)
        return 0

    except Exception as e:
        # Уведомление о краше (best-effort)
        try:
            _send_status_message(
                components,
                settings,
                text=f"SlotBot crashed.\nReason: {type(e).__name__}: {e}",
            )
        except Exception:
            logger.warning("Failed to send Telegram crash message", exc_info=True)
        raise

    finally:
        # Уведомление о выходе/остановке процесса (best-effort)
        try:
            _send_status_message(components, settings, text="SlotBot stopped (process exit).")
        except Exception:
            logger.warning("Failed to send Telegram shutdown message", exc_info=True)
        components.channel.close()


if __name__ == "__main__":
    raise SystemExit(main())
