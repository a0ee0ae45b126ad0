from __future__ import annotations

from slotbot.checker import SlotChecker
from slotbot.config import Settings
from slotbot.history import HistoryLog
from slotbot.scheduler import build_scheduler
from slotbot.tests.fakes import FakeChannel, FakeSource


def test_scheduler_registers_day_and_night_jobs(descriptor) -> None:
    settings = Settings(
        telegram_bot_token="TEST_TOKEN",
        telegram_chat_ids=("1",),
        slot_source_url=descriptor.base_url,
        day_cron="*/5 8-22 * * *",
        night_cron="0 * * * *",
    )
    checker = SlotChecker(
        source=FakeSource(),
        channel=FakeChannel(),
        history=HistoryLog(),
        descriptor=descriptor,
        subscriber_chat_ids=settings.telegram_chat_ids,
    )

    scheduler = build_scheduler(settings, checker)
    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {"day_check", "night_check"}
    assert jobs["day_check"].func == checker.run_day_check
    assert jobs["night_check"].func == checker.run_night_check
    assert "minute='*/5'" in str(jobs["day_check"].trigger)
    assert "hour='8-22'" in str(jobs["day_check"].trigger)
