from __future__ import annotations

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from slotbot.checker import SlotChecker
from slotbot.config import Settings


def build_scheduler(settings: Settings, checker: SlotChecker) -> BackgroundScheduler:
    """Day and night checks on their own cron cadences, in the site's time zone.

    The jobs are not mutually exclusive: the night-window gate inside the
    checker decides which one does the work. Exceptions raised by a check are
    logged by APScheduler and the next run fires as usual.
    """
    timezone = settings.slot_source_timezone
    scheduler = BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=2)},
        job_defaults={"coalesce": True, "max_instances": 1},
        timezone=timezone,
    )
    scheduler.add_job(
        checker.run_day_check,
        CronTrigger.from_crontab(settings.day_cron, timezone=timezone),
        id="day_check",
        name="day slot check",
    )
    scheduler.add_job(
        checker.run_night_check,
        CronTrigger.from_crontab(settings.night_cron, timezone=timezone),
        id="night_check",
        name="night slot check",
    )
    return scheduler
