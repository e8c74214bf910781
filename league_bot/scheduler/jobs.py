# league_bot/scheduler/jobs.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from aiogram import Bot
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from league_bot.config.settings import Settings
from league_bot.database.session import Database
from league_bot.errors import InvalidState
from league_bot.services.rollover import RolloverJob, RolloverSummary
from league_bot.utils.week_clock import WeekClock

log = logging.getLogger(__name__)

MINUTES_PER_WEEK = 7 * 24 * 60
DAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass(frozen=True, slots=True)
class CronFields:
    day_of_week: str
    hour: int
    minute: int


def rollover_cron_fields(utc_offset_minutes: int, delay_minutes: int = 5) -> CronFields:
    """
    UTC cron fields for "Monday 00:00 league time + delay".
    E.g. offset +330 (IST), delay 5 -> Sunday 18:35 UTC.
    """
    minute_of_week = (delay_minutes - utc_offset_minutes) % MINUTES_PER_WEEK
    day, rest = divmod(minute_of_week, 24 * 60)
    hour, minute = divmod(rest, 60)
    return CronFields(day_of_week=DAY_NAMES[day], hour=hour, minute=minute)


def format_summary(summary: RolloverSummary) -> str:
    lines = [
        "🏆 <b>Weekly leagues closed</b>",
        f"📅 <b>Week (UTC start):</b> {summary.week_start}",
        "",
        f"✅ Processed: <b>{summary.processed_league_count}</b>",
        f"⏭ Skipped: <b>{summary.skipped_league_count}</b>",
    ]
    if summary.failures:
        ids = ", ".join(str(f.league_id) for f in summary.failures)
        lines.append(f"⚠️ Failed leagues: {ids}")
    return "\n".join(lines)


# -------------------------------------------------
# Main job: close last week's leagues
# -------------------------------------------------

async def process_leagues_job(
    bot: Bot | None,
    db: Database,
    settings: Settings,
    *,
    clock: WeekClock | None = None,
) -> RolloverSummary | None:
    """
    Rolls over the previous week and, when GROUP_ID is set, announces the
    result. Safe to run again: already processed leagues are skipped.
    """
    clock = clock or WeekClock(utc_offset_minutes=settings.league_utc_offset_minutes)
    job = RolloverJob(db, clock, concurrency=settings.rollover_concurrency)

    try:
        summary = await job.process_weekly_leagues()
    except InvalidState as e:
        log.warning("Rollover not run: %s", e)
        return None

    if bot is not None and settings.group_id and summary.processed_league_count:
        try:
            await bot.send_message(chat_id=settings.group_id, text=format_summary(summary))
        except Exception:
            log.exception("Failed to announce rollover in group %s", settings.group_id)

    return summary


# -------------------------------------------------
# Scheduler setup
# -------------------------------------------------

def build_scheduler(bot: Bot | None, db: Database, settings: Settings) -> AsyncIOScheduler:
    """
    Creates and returns an AsyncIOScheduler with our jobs registered.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    fields = rollover_cron_fields(settings.league_utc_offset_minutes)

    scheduler.add_job(
        process_leagues_job,
        trigger=CronTrigger(
            day_of_week=fields.day_of_week,
            hour=fields.hour,
            minute=fields.minute,
            timezone="UTC",
        ),
        kwargs={"bot": bot, "db": db, "settings": settings},
        id="process_weekly_leagues",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=3600,
    )

    log.info(
        "Rollover scheduled: %s %02d:%02d UTC",
        fields.day_of_week, fields.hour, fields.minute,
    )
    return scheduler
