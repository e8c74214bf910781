# league_bot/scheduler/__init__.py
from __future__ import annotations

from aiogram import Bot
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from league_bot.config.settings import Settings
from league_bot.database.session import Database
from league_bot.scheduler.jobs import build_scheduler


def setup_scheduler(bot: Bot, db: Database, settings: Settings) -> AsyncIOScheduler:
    scheduler = build_scheduler(bot=bot, db=db, settings=settings)
    scheduler.start()
    return scheduler
