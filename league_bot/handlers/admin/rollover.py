# league_bot/handlers/admin/rollover.py
from __future__ import annotations

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.types import Message

from league_bot.config.settings import Settings
from league_bot.database.session import Database
from league_bot.scheduler.jobs import format_summary, process_leagues_job
from league_bot.utils.week_clock import WeekClock

router = Router()


def is_admin(message: Message, settings: Settings) -> bool:
    tg = message.from_user
    return bool(tg and tg.id in settings.root_admin_ids)


@router.message(Command("process_leagues"))
async def process_leagues_cmd(
    message: Message,
    settings: Settings,
    bot: Bot,
    db: Database,
    clock: WeekClock,
) -> None:
    if not is_admin(message, settings):
        await message.answer("⛔ You are not allowed to use admin commands.")
        return

    await message.answer("⏳ Closing last week's leagues...")
    summary = await process_leagues_job(bot=bot, db=db, settings=settings, clock=clock)
    if summary is None:
        await message.answer("ℹ️ Last week is not closed yet.")
        return

    await message.answer(format_summary(summary))
