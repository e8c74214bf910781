# league_bot/handlers/common.py
from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

router = Router(name="common")


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    await message.answer(
        "👋 Welcome to the weekly leagues!\n\n"
        "Earn XP by solving questions, climb your league, and get promoted every Monday.\n"
        "Use /help to see commands."
    )


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(
        "📌 Available commands:\n"
        "/league — this week's standings\n"
        "/lastweek — last week's result and awards\n"
        "/alltime — all-time XP leaderboard\n"
        "/awards — your recent awards\n"
        "/grade &lt;n&gt; — set your grade"
    )
