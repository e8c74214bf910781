# league_bot/handlers/user/profile.py
from __future__ import annotations

from aiogram import Router, html
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import Student, tier_name
from league_bot.database.repo.students_repo import update_student
from league_bot.handlers.user.league import AWARD_LABELS
from league_bot.services.queries import QueryService

router = Router()

MIN_GRADE = 1
MAX_GRADE = 12


@router.message(Command("grade"))
async def grade_cmd(message: Message, command: CommandObject, session: AsyncSession, student: Student) -> None:
    raw = (command.args or "").strip()
    if not raw:
        await message.answer(f"🎓 Your grade: <b>{student.grade}</b>\nChange it with /grade &lt;number&gt;")
        return

    try:
        grade = int(raw)
    except ValueError:
        await message.answer("⚠️ Grade must be a number.")
        return

    if not MIN_GRADE <= grade <= MAX_GRADE:
        await message.answer(f"⚠️ Grade must be between {MIN_GRADE} and {MAX_GRADE}.")
        return

    await update_student(session, student.id, grade=grade)
    await message.answer(f"✅ Grade set to <b>{grade}</b>. It applies from your next weekly league.")


@router.message(Command("awards"))
async def awards_cmd(message: Message, session: AsyncSession, student: Student) -> None:
    awards = await QueryService.student_awards(session, student_id=student.id)

    lines = [
        f"👤 <b>{html.quote(student.display_name or 'Student')}</b>",
        f"🏆 League: {tier_name(student.current_league_tier)} · ⭐ {student.total_lifetime_xp} XP",
        "",
    ]
    if not awards:
        lines.append("🏅 No awards yet.")
    else:
        lines.append("🏅 <b>Recent awards</b>")
        for a in awards:
            label = AWARD_LABELS.get(a.award_type.value, a.award_type.value)
            lines.append(f"• {a.week_start:%Y-%m-%d} {label}: {html.quote(a.value)}")

    await message.answer("\n".join(lines))
