# league_bot/database/repo/students_repo.py
from __future__ import annotations

from typing import Any, Optional

from aiogram.types import TelegramObject
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import Student, clamp_tier
from league_bot.errors import NotFound

_UPDATABLE = {"grade", "current_league_tier", "display_name", "hidden_from_leaderboard"}


async def get_student(session: AsyncSession, student_id: int) -> Student | None:
    res = await session.execute(
        select(Student)
        .where(Student.id == student_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def require_student(session: AsyncSession, student_id: int) -> Student:
    student = await get_student(session, student_id)
    if student is None:
        raise NotFound(f"Student {student_id} not found")
    return student


async def update_student(session: AsyncSession, student_id: int, **fields: Any) -> None:
    """
    Writes identity fields. The tier is always clamped to [1, 5].
    Counters (total_lifetime_xp) are not writable here; use the XP ledger.
    """
    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")

    if "current_league_tier" in fields:
        fields["current_league_tier"] = clamp_tier(fields["current_league_tier"])

    res = await session.execute(
        update(Student)
        .where(Student.id == student_id)
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        raise NotFound(f"Student {student_id} not found")


def _extract_from_user(event: TelegramObject):
    """
    Best-effort extract aiogram `from_user` from different update types.
    """
    u = getattr(event, "from_user", None)
    if u:
        return u

    msg = getattr(event, "message", None)
    if msg and getattr(msg, "from_user", None):
        return msg.from_user

    cb = getattr(event, "callback_query", None)
    if cb and getattr(cb, "from_user", None):
        return cb.from_user

    return None


def _telegram_display_name(tg) -> str:
    if tg.username:
        return f"@{tg.username}"
    name = " ".join([p for p in [tg.first_name, tg.last_name] if p])
    return name.strip() or "Student"


async def upsert_student_from_event(
    session: AsyncSession,
    event: TelegramObject,
    *,
    default_grade: int,
) -> Optional[Student]:
    tg = _extract_from_user(event)
    if tg is None:
        return None

    res = await session.execute(select(Student).where(Student.telegram_id == tg.id))
    student = res.scalar_one_or_none()

    if student is None:
        student = Student(
            telegram_id=tg.id,
            display_name=_telegram_display_name(tg),
            grade=default_grade,
            current_league_tier=1,
            total_lifetime_xp=0,
        )
        session.add(student)
        await session.flush()  # ensures `student.id` exists before handlers use it
        return student

    student.display_name = _telegram_display_name(tg)
    return student
