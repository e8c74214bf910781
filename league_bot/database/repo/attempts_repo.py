# league_bot/database/repo/attempts_repo.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import Attempt
from league_bot.utils.week_clock import WeekWindow


@dataclass(frozen=True, slots=True)
class AttemptRow:
    student_id: int
    is_correct: bool
    time_taken_ms: int
    topic_id: str


async def get_attempt(session: AsyncSession, attempt_id: int) -> Attempt | None:
    res = await session.execute(select(Attempt).where(Attempt.id == attempt_id))
    return res.scalar_one_or_none()


async def list_attempts(
    session: AsyncSession,
    student_ids: Iterable[int],
    window: WeekWindow,
) -> list[AttemptRow]:
    """
    Attempts of `student_ids` inside [window.start, window.end), oldest first.
    """
    ids = list(student_ids)
    if not ids:
        return []

    res = await session.execute(
        select(
            Attempt.student_id,
            Attempt.is_correct,
            Attempt.time_taken_ms,
            Attempt.topic_id,
        )
        .where(
            Attempt.student_id.in_(ids),
            Attempt.created_at >= window.start,
            Attempt.created_at < window.end,
        )
        .order_by(Attempt.created_at.asc(), Attempt.id.asc())
    )
    return [
        AttemptRow(
            student_id=int(sid),
            is_correct=bool(ok),
            time_taken_ms=int(ms or 0),
            topic_id=str(topic),
        )
        for sid, ok, ms, topic in res.all()
    ]
