# league_bot/database/repo/awards_repo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import AwardType, Student, WeeklyAward
from league_bot.database.tx import upsert_insert


@dataclass(frozen=True, slots=True)
class AwardRow:
    student_id: int
    week_start: datetime
    award_type: AwardType
    value: str
    display_name: str | None = None


async def save_awards(
    session: AsyncSession,
    *,
    league_id: int | None,
    week_start: datetime,
    awards: list[tuple[int, AwardType, str]],  # [(student_id, award_type, value), ...]
) -> int:
    """
    Inserts award rows, skipping any (student, week, type) that already exists.
    Returns the number of rows actually inserted.
    """
    if not awards:
        return 0

    inserted = 0
    for student_id, award_type, value in awards:
        stmt = (
            upsert_insert(session, WeeklyAward)
            .values(
                student_id=student_id,
                league_id=league_id,
                week_start=week_start,
                award_type=award_type,
                value=value,
            )
            .on_conflict_do_nothing(index_elements=["student_id", "week_start", "award_type"])
        )
        res = await session.execute(stmt)
        inserted += max(res.rowcount, 0)
    return inserted


async def list_awards(
    session: AsyncSession,
    *,
    student_id: int,
    week_start: datetime | None = None,
    limit: int | None = None,
) -> list[AwardRow]:
    q = (
        select(
            WeeklyAward.student_id,
            WeeklyAward.week_start,
            WeeklyAward.award_type,
            WeeklyAward.value,
            Student.display_name,
        )
        .join(Student, Student.id == WeeklyAward.student_id)
        .where(WeeklyAward.student_id == student_id)
        .order_by(WeeklyAward.week_start.desc(), WeeklyAward.id.asc())
    )
    if week_start is not None:
        q = q.where(WeeklyAward.week_start == week_start)
    if limit is not None:
        q = q.limit(limit)

    res = await session.execute(q)
    return [
        AwardRow(
            student_id=int(sid),
            week_start=ws,
            award_type=AwardType(at),
            value=value,
            display_name=name,
        )
        for sid, ws, at, value, name in res.all()
    ]
