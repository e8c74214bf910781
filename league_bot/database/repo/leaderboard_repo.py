# league_bot/database/repo/leaderboard_repo.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import Student


@dataclass(frozen=True, slots=True)
class LeaderRow:
    student_id: int
    display_name: str | None
    total_xp: int
    tier: int


def _visible():
    return (Student.hidden_from_leaderboard.is_(False), Student.total_lifetime_xp > 0)


async def get_top_all_time(session: AsyncSession, limit: int = 50) -> list[LeaderRow]:
    q = (
        select(
            Student.id,
            Student.display_name,
            Student.total_lifetime_xp,
            Student.current_league_tier,
        )
        .where(*_visible())
        .order_by(desc(Student.total_lifetime_xp), Student.id.asc())
        .limit(limit)
    )
    res = await session.execute(q)

    return [
        LeaderRow(
            student_id=int(sid),
            display_name=name,
            total_xp=int(xp or 0),
            tier=int(tier or 1),
        )
        for sid, name, xp, tier in res.all()
    ]


async def get_student_rank_all_time(session: AsyncSession, student_id: int) -> tuple[int | None, LeaderRow | None]:
    """
    All-time rank among visible students: 1 + number with strictly more XP.
    Returns (None, None) for unknown students, (None, row) for hidden ones.
    """
    res = await session.execute(
        select(
            Student.id,
            Student.display_name,
            Student.total_lifetime_xp,
            Student.current_league_tier,
            Student.hidden_from_leaderboard,
        ).where(Student.id == student_id)
    )
    me = res.first()
    if me is None:
        return (None, None)

    sid, name, xp, tier, hidden = me
    row = LeaderRow(student_id=int(sid), display_name=name, total_xp=int(xp or 0), tier=int(tier or 1))
    if hidden:
        return (None, row)

    above = await session.scalar(
        select(func.count(Student.id)).where(*_visible(), Student.total_lifetime_xp > row.total_xp)
    )
    return (int(above or 0) + 1, row)
