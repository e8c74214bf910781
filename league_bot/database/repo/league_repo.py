# league_bot/database/repo/league_repo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from league_bot.database.models import MAX_LEAGUE_SIZE, League, LeagueMembership, Student, tier_name
from league_bot.utils.week_clock import WeekWindow


@dataclass(frozen=True, slots=True)
class MemberRow:
    membership_id: int
    student_id: int
    weekly_xp: int
    rank: int | None
    promoted: bool
    demoted: bool
    current_tier: int
    display_name: str | None


# ------------------------
# Leagues
# ------------------------

async def find_leagues_with_space(
    session: AsyncSession,
    *,
    tier: int,
    grade: int,
    week_start: datetime,
) -> list[int]:
    res = await session.execute(
        select(League.id)
        .where(
            League.tier == tier,
            League.grade == grade,
            League.week_start == week_start,
            League.member_count < MAX_LEAGUE_SIZE,
        )
        .order_by(League.id.asc())
    )
    return [int(x) for x in res.scalars().all()]


async def reserve_seat(session: AsyncSession, league_id: int) -> bool:
    """
    Conditional increment: takes one seat only if the league is below capacity
    and not rolled over. Returns False if no seat was taken.
    """
    res = await session.execute(
        update(League)
        .where(
            League.id == league_id,
            League.member_count < MAX_LEAGUE_SIZE,
            League.processed_at.is_(None),
        )
        .values(member_count=League.member_count + 1)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def create_league_with_seat(
    session: AsyncSession,
    *,
    tier: int,
    grade: int,
    window: WeekWindow,
) -> League:
    league = League(
        tier=tier,
        grade=grade,
        name=tier_name(tier),
        week_start=window.start,
        week_end=window.end,
        member_count=1,
    )
    session.add(league)
    await session.flush()
    return league


async def get_league(session: AsyncSession, league_id: int) -> League | None:
    res = await session.execute(
        select(League)
        .where(League.id == league_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def list_unprocessed_league_ids(session: AsyncSession, week_start: datetime) -> list[int]:
    res = await session.execute(
        select(League.id)
        .where(League.week_start == week_start, League.processed_at.is_(None))
        .order_by(League.id.asc())
    )
    return [int(x) for x in res.scalars().all()]


async def claim_league_for_rollover(session: AsyncSession, league_id: int, now: datetime) -> bool:
    """
    Sets the processed marker. Must be the first write of the league's
    rollover transaction; False means another run already owns it.
    """
    res = await session.execute(
        update(League)
        .where(League.id == league_id, League.processed_at.is_(None))
        .values(processed_at=now)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


# ------------------------
# Memberships
# ------------------------

async def find_membership(
    session: AsyncSession,
    student_id: int,
    week_start: datetime,
) -> LeagueMembership | None:
    res = await session.execute(
        select(LeagueMembership)
        .where(
            LeagueMembership.student_id == student_id,
            LeagueMembership.week_start == week_start,
        )
        .options(selectinload(LeagueMembership.league))
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def list_members_ranked(session: AsyncSession, league_id: int) -> list[MemberRow]:
    """
    Members by weekly XP (desc); ties go to whoever joined first.
    """
    q = (
        select(
            LeagueMembership.id,
            LeagueMembership.student_id,
            LeagueMembership.weekly_xp,
            LeagueMembership.rank,
            LeagueMembership.promoted,
            LeagueMembership.demoted,
            Student.current_league_tier,
            Student.display_name,
        )
        .join(Student, Student.id == LeagueMembership.student_id)
        .where(LeagueMembership.league_id == league_id)
        .order_by(
            desc(LeagueMembership.weekly_xp),
            LeagueMembership.created_at.asc(),
            LeagueMembership.id.asc(),
        )
    )
    res = await session.execute(q)

    out: list[MemberRow] = []
    for mid, sid, xp, rank, promoted, demoted, tier, name in res.all():
        out.append(
            MemberRow(
                membership_id=int(mid),
                student_id=int(sid),
                weekly_xp=int(xp or 0),
                rank=int(rank) if rank is not None else None,
                promoted=bool(promoted),
                demoted=bool(demoted),
                current_tier=int(tier or 1),
                display_name=name,
            )
        )
    return out
