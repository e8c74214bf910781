# league_bot/services/queries.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import LeagueMembership, tier_name
from league_bot.database.repo.awards_repo import AwardRow, list_awards
from league_bot.database.repo.leaderboard_repo import get_student_rank_all_time, get_top_all_time
from league_bot.database.repo.league_repo import MemberRow, find_membership, list_members_ranked
from league_bot.services.rollover import zone_size
from league_bot.utils.week_clock import WeekClock

ALL_TIME_LIMIT = 50
PROFILE_AWARDS_LIMIT = 10


@dataclass(frozen=True, slots=True)
class StandingRow:
    student_id: int
    display_name: str
    weekly_xp: int
    rank: int
    is_me: bool
    promoted: bool
    demoted: bool


@dataclass(frozen=True, slots=True)
class StandingsView:
    league_id: int
    league_name: str
    tier: int
    week_start: datetime
    week_end: datetime
    members: list[StandingRow]
    my_rank: int
    my_weekly_xp: int
    total_members: int
    promote_count: int
    demote_count: int


@dataclass(frozen=True, slots=True)
class TierChange:
    from_tier: int
    to_tier: int

    @property
    def is_promotion(self) -> bool:
        return self.to_tier > self.from_tier

    @property
    def from_name(self) -> str:
        return tier_name(self.from_tier)

    @property
    def to_name(self) -> str:
        return tier_name(self.to_tier)


@dataclass(frozen=True, slots=True)
class LastWeekView:
    league: StandingsView | None
    my_rank: int | None
    promoted: bool
    demoted: bool
    awards: list[AwardRow]
    tier_change: TierChange | None


@dataclass(frozen=True, slots=True)
class AllTimeRow:
    student_id: int
    display_name: str
    total_xp: int
    tier: int
    rank: int
    is_me: bool


@dataclass(frozen=True, slots=True)
class AllTimeView:
    members: list[AllTimeRow]
    my_entry: AllTimeRow | None


def _name(display_name: str | None) -> str:
    return (display_name or "").strip() or "Student"


def _standings(
    membership: LeagueMembership,
    members: list[MemberRow],
    student_id: int,
    *,
    use_persisted_rank: bool,
) -> StandingsView:
    league = membership.league
    total = len(members)

    rows: list[StandingRow] = []
    for idx, m in enumerate(members, start=1):
        rank = m.rank if (use_persisted_rank and m.rank is not None) else idx
        rows.append(
            StandingRow(
                student_id=m.student_id,
                display_name=_name(m.display_name),
                weekly_xp=m.weekly_xp,
                rank=rank,
                is_me=m.student_id == student_id,
                promoted=m.promoted,
                demoted=m.demoted,
            )
        )
    if use_persisted_rank:
        rows.sort(key=lambda r: r.rank)

    me = next((r for r in rows if r.is_me), None)

    return StandingsView(
        league_id=int(league.id),
        league_name=league.name or tier_name(league.tier),
        tier=int(league.tier),
        week_start=league.week_start,
        week_end=league.week_end,
        members=rows,
        my_rank=me.rank if me else total,
        my_weekly_xp=int(membership.weekly_xp or 0),
        total_members=total,
        promote_count=zone_size(total) if total else 0,
        demote_count=zone_size(total) if total else 0,
    )


class QueryService:
    """
    Read models for the presentation layer. Never writes.
    """

    @staticmethod
    async def current_standings(
        session: AsyncSession,
        *,
        student_id: int,
        clock: WeekClock,
    ) -> StandingsView | None:
        """
        Live standings of the student's open league. Ranks are computed on
        the fly. None means the student has no league this week yet.
        """
        window = clock.current_week()
        membership = await find_membership(session, student_id, window.start)
        if membership is None:
            return None

        members = await list_members_ranked(session, membership.league_id)
        return _standings(membership, members, student_id, use_persisted_rank=False)

    @staticmethod
    async def last_week_result(
        session: AsyncSession,
        *,
        student_id: int,
        clock: WeekClock,
    ) -> LastWeekView:
        window = clock.previous_week()
        awards = await list_awards(session, student_id=student_id, week_start=window.start)

        membership = await find_membership(session, student_id, window.start)
        if membership is None:
            return LastWeekView(
                league=None,
                my_rank=None,
                promoted=False,
                demoted=False,
                awards=awards,
                tier_change=None,
            )

        members = await list_members_ranked(session, membership.league_id)
        view = _standings(membership, members, student_id, use_persisted_rank=True)

        # banner only once the rollover has persisted the move
        tier_change = None
        if (
            membership.rank is not None
            and membership.from_tier is not None
            and membership.to_tier is not None
            and membership.from_tier != membership.to_tier
        ):
            tier_change = TierChange(from_tier=membership.from_tier, to_tier=membership.to_tier)

        return LastWeekView(
            league=view,
            my_rank=membership.rank,
            promoted=bool(membership.promoted),
            demoted=bool(membership.demoted),
            awards=awards,
            tier_change=tier_change,
        )

    @staticmethod
    async def all_time_leaderboard(
        session: AsyncSession,
        *,
        student_id: int | None = None,
        limit: int = ALL_TIME_LIMIT,
    ) -> AllTimeView:
        top = await get_top_all_time(session, limit=limit)

        members = [
            AllTimeRow(
                student_id=r.student_id,
                display_name=_name(r.display_name),
                total_xp=r.total_xp,
                tier=r.tier,
                rank=idx,
                is_me=r.student_id == student_id,
            )
            for idx, r in enumerate(top, start=1)
        ]

        my_entry = next((m for m in members if m.is_me), None)
        if my_entry is None and student_id is not None:
            rank, row = await get_student_rank_all_time(session, student_id)
            if rank is not None and row is not None:
                my_entry = AllTimeRow(
                    student_id=row.student_id,
                    display_name=_name(row.display_name),
                    total_xp=row.total_xp,
                    tier=row.tier,
                    rank=rank,
                    is_me=True,
                )

        return AllTimeView(members=members, my_entry=my_entry)

    @staticmethod
    async def student_awards(
        session: AsyncSession,
        *,
        student_id: int,
        limit: int = PROFILE_AWARDS_LIMIT,
    ) -> list[AwardRow]:
        return await list_awards(session, student_id=student_id, limit=limit)
