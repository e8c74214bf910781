# league_bot/services/rollover.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy import update

from league_bot.database.models import LeagueMembership, Student, clamp_tier
from league_bot.database.repo.league_repo import (
    MemberRow,
    claim_league_for_rollover,
    list_members_ranked,
    list_unprocessed_league_ids,
)
from league_bot.database.session import Database
from league_bot.errors import InvalidState, PartialRolloverFailure
from league_bot.services.awards import AwardEngine
from league_bot.utils.week_clock import WeekClock, WeekWindow

log = logging.getLogger(__name__)

ZONE_PERCENT = 20


@dataclass(frozen=True, slots=True)
class MemberOutcome:
    membership_id: int
    student_id: int
    rank: int
    promoted: bool
    demoted: bool
    from_tier: int
    to_tier: int


@dataclass(slots=True)
class RolloverSummary:
    week_start: str
    processed_league_count: int = 0
    skipped_league_count: int = 0
    failures: list[PartialRolloverFailure] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "weekStart": self.week_start,
            "processedLeagueCount": self.processed_league_count,
            "skippedLeagueCount": self.skipped_league_count,
            "failedLeagueIds": [f.league_id for f in self.failures],
        }


def zone_size(total: int) -> int:
    # floor(20% of total), at least one
    return max(1, total * ZONE_PERCENT // 100)


def compute_outcomes(members: Sequence[MemberRow]) -> list[MemberOutcome]:
    """
    Rank, promotion and demotion for one league. `members` must already be in
    ranking order (weekly XP desc, earliest join first).

    When the zones overlap (a single-member league) promotion wins: the member
    is promoted and not demoted.
    """
    total = len(members)
    if total == 0:
        return []

    promote_count = zone_size(total)
    demote_count = zone_size(total)

    out: list[MemberOutcome] = []
    for rank, m in enumerate(members, start=1):
        promoted = rank <= promote_count
        demoted = rank > total - demote_count and not promoted
        delta = 1 if promoted else -1 if demoted else 0
        out.append(
            MemberOutcome(
                membership_id=m.membership_id,
                student_id=m.student_id,
                rank=rank,
                promoted=promoted,
                demoted=demoted,
                from_tier=m.current_tier,
                to_tier=clamp_tier(m.current_tier + delta),
            )
        )
    return out


class RolloverJob:
    """
    Closes a finished week: one transaction per league, fanned out with
    bounded concurrency. The league's processed marker is claimed as the
    first write of its transaction, so reruns and overlapping runs skip it.
    """

    def __init__(self, db: Database, clock: WeekClock, *, concurrency: int = 4) -> None:
        self.db = db
        self.clock = clock
        self.concurrency = max(1, int(concurrency))

    async def process_weekly_leagues(self, window: WeekWindow | None = None) -> RolloverSummary:
        target = window or self.clock.previous_week()
        now = self.clock.now()
        if now < target.end:
            raise InvalidState(
                f"Week starting {target.start.isoformat()} is not closed yet (ends {target.end.isoformat()})"
            )

        async with self.db.session() as session:
            league_ids = await list_unprocessed_league_ids(session, target.start)

        summary = RolloverSummary(week_start=target.start.isoformat())
        if not league_ids:
            log.info("Rollover week=%s: nothing to process", summary.week_start)
            return summary

        sem = asyncio.Semaphore(self.concurrency)

        async def _guarded(league_id: int) -> bool:
            async with sem:
                return await self._process_league(league_id, target)

        results = await asyncio.gather(
            *(_guarded(lid) for lid in league_ids),
            return_exceptions=True,
        )

        for league_id, result in zip(league_ids, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                summary.failures.append(PartialRolloverFailure(league_id, result))
            elif result:
                summary.processed_league_count += 1
            else:
                summary.skipped_league_count += 1

        log.info(
            "Rollover week=%s: processed=%s skipped=%s failed=%s",
            summary.week_start,
            summary.processed_league_count,
            summary.skipped_league_count,
            len(summary.failures),
        )
        return summary

    async def _process_league(self, league_id: int, window: WeekWindow) -> bool:
        """
        Returns True if the league was rolled over by this call, False if it
        was already processed or empty. Any exception rolls the whole league
        back, marker included.
        """
        async with self.db.session() as session:
            try:
                async with session.begin():
                    if not await claim_league_for_rollover(session, league_id, self.clock.now()):
                        log.info("League %s already processed, skipping", league_id)
                        return False

                    members = await list_members_ranked(session, league_id)
                    if not members:
                        return False

                    outcomes = compute_outcomes(members)

                    for o in outcomes:
                        await session.execute(
                            update(LeagueMembership)
                            .where(LeagueMembership.id == o.membership_id)
                            .values(
                                rank=o.rank,
                                promoted=o.promoted,
                                demoted=o.demoted,
                                from_tier=o.from_tier,
                                to_tier=o.to_tier,
                            )
                            .execution_options(synchronize_session=False)
                        )
                        if o.to_tier != o.from_tier:
                            await session.execute(
                                update(Student)
                                .where(Student.id == o.student_id)
                                .values(current_league_tier=o.to_tier)
                                .execution_options(synchronize_session=False)
                            )

                    await AwardEngine.award_league(
                        session,
                        league_id=league_id,
                        window=window,
                        members=members,
                    )
            except Exception:
                log.exception("Rollover transaction for league %s rolled back", league_id)
                raise

        promoted = sum(1 for o in outcomes if o.promoted)
        demoted = sum(1 for o in outcomes if o.demoted)
        log.info(
            "League %s rolled over: members=%s promoted=%s demoted=%s",
            league_id, len(outcomes), promoted, demoted,
        )
        return True
