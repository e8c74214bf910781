# league_bot/services/membership.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import LeagueMembership, clamp_tier
from league_bot.database.repo.league_repo import find_membership
from league_bot.database.repo.students_repo import require_student
from league_bot.database.tx import transactional
from league_bot.errors import ConcurrentModification, NotFound
from league_bot.services.league_directory import LeagueDirectory
from league_bot.utils.week_clock import WeekClock, WeekWindow

log = logging.getLogger(__name__)


class MembershipService:
    MAX_ATTEMPTS = 3

    @staticmethod
    async def _create(
        session: AsyncSession,
        *,
        student_id: int,
        window: WeekWindow,
    ) -> None:
        student = await require_student(session, student_id)
        tier = clamp_tier(student.current_league_tier or 1)
        grade = int(student.grade)

        # SAVEPOINT: a lost race rolls back both the seat and the insert
        async with session.begin_nested():
            league_id = await LeagueDirectory.ensure_league(
                session, tier=tier, grade=grade, window=window
            )
            session.add(
                LeagueMembership(
                    student_id=student_id,
                    league_id=league_id,
                    week_start=window.start,
                    weekly_xp=0,
                )
            )
            await session.flush()  # uq (student_id, week_start)

    @staticmethod
    async def ensure_membership(
        session: AsyncSession,
        *,
        student_id: int,
        clock: WeekClock,
    ) -> LeagueMembership:
        """
        Returns the student's membership for the current week, creating it on
        first demand. Idempotent: concurrent callers converge on one row.
        """
        window = clock.current_week()

        async with transactional(session):
            for attempt in range(1, MembershipService.MAX_ATTEMPTS + 1):
                existing = await find_membership(session, student_id, window.start)
                if existing is not None:
                    return existing

                try:
                    await MembershipService._create(session, student_id=student_id, window=window)
                except IntegrityError:
                    log.info(
                        "Membership race for student=%s week=%s (attempt %s), re-reading",
                        student_id, window.start.isoformat(), attempt,
                    )
                    continue

                created = await find_membership(session, student_id, window.start)
                if created is None:
                    raise NotFound(f"Membership for student {student_id} vanished after insert")
                return created

        raise ConcurrentModification(
            f"Could not settle membership for student {student_id} after "
            f"{MembershipService.MAX_ATTEMPTS} attempts"
        )
