# league_bot/services/xp.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import LeagueMembership, Student, UsageLog, XpEvent
from league_bot.database.repo.attempts_repo import get_attempt
from league_bot.database.tx import transactional, upsert_insert
from league_bot.errors import InvalidState, NotFound, StorageUnavailable
from league_bot.services.membership import MembershipService
from league_bot.utils.week_clock import WeekClock

log = logging.getLogger(__name__)

MIN_TIME_MS = 3000  # faster than this is a tap-through
BONUS_XP = 10
BASE_XP = 20


def compute_xp(is_correct: bool, is_bonus_question: bool, time_taken_ms: int) -> int:
    if not is_correct:
        return 0
    if time_taken_ms < MIN_TIME_MS:
        return 0
    if is_bonus_question:
        return BONUS_XP
    return BASE_XP


@dataclass(frozen=True, slots=True)
class XPCreditResult:
    credited: bool
    amount: int
    weekly_xp: int
    lifetime_xp: int
    membership_id: int | None


class XPLedger:
    @staticmethod
    async def _totals(session: AsyncSession, *, membership_id: int, student_id: int) -> tuple[int, int]:
        weekly = await session.scalar(
            select(LeagueMembership.weekly_xp).where(LeagueMembership.id == membership_id)
        )
        lifetime = await session.scalar(
            select(Student.total_lifetime_xp).where(Student.id == student_id)
        )
        return int(weekly or 0), int(lifetime or 0)

    @staticmethod
    async def add_weekly_xp(
        session: AsyncSession,
        *,
        student_id: int,
        amount: int,
        ref_id: str | int,
        clock: WeekClock,
        ref_type: str = "attempt",
    ) -> XPCreditResult:
        """
        Credits `amount` XP to the student's current-week membership, lifetime
        total and daily usage counter in one transaction.

        Keyed by (ref_type, ref_id): a retried credit for the same origin is a
        no-op and returns credited=False. Storage failures raise
        StorageUnavailable, which is safe to retry with the same ref.
        """
        amount = int(amount)
        try:
            async with transactional(session):
                membership = await MembershipService.ensure_membership(
                    session, student_id=student_id, clock=clock
                )

                if amount <= 0:
                    weekly, lifetime = await XPLedger._totals(
                        session, membership_id=membership.id, student_id=student_id
                    )
                    return XPCreditResult(False, 0, weekly, lifetime, membership.id)

                # 1) ledger row first, so duplicates never touch the counters
                try:
                    async with session.begin_nested():
                        session.add(
                            XpEvent(
                                student_id=student_id,
                                membership_id=membership.id,
                                week_start=membership.week_start,
                                day_utc=clock.today_utc(),
                                ref_type=ref_type,
                                ref_id=str(ref_id),
                                amount=amount,
                            )
                        )
                        await session.flush()
                except IntegrityError:
                    log.info("Duplicate XP credit ignored: %s:%s student=%s", ref_type, ref_id, student_id)
                    weekly, lifetime = await XPLedger._totals(
                        session, membership_id=membership.id, student_id=student_id
                    )
                    return XPCreditResult(False, amount, weekly, lifetime, membership.id)

                # 2) weekly counter; a rolled-over week is frozen
                res = await session.execute(
                    update(LeagueMembership)
                    .where(LeagueMembership.id == membership.id, LeagueMembership.rank.is_(None))
                    .values(weekly_xp=LeagueMembership.weekly_xp + amount)
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount != 1:
                    raise InvalidState(
                        f"Week starting {membership.week_start.isoformat()} is already rolled over"
                    )

                # 3) lifetime counter
                res = await session.execute(
                    update(Student)
                    .where(Student.id == student_id)
                    .values(total_lifetime_xp=Student.total_lifetime_xp + amount)
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount != 1:
                    raise NotFound(f"Student {student_id} not found")

                # 4) daily usage counter (reporting only)
                stmt = (
                    upsert_insert(session, UsageLog)
                    .values(student_id=student_id, day_utc=clock.today_utc(), xp_earned=amount)
                    .on_conflict_do_update(
                        index_elements=["student_id", "day_utc"],
                        set_={"xp_earned": UsageLog.xp_earned + amount},
                    )
                )
                await session.execute(stmt)

                weekly, lifetime = await XPLedger._totals(
                    session, membership_id=membership.id, student_id=student_id
                )
                return XPCreditResult(True, amount, weekly, lifetime, membership.id)

        except OperationalError as e:
            log.warning("XP credit failed for student=%s ref=%s:%s: %s", student_id, ref_type, ref_id, e)
            raise StorageUnavailable(f"XP credit for {ref_type}:{ref_id} failed, retry later") from e

    @staticmethod
    async def credit_attempt(
        session: AsyncSession,
        *,
        attempt_id: int,
        clock: WeekClock,
    ) -> XPCreditResult:
        """
        Computes XP for a scored attempt and credits it, keyed by the attempt id.
        """
        async with transactional(session):
            attempt = await get_attempt(session, attempt_id)
            if attempt is None:
                raise NotFound(f"Attempt {attempt_id} not found")

            amount = compute_xp(
                bool(attempt.is_correct),
                bool(attempt.is_bonus_question),
                int(attempt.time_taken_ms or 0),
            )
            return await XPLedger.add_weekly_xp(
                session,
                student_id=int(attempt.student_id),
                amount=amount,
                ref_id=attempt.id,
                clock=clock,
            )
