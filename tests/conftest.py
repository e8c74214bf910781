from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from league_bot.database import Database
from league_bot.database.models import Attempt, LeagueMembership, Student
from league_bot.services.membership import MembershipService
from league_bot.utils.week_clock import WeekClock

IST = timezone(timedelta(minutes=330))

# Wednesday noon IST; the week opened Monday 2026-10-12 00:00 IST (Sunday 18:30 UTC)
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=IST)


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'leagues.db'}")
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture
def clock() -> WeekClock:
    return WeekClock.fixed(NOW)


@pytest.fixture
def last_week_clock() -> WeekClock:
    return WeekClock.fixed(NOW - timedelta(days=7))


@pytest.fixture
def make_students(db):
    async def _make(count: int, *, tier: int = 1, grade: int = 4, prefix: str = "student") -> list[int]:
        async with db.session() as session:
            students = [
                Student(
                    display_name=f"{prefix}{i}",
                    grade=grade,
                    current_league_tier=tier,
                    total_lifetime_xp=0,
                )
                for i in range(count)
            ]
            session.add_all(students)
            await session.commit()
            return [s.id for s in students]

    return _make


@pytest.fixture
def join(db):
    """Each student joins the clock's current week in its own transaction."""

    async def _join(student_ids: list[int], clock: WeekClock) -> list[LeagueMembership]:
        out = []
        for sid in student_ids:
            async with db.session() as session:
                out.append(
                    await MembershipService.ensure_membership(session, student_id=sid, clock=clock)
                )
        return out

    return _join


@pytest.fixture
def set_weekly_xp(db):
    async def _set(xp_by_membership: dict[int, int]) -> None:
        async with db.session() as session:
            async with session.begin():
                for membership_id, xp in xp_by_membership.items():
                    await session.execute(
                        update(LeagueMembership)
                        .where(LeagueMembership.id == membership_id)
                        .values(weekly_xp=xp)
                    )

    return _set


@pytest.fixture
def add_attempts(db):
    async def _add(rows: list[dict]) -> list[int]:
        async with db.session() as session:
            attempts = [
                Attempt(
                    student_id=r["student_id"],
                    question_id=r.get("question_id", "q"),
                    topic_id=r.get("topic_id", "fractions"),
                    is_correct=r.get("is_correct", True),
                    is_bonus_question=r.get("is_bonus_question", False),
                    time_taken_ms=r.get("time_taken_ms", 5000),
                    created_at=r["created_at"],
                )
                for r in rows
            ]
            session.add_all(attempts)
            await session.commit()
            return [a.id for a in attempts]

    return _add
