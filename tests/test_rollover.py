from datetime import datetime

import pytest
from sqlalchemy import select

from league_bot.database.models import League, LeagueMembership, Student, WeeklyAward
from league_bot.database.repo.league_repo import MemberRow
from league_bot.errors import InvalidState
from league_bot.services.awards import AwardEngine
from league_bot.services.rollover import RolloverJob, compute_outcomes, zone_size


def _members(n: int, tier: int = 1) -> list[MemberRow]:
    return [
        MemberRow(
            membership_id=i,
            student_id=100 + i,
            weekly_xp=(n - i) * 10,
            rank=None,
            promoted=False,
            demoted=False,
            current_tier=tier,
            display_name=f"s{i}",
        )
        for i in range(n)
    ]


@pytest.mark.parametrize("total,expected", [(1, 1), (4, 1), (5, 1), (9, 1), (10, 2), (25, 5)])
def test_zone_size(total, expected):
    assert zone_size(total) == expected


def test_ten_member_league():
    out = compute_outcomes(_members(10, tier=2))

    assert [o.rank for o in out] == list(range(1, 11))
    assert [o.promoted for o in out] == [True, True] + [False] * 8
    assert [o.demoted for o in out] == [False] * 8 + [True, True]
    assert [o.to_tier for o in out] == [3, 3] + [2] * 6 + [1, 1]
    assert all(o.from_tier == 2 for o in out)


def test_single_member_is_promoted_not_demoted():
    [only] = compute_outcomes(_members(1, tier=3))

    assert only.rank == 1
    assert only.promoted is True
    assert only.demoted is False
    assert only.to_tier == 4


@pytest.mark.parametrize("total", range(2, 31))
def test_zone_counts(total):
    out = compute_outcomes(_members(total))
    expected = max(1, total // 5)

    assert sum(o.promoted for o in out) == expected
    assert sum(o.demoted for o in out) == expected
    assert not any(o.promoted and o.demoted for o in out)


def test_tier_is_clamped():
    top = compute_outcomes(_members(5, tier=5))
    bottom = compute_outcomes(_members(5, tier=1))

    assert top[0].promoted and top[0].to_tier == 5
    assert bottom[-1].demoted and bottom[-1].to_tier == 1


def test_empty_league():
    assert compute_outcomes([]) == []


async def _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, xps, *, tier=1, grade=4):
    ids = await make_students(len(xps), tier=tier, grade=grade)
    memberships = await join(ids, last_week_clock)
    await set_weekly_xp({m.id: xp for m, xp in zip(memberships, xps)})
    return ids, memberships


async def test_rollover_persists_ranks_and_moves_tiers(
    db, clock, last_week_clock, make_students, join, set_weekly_xp
):
    xps = [50, 100, 0, 70, 10, 90, 20, 30, 80, 60]
    ids, memberships = await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, xps, tier=2)

    summary = await RolloverJob(db, clock, concurrency=1).process_weekly_leagues()

    assert summary.processed_league_count == 1
    assert summary.failures == []
    assert summary.week_start == last_week_clock.current_week().start.isoformat()

    async with db.session() as session:
        rows = {
            m.student_id: m
            for m in (await session.execute(select(LeagueMembership))).scalars().all()
        }
        tiers = {
            s.id: s.current_league_tier
            for s in (await session.execute(select(Student))).scalars().all()
        }
        league = await session.get(League, memberships[0].league_id)

    by_xp = sorted(ids, key=lambda sid: -xps[ids.index(sid)])
    assert [rows[sid].rank for sid in by_xp] == list(range(1, 11))

    top, bottom = by_xp[:2], by_xp[-2:]
    for sid in top:
        assert rows[sid].promoted and not rows[sid].demoted
        assert (rows[sid].from_tier, rows[sid].to_tier) == (2, 3)
        assert tiers[sid] == 3
    for sid in bottom:
        assert rows[sid].demoted and not rows[sid].promoted
        assert tiers[sid] == 1
    for sid in by_xp[2:-2]:
        assert tiers[sid] == 2
        assert rows[sid].from_tier == rows[sid].to_tier == 2

    assert league.processed_at is not None


async def test_ties_go_to_whoever_joined_first(
    db, clock, last_week_clock, make_students, join, set_weekly_xp
):
    ids, _ = await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, [40, 40])

    await RolloverJob(db, clock, concurrency=1).process_weekly_leagues()

    async with db.session() as session:
        ranks = dict((await session.execute(select(LeagueMembership.student_id, LeagueMembership.rank))).all())
    assert ranks[ids[0]] == 1
    assert ranks[ids[1]] == 2


async def test_rerun_changes_nothing(db, clock, last_week_clock, make_students, join, set_weekly_xp):
    ids, _ = await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, [30, 20, 10, 5, 0])
    job = RolloverJob(db, clock, concurrency=1)

    await job.process_weekly_leagues()
    async with db.session() as session:
        before = dict((await session.execute(select(Student.id, Student.current_league_tier))).all())

    again = await job.process_weekly_leagues()

    async with db.session() as session:
        after = dict((await session.execute(select(Student.id, Student.current_league_tier))).all())
    assert again.processed_league_count == 0
    assert again.failures == []
    assert before == after
    assert after[ids[0]] == 2


async def test_open_week_is_rejected(db, clock):
    job = RolloverJob(db, clock)
    with pytest.raises(InvalidState):
        await job.process_weekly_leagues(clock.current_week())


async def test_nothing_to_process(db, clock):
    summary = await RolloverJob(db, clock).process_weekly_leagues()
    assert summary.processed_league_count == 0
    assert summary.as_dict()["failedLeagueIds"] == []


async def test_one_failing_league_does_not_block_others(
    db, clock, last_week_clock, make_students, join, set_weekly_xp, monkeypatch
):
    good_ids, good = await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, [10, 5], grade=4)
    bad_ids, bad = await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, [10, 5], grade=5)
    bad_league = bad[0].league_id

    real_award = AwardEngine.award_league

    async def flaky_award(session, *, league_id, window, members):
        if league_id == bad_league:
            raise RuntimeError("boom")
        return await real_award(session, league_id=league_id, window=window, members=members)

    monkeypatch.setattr(AwardEngine, "award_league", flaky_award)

    summary = await RolloverJob(db, clock, concurrency=2).process_weekly_leagues()

    assert summary.processed_league_count == 1
    assert [f.league_id for f in summary.failures] == [bad_league]
    assert isinstance(summary.failures[0].cause, RuntimeError)

    async with db.session() as session:
        bad_rows = (
            await session.execute(select(LeagueMembership).where(LeagueMembership.league_id == bad_league))
        ).scalars().all()
        assert all(m.rank is None for m in bad_rows)
        assert (await session.get(League, bad_league)).processed_at is None
        assert (await session.get(Student, bad_ids[0])).current_league_tier == 1
        assert (await session.get(Student, good_ids[0])).current_league_tier == 2

    monkeypatch.setattr(AwardEngine, "award_league", real_award)
    retry = await RolloverJob(db, clock).process_weekly_leagues()

    assert retry.processed_league_count == 1
    assert retry.failures == []
    async with db.session() as session:
        assert (await session.get(Student, bad_ids[0])).current_league_tier == 2


async def test_many_leagues_concurrently(db, clock, last_week_clock, make_students, join, set_weekly_xp):
    for grade in (3, 4, 5, 6):
        await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, [30, 20, 10, 0, 0], grade=grade)

    summary = await RolloverJob(db, clock, concurrency=4).process_weekly_leagues()

    assert summary.processed_league_count == 4
    async with db.session() as session:
        unranked = (
            await session.execute(select(LeagueMembership).where(LeagueMembership.rank.is_(None)))
        ).scalars().all()
    assert unranked == []


async def test_awards_are_stored_once(
    db, clock, last_week_clock, make_students, join, set_weekly_xp, add_attempts
):
    ids, memberships = await _seed_last_week(make_students, join, set_weekly_xp, last_week_clock, [100, 80, 60])
    in_week = datetime(2026, 10, 7, 6, 0)
    await add_attempts(
        [
            {"student_id": ids[2], "time_taken_ms": 4000, "topic_id": f"t{i % 3}", "created_at": in_week}
            for i in range(6)
        ]
    )

    job = RolloverJob(db, clock, concurrency=1)
    await job.process_weekly_leagues()
    await job.process_weekly_leagues(last_week_clock.current_week())

    async with db.session() as session:
        awards = (await session.execute(select(WeeklyAward))).scalars().all()

    got = {(a.student_id, a.award_type.value) for a in awards}
    assert got == {
        (ids[1], "most_improved"),
        (ids[2], "speed_demon"),
        (ids[2], "accuracy_king"),
        (ids[2], "explorer"),
    }
    assert all(a.league_id == memberships[0].league_id for a in awards)
    assert all(a.week_start == last_week_clock.current_week().start for a in awards)
