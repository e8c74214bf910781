from sqlalchemy import update

from league_bot.database.models import AwardType, Student
from league_bot.database.repo.awards_repo import save_awards
from league_bot.services.queries import QueryService
from league_bot.services.rollover import RolloverJob
from league_bot.services.xp import XPLedger


async def test_no_league_yet(db, clock, make_students):
    [sid] = await make_students(1)
    async with db.session() as session:
        assert await QueryService.current_standings(session, student_id=sid, clock=clock) is None


async def test_live_standings(db, clock, make_students, join, set_weekly_xp):
    ids = await make_students(3)
    ms = await join(ids, clock)
    await set_weekly_xp({ms[0].id: 10, ms[1].id: 30, ms[2].id: 20})

    async with db.session() as session:
        view = await QueryService.current_standings(session, student_id=ids[0], clock=clock)

    assert view.league_name == "Bronze"
    assert [r.student_id for r in view.members] == [ids[1], ids[2], ids[0]]
    assert [r.rank for r in view.members] == [1, 2, 3]
    assert view.my_rank == 3
    assert view.my_weekly_xp == 10
    assert view.total_members == 3
    assert view.promote_count == 1 and view.demote_count == 1
    assert view.week_start == clock.current_week().start
    assert [r.is_me for r in view.members] == [False, False, True]


async def test_standings_follow_new_xp(db, clock, make_students, join):
    ids = await make_students(2)
    await join(ids, clock)

    async with db.session() as session:
        await XPLedger.add_weekly_xp(session, student_id=ids[1], amount=20, ref_id="x", clock=clock)

    async with db.session() as session:
        view = await QueryService.current_standings(session, student_id=ids[0], clock=clock)
    assert view.members[0].student_id == ids[1]
    assert view.my_rank == 2


async def test_last_week_before_and_after_rollover(
    db, clock, last_week_clock, make_students, join, set_weekly_xp
):
    ids = await make_students(10, tier=2)
    ms = await join(ids, last_week_clock)
    await set_weekly_xp({m.id: 100 - i for i, m in enumerate(ms)})

    async with db.session() as session:
        pending = await QueryService.last_week_result(session, student_id=ids[0], clock=clock)
    assert pending.my_rank is None
    assert pending.tier_change is None

    await RolloverJob(db, clock, concurrency=1).process_weekly_leagues()

    async with db.session() as session:
        top = await QueryService.last_week_result(session, student_id=ids[0], clock=clock)
        middle = await QueryService.last_week_result(session, student_id=ids[5], clock=clock)
        last = await QueryService.last_week_result(session, student_id=ids[9], clock=clock)

    assert top.my_rank == 1 and top.promoted
    assert top.tier_change.is_promotion
    assert (top.tier_change.from_name, top.tier_change.to_name) == ("Silver", "Gold")
    assert [r.rank for r in top.league.members] == list(range(1, 11))
    assert top.league.members[0].promoted

    assert middle.my_rank == 6
    assert middle.tier_change is None

    assert last.demoted
    assert not last.tier_change.is_promotion
    assert last.tier_change.to_name == "Bronze"

    # runner-up is the only award without attempts
    assert [a.award_type for a in top.awards] == []
    async with db.session() as session:
        second = await QueryService.last_week_result(session, student_id=ids[1], clock=clock)
    assert [a.award_type for a in second.awards] == [AwardType.MOST_IMPROVED]


async def test_last_week_without_membership(db, clock, make_students):
    [sid] = await make_students(1)
    async with db.session() as session:
        view = await QueryService.last_week_result(session, student_id=sid, clock=clock)
    assert view.league is None
    assert view.tier_change is None
    assert view.awards == []


async def test_all_time_leaderboard(db, make_students):
    ids = await make_students(4)
    xp = {ids[0]: 100, ids[1]: 50, ids[2]: 0, ids[3]: 500}
    async with db.session() as session:
        async with session.begin():
            for sid, total in xp.items():
                await session.execute(update(Student).where(Student.id == sid).values(total_lifetime_xp=total))
            await session.execute(
                update(Student).where(Student.id == ids[3]).values(hidden_from_leaderboard=True)
            )

    async with db.session() as session:
        full = await QueryService.all_time_leaderboard(session, student_id=ids[0])
        short = await QueryService.all_time_leaderboard(session, student_id=ids[1], limit=1)
        hidden = await QueryService.all_time_leaderboard(session, student_id=ids[3])

    assert [r.student_id for r in full.members] == [ids[0], ids[1]]
    assert full.my_entry.rank == 1 and full.my_entry.is_me

    assert [r.student_id for r in short.members] == [ids[0]]
    assert short.my_entry.student_id == ids[1]
    assert short.my_entry.rank == 2

    assert hidden.my_entry is None


async def test_profile_awards_newest_first(db, make_students, last_week_clock, clock):
    [sid] = await make_students(1)
    older = last_week_clock.previous_week().start
    newer = last_week_clock.current_week().start
    async with db.session() as session:
        async with session.begin():
            await save_awards(session, league_id=None, week_start=older, awards=[(sid, AwardType.EXPLORER, "2 topics")])
            await save_awards(session, league_id=None, week_start=newer, awards=[(sid, AwardType.SPEED_DEMON, "5 fast answers")])

    async with db.session() as session:
        awards = await QueryService.student_awards(session, student_id=sid)
        one = await QueryService.student_awards(session, student_id=sid, limit=1)

    assert [a.week_start for a in awards] == [newer, older]
    assert [a.award_type for a in one] == [AwardType.SPEED_DEMON]
