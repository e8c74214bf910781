# league_bot/handlers/user/league.py
from __future__ import annotations

from aiogram import Router, html
from aiogram.filters import Command
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import Student, tier_name
from league_bot.errors import LeagueError
from league_bot.services.membership import MembershipService
from league_bot.services.queries import AllTimeView, LastWeekView, QueryService, StandingsView
from league_bot.utils.week_clock import WeekClock

router = Router()

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}

AWARD_LABELS = {
    "most_improved": "📈 Most improved",
    "speed_demon": "⚡ Speed demon",
    "accuracy_king": "🎯 Accuracy king",
    "explorer": "🧭 Explorer",
}


def _marker(rank: int) -> str:
    return MEDALS.get(rank, f"{rank}.")


# -------------------------------------------------
# Formatting
# -------------------------------------------------

def format_standings(view: StandingsView | None) -> str:
    if view is None:
        return "ℹ️ No league data yet. Earn some XP to join this week's league!"

    lines = [
        f"🏆 <b>{html.quote(view.league_name)} League</b>",
        f"📅 <b>Week (UTC start):</b> {view.week_start:%Y-%m-%d %H:%M}",
        f"⬆️ Top {view.promote_count} promote · ⬇️ bottom {view.demote_count} demote",
        "",
    ]
    for row in view.members:
        you = " <b>(you)</b>" if row.is_me else ""
        lines.append(f"{_marker(row.rank)} {html.quote(row.display_name)} — <b>{row.weekly_xp}</b> XP{you}")

    lines.append("")
    lines.append(
        f"📍 <b>Your rank:</b> {view.my_rank} / {view.total_members} · <b>{view.my_weekly_xp}</b> XP"
    )
    return "\n".join(lines)


def format_last_week(view: LastWeekView) -> str:
    if view.league is None:
        lines = ["ℹ️ You did not play in a league last week."]
    else:
        lines = [
            f"🗓 <b>Last week — {html.quote(view.league.league_name)} League</b>",
        ]
        if view.my_rank is None:
            lines.append("⏳ Results are not final yet.")
        else:
            lines.append(f"📍 Final rank: <b>{view.my_rank}</b> / {view.league.total_members}")

        if view.tier_change is not None:
            arrow = "⬆️ Promoted" if view.tier_change.is_promotion else "⬇️ Demoted"
            lines.append(f"{arrow}: {view.tier_change.from_name} → {view.tier_change.to_name}")

    if view.awards:
        lines.append("")
        lines.append("🏅 <b>Your awards</b>")
        for a in view.awards:
            label = AWARD_LABELS.get(a.award_type.value, a.award_type.value)
            lines.append(f"• {label}: {html.quote(a.value)}")

    return "\n".join(lines)


def format_all_time(view: AllTimeView) -> str:
    lines = ["🌟 <b>All-time leaderboard</b>", ""]
    if not view.members:
        lines.append("ℹ️ No XP earned yet.")
        return "\n".join(lines)

    for row in view.members:
        you = " <b>(you)</b>" if row.is_me else ""
        lines.append(
            f"{_marker(row.rank)} {html.quote(row.display_name)} — <b>{row.total_xp}</b> XP "
            f"({tier_name(row.tier)}){you}"
        )

    me = view.my_entry
    if me is not None and not any(r.is_me for r in view.members):
        lines.append("")
        lines.append(f"📍 <b>Your rank:</b> {me.rank} · <b>{me.total_xp}</b> XP")
    return "\n".join(lines)


# -------------------------------------------------
# Commands
# -------------------------------------------------

@router.message(Command("league"))
async def league_cmd(message: Message, session: AsyncSession, student: Student, clock: WeekClock) -> None:
    try:
        await MembershipService.ensure_membership(session, student_id=student.id, clock=clock)
    except LeagueError as e:
        await message.answer(f"⚠️ {html.quote(str(e))}")
        return

    view = await QueryService.current_standings(session, student_id=student.id, clock=clock)
    await message.answer(format_standings(view))


@router.message(Command("lastweek"))
async def last_week_cmd(message: Message, session: AsyncSession, student: Student, clock: WeekClock) -> None:
    view = await QueryService.last_week_result(session, student_id=student.id, clock=clock)
    await message.answer(format_last_week(view))


@router.message(Command("alltime"))
async def all_time_cmd(message: Message, session: AsyncSession, student: Student) -> None:
    view = await QueryService.all_time_leaderboard(session, student_id=student.id)
    await message.answer(format_all_time(view))
