# league_bot/services/awards.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.models import AwardType
from league_bot.database.repo.attempts_repo import AttemptRow, list_attempts
from league_bot.database.repo.awards_repo import save_awards
from league_bot.database.repo.league_repo import MemberRow
from league_bot.utils.week_clock import WeekWindow

log = logging.getLogger(__name__)

FAST_MIN_MS = 3000
FAST_MAX_MS = 10000
MIN_FAST_ANSWERS = 5
MIN_ATTEMPTS_FOR_ACCURACY = 5
MIN_ACCURACY = 0.90
MIN_TOPICS = 2


@dataclass(frozen=True, slots=True)
class AwardCandidate:
    student_id: int
    award_type: AwardType
    value: str


def _first_max(scores: dict[int, float]) -> tuple[int, float] | None:
    """Highest score; on ties the first inserted key wins."""
    best: tuple[int, float] | None = None
    for sid, score in scores.items():
        if best is None or score > best[1]:
            best = (sid, score)
    return best


def most_improved(members: Sequence[MemberRow]) -> AwardCandidate | None:
    # Runner-up by weekly XP, not a week-over-week delta: the outright
    # winner is excluded on purpose.
    if len(members) < 2:
        return None
    runner_up = members[1]
    return AwardCandidate(runner_up.student_id, AwardType.MOST_IMPROVED, f"{runner_up.weekly_xp} XP")


def speed_demon(attempts: Sequence[AttemptRow]) -> AwardCandidate | None:
    counts: dict[int, float] = {}
    for a in attempts:
        if a.is_correct and FAST_MIN_MS <= a.time_taken_ms < FAST_MAX_MS:
            counts[a.student_id] = counts.get(a.student_id, 0) + 1

    best = _first_max({sid: n for sid, n in counts.items() if n >= MIN_FAST_ANSWERS})
    if best is None:
        return None
    sid, n = best
    return AwardCandidate(sid, AwardType.SPEED_DEMON, f"{int(n)} fast answers")


def accuracy_king(attempts: Sequence[AttemptRow]) -> AwardCandidate | None:
    totals: dict[int, list[int]] = {}
    for a in attempts:
        correct_total = totals.setdefault(a.student_id, [0, 0])
        correct_total[1] += 1
        if a.is_correct:
            correct_total[0] += 1

    qualifying: dict[int, float] = {}
    for sid, (correct, total) in totals.items():
        if total < MIN_ATTEMPTS_FOR_ACCURACY:
            continue
        pct = correct / total
        if pct >= MIN_ACCURACY:
            qualifying[sid] = pct

    best = _first_max(qualifying)
    if best is None:
        return None
    sid, pct = best
    return AwardCandidate(sid, AwardType.ACCURACY_KING, f"{int(pct * 100 + 0.5)}% accuracy")


def explorer(attempts: Sequence[AttemptRow]) -> AwardCandidate | None:
    topics: dict[int, set[str]] = {}
    for a in attempts:
        topics.setdefault(a.student_id, set()).add(a.topic_id)

    best = _first_max({sid: len(t) for sid, t in topics.items() if len(t) >= MIN_TOPICS})
    if best is None:
        return None
    sid, n = best
    return AwardCandidate(sid, AwardType.EXPLORER, f"{int(n)} topics")


def compute_awards(
    members: Sequence[MemberRow],
    attempts: Sequence[AttemptRow],
) -> list[AwardCandidate]:
    """
    Weekly superlatives for one league. `members` must be in ranking order;
    `attempts` must already be limited to the members and the week.
    Each rule yields at most one winner; one student may win several.
    """
    member_ids = {m.student_id for m in members}
    scoped = [a for a in attempts if a.student_id in member_ids]

    out: list[AwardCandidate] = []
    winner = most_improved(members)
    if winner is not None:
        out.append(winner)
    for rule in (speed_demon, accuracy_king, explorer):
        winner = rule(scoped)
        if winner is not None:
            out.append(winner)
    return out


class AwardEngine:
    @staticmethod
    async def award_league(
        session: AsyncSession,
        *,
        league_id: int,
        window: WeekWindow,
        members: Sequence[MemberRow],
    ) -> list[AwardCandidate]:
        """
        Computes and stores the league's awards. Already stored
        (student, week, type) rows are left untouched.
        """
        attempts = await list_attempts(session, [m.student_id for m in members], window)
        awards = compute_awards(members, attempts)

        inserted = await save_awards(
            session,
            league_id=league_id,
            week_start=window.start,
            awards=[(a.student_id, a.award_type, a.value) for a in awards],
        )
        log.info(
            "League %s awards: %s computed, %s stored",
            league_id, len(awards), inserted,
        )
        return awards
