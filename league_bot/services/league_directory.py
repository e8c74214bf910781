# league_bot/services/league_directory.py
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.repo.league_repo import (
    create_league_with_seat,
    find_leagues_with_space,
    reserve_seat,
)
from league_bot.errors import CapacityExceeded
from league_bot.utils.week_clock import WeekWindow

log = logging.getLogger(__name__)


class LeagueDirectory:
    """
    Strict seat reservation: a seat is taken with a conditional increment in
    the caller's transaction, so a league can never go past MAX_LEAGUE_SIZE.
    """

    @staticmethod
    async def _take_seat(session: AsyncSession, league_id: int) -> int:
        if not await reserve_seat(session, league_id):
            raise CapacityExceeded(league_id)
        return league_id

    @staticmethod
    async def ensure_league(
        session: AsyncSession,
        *,
        tier: int,
        grade: int,
        window: WeekWindow,
    ) -> int:
        """
        Returns the id of a league for (tier, grade, week) with one seat
        reserved for the caller. Must run inside the transaction that creates
        the membership; rolling that back releases the seat.
        """
        candidates = await find_leagues_with_space(
            session, tier=tier, grade=grade, week_start=window.start
        )

        for league_id in candidates:
            try:
                return await LeagueDirectory._take_seat(session, league_id)
            except CapacityExceeded:
                # filled between lookup and reservation -> try a sibling
                log.debug("League %s filled up, trying next sibling", league_id)
                continue

        league = await create_league_with_seat(session, tier=tier, grade=grade, window=window)
        log.info(
            "Created league id=%s tier=%s grade=%s week_start=%s",
            league.id, tier, grade, window.start.isoformat(),
        )
        return int(league.id)
