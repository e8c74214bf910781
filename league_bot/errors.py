# league_bot/errors.py
from __future__ import annotations


class LeagueError(Exception):
    """Base for league subsystem errors. `retryable` tells callers a retry is safe."""

    retryable: bool = False


class NotFound(LeagueError):
    """Student, league or membership does not exist."""


class CapacityExceeded(LeagueError):
    """
    A league filled up between lookup and seat reservation.
    Internal: the directory falls back to a sibling league.
    """

    def __init__(self, league_id: int) -> None:
        super().__init__(f"League {league_id} is full")
        self.league_id = league_id


class ConcurrentModification(LeagueError):
    """Duplicate-insert race lost to a concurrent writer."""

    retryable = True


class PartialRolloverFailure(LeagueError):
    """One league's rollover transaction failed; siblings are unaffected."""

    def __init__(self, league_id: int, cause: BaseException) -> None:
        super().__init__(f"Rollover failed for league {league_id}: {cause!r}")
        self.league_id = league_id
        self.cause = cause


class InvalidState(LeagueError):
    """Operation is not allowed in the current week state (e.g. week not closed yet)."""


class StorageUnavailable(LeagueError):
    """Storage layer failed transiently; the operation can be retried."""

    retryable = True
