# league_bot/utils/week_clock.py
"""
League week boundaries.

Weeks run Monday 00:00 to the next Monday 00:00 (exclusive) in a fixed civil
UTC offset with no daylight-saving adjustment. All instants handed to the
database are naive UTC, matching the DateTime(timezone=False) columns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable

WEEK = timedelta(days=7)
ONE_MS = timedelta(milliseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_naive_utc(ts: datetime) -> datetime:
    """Aware -> naive UTC. Naive input is assumed to already be UTC."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True, slots=True)
class WeekWindow:
    start: datetime  # naive UTC, inclusive
    end: datetime  # naive UTC, exclusive

    @property
    def last_instant(self) -> datetime:
        return self.end - ONE_MS

    def contains(self, ts: datetime) -> bool:
        ts = to_naive_utc(ts)
        return self.start <= ts < self.end

    def previous(self) -> "WeekWindow":
        return WeekWindow(start=self.start - WEEK, end=self.start)

    def next(self) -> "WeekWindow":
        return WeekWindow(start=self.end, end=self.end + WEEK)


@dataclass(frozen=True, slots=True)
class WeekClock:
    utc_offset_minutes: int = 330
    now_fn: Callable[[], datetime] = field(default=utc_now, compare=False, repr=False)

    @classmethod
    def fixed(cls, now: datetime, *, utc_offset_minutes: int = 330) -> "WeekClock":
        """Clock frozen at `now` (tests, backfills)."""
        return cls(utc_offset_minutes=utc_offset_minutes, now_fn=lambda: now)

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(minutes=self.utc_offset_minutes))

    def now(self) -> datetime:
        """Current instant as naive UTC."""
        return to_naive_utc(self.now_fn())

    def bounds(self, now: datetime) -> WeekWindow:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        local = now.astimezone(self.tz)
        monday = (local - timedelta(days=local.weekday())).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        start = to_naive_utc(monday)
        return WeekWindow(start=start, end=start + WEEK)

    def current_week(self) -> WeekWindow:
        return self.bounds(self.now())

    def previous_week(self) -> WeekWindow:
        return self.current_week().previous()

    def today_utc(self) -> date:
        return self.now().date()
