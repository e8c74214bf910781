# league_bot/database/models/student.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from league_bot.database.base import Base

MIN_TIER = 1
MAX_TIER = 5

TIER_NAMES: dict[int, str] = {
    1: "Bronze",
    2: "Silver",
    3: "Gold",
    4: "Diamond",
    5: "Champion",
}


def clamp_tier(tier: int) -> int:
    return max(MIN_TIER, min(MAX_TIER, int(tier)))


def tier_name(tier: int) -> str:
    return TIER_NAMES.get(int(tier), TIER_NAMES[MIN_TIER])


class Student(Base):
    """
    Owned by the identity side; this subsystem reads grade/tier and
    mutates only the tier and the lifetime XP counter.
    """
    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("current_league_tier BETWEEN 1 AND 5", name="ck_students_tier_range"),
        CheckConstraint("total_lifetime_xp >= 0", name="ck_students_lifetime_xp_nonneg"),
        Index("ix_students_lifetime_xp", "total_lifetime_xp"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    telegram_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True)

    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    grade: Mapped[int] = mapped_column(Integer, default=4)

    current_league_tier: Mapped[int] = mapped_column(Integer, default=MIN_TIER)
    total_lifetime_xp: Mapped[int] = mapped_column(Integer, default=0)

    hidden_from_leaderboard: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )
