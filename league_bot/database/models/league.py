# league_bot/database/models/league.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from league_bot.database.base import Base

MAX_LEAGUE_SIZE = 25


class League(Base):
    """
    A capacity-bounded group for one (tier, grade, week).
    Siblings with the same key absorb overflow. Never deleted.

    week_start / week_end are naive UTC instants; week_end is exclusive.
    """
    __tablename__ = "leagues"
    __table_args__ = (
        CheckConstraint("tier BETWEEN 1 AND 5", name="ck_leagues_tier_range"),
        CheckConstraint(
            f"member_count >= 0 AND member_count <= {MAX_LEAGUE_SIZE}",
            name="ck_leagues_member_count_capacity",
        ),
        Index("ix_leagues_lookup", "tier", "grade", "week_start", "member_count"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    tier: Mapped[int] = mapped_column(Integer)
    grade: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(32))

    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=False), index=True)
    week_end: Mapped[datetime] = mapped_column(DateTime(timezone=False))

    # seats reserved; incremented conditionally in the joining transaction
    member_count: Mapped[int] = mapped_column(Integer, default=0)

    # rollover marker, set once in the league's rollover transaction
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    members: Mapped[list["LeagueMembership"]] = relationship(
        "LeagueMembership",
        back_populates="league",
        order_by="LeagueMembership.id",
    )


class LeagueMembership(Base):
    """
    One row per student per week (enforced by uq_league_memberships_student_week).
    rank / promoted / demoted / from_tier / to_tier are written by the rollover only.
    """
    __tablename__ = "league_memberships"
    __table_args__ = (
        UniqueConstraint("student_id", "week_start", name="uq_league_memberships_student_week"),
        CheckConstraint("weekly_xp >= 0", name="ck_league_memberships_weekly_xp_nonneg"),
        Index("ix_league_memberships_league_xp", "league_id", "weekly_xp"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), index=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id", ondelete="CASCADE"), index=True)

    # copy of League.week_start so the per-week uniqueness is a plain constraint
    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=False), index=True)

    weekly_xp: Mapped[int] = mapped_column(Integer, default=0)

    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    promoted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    demoted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    from_tier: Mapped[int | None] = mapped_column(Integer, nullable=True)
    to_tier: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    league: Mapped["League"] = relationship("League", back_populates="members")
