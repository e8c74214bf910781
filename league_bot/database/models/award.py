# league_bot/database/models/award.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from league_bot.database.base import Base


class AwardType(str, enum.Enum):
    MOST_IMPROVED = "most_improved"
    SPEED_DEMON = "speed_demon"
    ACCURACY_KING = "accuracy_king"
    EXPLORER = "explorer"


class WeeklyAward(Base):
    """
    Immutable weekly superlative. One row per (student, week, award type);
    re-inserts are skipped.
    """
    __tablename__ = "weekly_awards"
    __table_args__ = (
        UniqueConstraint("student_id", "week_start", "award_type", name="uq_weekly_awards_student_week_type"),
        Index("ix_weekly_awards_week", "week_start"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), index=True)
    league_id: Mapped[int | None] = mapped_column(
        ForeignKey("leagues.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    award_type: Mapped[AwardType] = mapped_column(
        Enum(AwardType, native_enum=False, length=32, values_callable=lambda e: [m.value for m in e])
    )
    value: Mapped[str] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
