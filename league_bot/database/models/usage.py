# league_bot/database/models/usage.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from league_bot.database.base import Base


class UsageLog(Base):
    """
    Per (student, UTC day) usage counters. xp_earned is a reporting side-channel.
    """
    __tablename__ = "usage_logs"
    __table_args__ = (
        UniqueConstraint("student_id", "day_utc", name="uq_usage_logs_student_day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), index=True)
    day_utc: Mapped[date] = mapped_column(Date)

    xp_earned: Mapped[int] = mapped_column(Integer, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )
