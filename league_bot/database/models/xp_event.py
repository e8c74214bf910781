# league_bot/database/models/xp_event.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from league_bot.database.base import Base


class XpEvent(Base):
    """
    Immutable ledger of XP credits.

    Callers pass a stable (ref_type, ref_id) for the originating record
    (ref_type="attempt", ref_id=<attempt id>); the unique constraint turns a
    retried credit into a no-op.
    """
    __tablename__ = "xp_events"
    __table_args__ = (
        UniqueConstraint("ref_type", "ref_id", name="uq_xp_events_ref"),
        CheckConstraint("amount > 0", name="ck_xp_events_amount_positive"),
        Index("ix_xp_events_week_student", "week_start", "student_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), index=True)
    membership_id: Mapped[int] = mapped_column(ForeignKey("league_memberships.id", ondelete="CASCADE"), index=True)

    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    day_utc: Mapped[date] = mapped_column(Date)

    ref_type: Mapped[str] = mapped_column(String(32))
    ref_id: Mapped[str] = mapped_column(String(64))
    amount: Mapped[int] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
