# league_bot/database/models/attempt.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from league_bot.database.base import Base


class Attempt(Base):
    """
    Scored learning attempt. Written by the practice side; read-only here.
    """
    __tablename__ = "attempts"
    __table_args__ = (
        Index("ix_attempts_student_created", "student_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), index=True)

    question_id: Mapped[str] = mapped_column(String(64))
    topic_id: Mapped[str] = mapped_column(String(64), index=True)

    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    is_bonus_question: Mapped[bool] = mapped_column(Boolean, default=False)
    time_taken_ms: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
