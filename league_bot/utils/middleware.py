# league_bot/utils/middleware.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from league_bot.database.repo.students_repo import upsert_student_from_event
from league_bot.database.session import Database


class DbSessionMiddleware(BaseMiddleware):
    """
    Creates a DB session per update and injects it into handler data as `session`.

    Also upserts the current Telegram user as a Student (if present) and
    injects it as `student`. The upsert is committed before the handler runs,
    so no write lock is held while handlers start their own transactions
    (the rollover command does). Handler work auto-commits on success and
    rolls back on error.
    """

    def __init__(self, db: Database, *, default_grade: int = 4) -> None:
        self.db = db
        self.default_grade = default_grade

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        async with self.db.SessionLocal() as session:
            data["session"] = session

            student = await upsert_student_from_event(session, event, default_grade=self.default_grade)
            if student is not None:
                await session.commit()
                data["student"] = student

            try:
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise
