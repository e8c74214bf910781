# league_bot/database/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def transactional(session: AsyncSession):
    """
    Safe transactional context for SQLAlchemy 2.x autobegin.

    - If a transaction is already active, use SAVEPOINT (begin_nested);
      the outer owner commits.
    - Otherwise, start a new transaction and commit it on exit.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield
    else:
        async with session.begin():
            yield


def upsert_insert(session: AsyncSession, model):
    """
    Dialect `insert()` that supports ON CONFLICT (SQLite / PostgreSQL).
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise RuntimeError(f"ON CONFLICT upserts are not supported on {dialect!r}")
