# league_bot/scripts/run_rollover.py
"""
Closes last week's leagues once, outside the bot process (system cron, CI).

    python -m league_bot.scripts.run_rollover
"""
from __future__ import annotations

import asyncio
import json
import logging

from league_bot.config import Settings
from league_bot.database.session import Database
from league_bot.main import setup_logging
from league_bot.scheduler.jobs import process_leagues_job

log = logging.getLogger(__name__)


async def main() -> int:
    settings = Settings.load(require_bot_token=False)
    setup_logging(settings.is_dev)

    db = Database(settings.database_url)
    await db.init_models()
    try:
        summary = await process_leagues_job(bot=None, db=db, settings=settings)
    finally:
        await db.close()

    if summary is None:
        return 1

    print(json.dumps(summary.as_dict()))
    return 2 if summary.failures else 0


def _entry() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    _entry()
