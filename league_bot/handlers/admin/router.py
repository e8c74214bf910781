# league_bot/handlers/admin/router.py
from aiogram import Router

from league_bot.handlers.admin.rollover import router as rollover_router

router = Router(name="admin")

router.include_router(rollover_router)
