# league_bot/handlers/user/router.py
from aiogram import Router

from league_bot.handlers.user.league import router as league_router
from league_bot.handlers.user.profile import router as profile_router

router = Router(name="user")

router.include_router(league_router)
router.include_router(profile_router)
