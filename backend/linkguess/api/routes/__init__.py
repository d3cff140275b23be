# backend/linkguess/api/routes/__init__.py

from .attempts import router as attempts_router
from .base import router as base_router
from .challenges import router as challenges_router
from .leaderboard import router as leaderboard_router
from .my_profile import router as my_profile_router
from .triggers import router as triggers_router

routers = [
    base_router,
    attempts_router,
    challenges_router,
    leaderboard_router,
    my_profile_router,
    triggers_router,
]
