# backend/linkguess/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI

from linkguess.api.deps import build_services
from linkguess.api.routes import routers
from linkguess.core.exception_handlers import register_exception_handlers
from linkguess.core.logging_config import get_loggers
from linkguess.core.settings import get_settings

settings = get_settings()
logger_generic, logger_errors = get_loggers()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- startup ---
    from linkguess.db.mongodb import client, get_database
    from linkguess.db.redis_client import create_redis
    from linkguess.db.seed_indexes import ensure_indexes

    if settings.seed_indexes_on_startup:
        await ensure_indexes()

    redis = create_redis()
    app.state.services = build_services(get_database(), redis)
    logger_generic.info(f"{settings.app_name} started ({settings.environment})")

    yield  # l'app tourne ici

    # --- shutdown ---
    await redis.aclose()
    client.close()


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Construire l'application FastAPI.

    Args:
        use_lifespan: Brancher le démarrage Mongo/Redis (désactivé par les tests,
            qui injectent `app.state.services`).
    """
    app = FastAPI(title=f"{settings.app_name} API", lifespan=lifespan if use_lifespan else None)
    register_exception_handlers(app)
    for r in routers:
        app.include_router(r)
    return app


app = create_app()
