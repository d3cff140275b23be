# backend/linkguess/api/deps.py
# Dépendances FastAPI : conteneur des services (construit au démarrage), identité et pseudo du joueur.

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from linkguess.core.logging_config import get_loggers
from linkguess.core.retry import RetryPolicy
from linkguess.db.game_store import GameStore
from linkguess.services.attempts.attempt_tracker import AttemptTracker
from linkguess.services.comment_rewards import CommentRewardGuard
from linkguess.services.leaderboard import LeaderboardService
from linkguess.services.preload import PreloadCache
from linkguess.services.profile_cache import ProfileCache
from linkguess.services.propagation import LeaderboardCoordinator
from linkguess.services.request_dedup import RequestDeduplicator

logger_generic, logger_errors = get_loggers()


@dataclass
class GameServices:
    """Instances propres au processus, partagées par toutes les requêtes."""

    store: GameStore
    redis: Redis
    profile_cache: ProfileCache
    leaderboard: LeaderboardService
    coordinator: LeaderboardCoordinator
    attempts: AttemptTracker
    comments: CommentRewardGuard
    dedup: RequestDeduplicator
    preload: PreloadCache


def build_services(db: AsyncIOMotorDatabase, redis: Redis, retry_policy: RetryPolicy | None = None) -> GameServices:
    """Construire le graphe de services.

    Args:
        db: Base MongoDB.
        redis: Client Redis (cache profils + classement).
        retry_policy: Politique de retry commune (défaut : settings).

    Returns:
        GameServices: Conteneur à stocker dans `app.state.services`.
    """
    store = GameStore(db)
    profile_cache = ProfileCache(redis)
    leaderboard = LeaderboardService(redis, store)
    coordinator = LeaderboardCoordinator(profile_cache, leaderboard)
    return GameServices(
        store=store,
        redis=redis,
        profile_cache=profile_cache,
        leaderboard=leaderboard,
        coordinator=coordinator,
        attempts=AttemptTracker(store, coordinator, retry_policy=retry_policy),
        comments=CommentRewardGuard(store, coordinator, retry_policy=retry_policy),
        dedup=RequestDeduplicator(),
        preload=PreloadCache(),
    )


def get_services(request: Request) -> GameServices:
    return request.app.state.services


def get_current_user_id(
    x_user_id: Annotated[str | None, Header(description="Identifiant du joueur transmis par la plateforme")] = None,
) -> str:
    """Dépendance FastAPI : identité du joueur.

    Description:
        L'identité est émise par la plateforme hôte et transmise dans l'en-tête `X-User-Id`.

    Raises:
        HTTPException: 401 si l'en-tête est absent ou vide.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id.strip()


Services = Annotated[GameServices, Depends(get_services)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]


async def sync_username(
    services: Services,
    user_id: CurrentUserId,
    x_username: Annotated[str | None, Header(description="Pseudo du joueur transmis par la plateforme")] = None,
) -> None:
    """Dépendance FastAPI : tenir à jour le pseudo du joueur.

    Description:
        Si l'en-tête `X-Username` diffère du pseudo connu, le profil est créé ou mis à jour
        puis son entrée de cache invalidée. Un échec est journalisé sans bloquer la requête.
    """
    if not x_username or not x_username.strip():
        return
    username = x_username.strip()
    profile = await services.profile_cache.get_or_load(user_id, services.store.get_user)
    if profile is not None and profile.username == username:
        return
    try:
        await services.store.upsert_user(user_id, username=username)
        await services.profile_cache.invalidate(user_id)
    except (PyMongoError, RedisError) as e:
        logger_errors.error(f"[deps] username sync failed for {user_id}: {e!r}")
        return
    logger_generic.info(f"[deps] username of {user_id} set to {username!r}")
