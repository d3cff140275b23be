# backend/linkguess/services/profile_cache.py
# Cache Redis des profils joueurs (TTL court, invalidation explicite après un changement de points).

from __future__ import annotations

from collections.abc import Awaitable, Callable

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from linkguess.core.logging_config import get_loggers
from linkguess.core.settings import get_settings
from linkguess.models.user import UserProfile

logger_generic, logger_errors = get_loggers()


def profile_key(user_id: str) -> str:
    return f"user:{user_id}:profile"


class ProfileCache:
    """Cache de profils adossé à Redis.

    Description:
        Purement consultatif : une entrée perdue ou périmée ne coûte qu'une lecture Mongo.
        Une invalidation manquée se résorbe à l'expiration du TTL (5 minutes par défaut).
    """

    def __init__(self, redis: Redis, ttl_s: int | None = None):
        self.redis = redis
        self.ttl_s = ttl_s if ttl_s is not None else get_settings().profile_cache_ttl_s

    async def get(self, user_id: str) -> UserProfile | None:
        raw = await self.redis.get(profile_key(user_id))
        if raw is None:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError:
            logger_generic.warning(f"[profile_cache] dropping unreadable entry for {user_id}")
            await self.redis.delete(profile_key(user_id))
            return None

    async def set(self, profile: UserProfile) -> None:
        await self.redis.set(profile_key(profile.user_id), profile.model_dump_json(), ex=self.ttl_s)

    async def invalidate(self, user_id: str) -> None:
        """Supprimer l'entrée d'un joueur (les erreurs Redis remontent à l'appelant)."""
        await self.redis.delete(profile_key(user_id))

    async def get_or_load(
        self, user_id: str, loader: Callable[[str], Awaitable[UserProfile | None]]
    ) -> UserProfile | None:
        """Lire le profil depuis le cache, sinon via `loader` puis mettre en cache.

        Description:
            Une panne Redis n'empêche pas la lecture : elle est journalisée et le profil
            est servi depuis `loader`.

        Args:
            user_id: Joueur.
            loader: Lecture de la source de vérité (ex. `GameStore.get_user`).

        Returns:
            UserProfile | None: Profil, None si inconnu.
        """
        try:
            cached = await self.get(user_id)
        except RedisError as e:
            logger_errors.error(f"[profile_cache] read failed for {user_id}: {e!r}")
            cached = None
        if cached is not None:
            return cached

        profile = await loader(user_id)
        if profile is not None:
            try:
                await self.set(profile)
            except RedisError as e:
                logger_errors.error(f"[profile_cache] write failed for {user_id}: {e!r}")
        return profile
