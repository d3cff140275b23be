# backend/linkguess/db/redis_client.py
# Client Redis asynchrone partagé (cache des profils + leaderboard trié).

from redis.asyncio import Redis, from_url

from linkguess.core.settings import get_settings


def create_redis(url: str | None = None) -> Redis:
    """Construit un client Redis asynchrone.

    Args:
        url: URL Redis (défaut : `settings.redis_url`).

    Returns:
        Redis: Client avec réponses décodées en `str`.
    """
    return from_url(url or get_settings().redis_url, decode_responses=True)


async def redis_ping(redis: Redis) -> bool:
    return bool(await redis.ping())
