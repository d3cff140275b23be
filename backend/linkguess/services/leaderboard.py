# backend/linkguess/services/leaderboard.py
# Classement : sorted set Redis (incréments atomiques, rangs) projeté sur les profils Mongo.

from __future__ import annotations

from redis.asyncio import Redis

from linkguess.core.logging_config import get_loggers
from linkguess.core.settings import get_settings
from linkguess.db.game_store import GameStore
from linkguess.models.user import LeaderboardEntry, LeaderboardPage, UserProfile, UserRank

logger_generic, logger_errors = get_loggers()


class LeaderboardService:
    """Classement par points.

    Description:
        Le sorted set `leaderboard:points` est une vue dérivée des totaux persistés
        (`user_profiles.total_points`). Rang de compétition : 1 + nombre de scores
        strictement supérieurs (ex æquo au même rang). Les modérateurs ne sont jamais classés.
    """

    def __init__(self, redis: Redis, store: GameStore, key: str | None = None):
        self.redis = redis
        self.store = store
        self.key = key or get_settings().leaderboard_key

    async def increment_score(self, user_id: str, delta: int) -> float | None:
        """Incrémenter le score d'un joueur (ZINCRBY).

        Args:
            user_id: Joueur.
            delta: Variation de points (négative pour une dépense).

        Returns:
            float | None: Nouveau score, None si le joueur est modérateur.
        """
        profile = await self.store.get_user(user_id)
        if profile is not None and profile.is_moderator:
            logger_generic.info(f"[leaderboard] skipping moderator {user_id}")
            return None
        return await self.redis.zincrby(self.key, delta, user_id)

    async def get_user_score(self, user_id: str) -> int | None:
        score = await self.redis.zscore(self.key, user_id)
        return int(score) if score is not None else None

    async def get_user_rank(self, user_id: str) -> UserRank:
        """Rang de compétition d'un joueur (rank None s'il n'est pas classé)."""
        score = await self.redis.zscore(self.key, user_id)
        if score is None:
            return UserRank(user_id=user_id)
        higher = await self.redis.zcount(self.key, f"({score}", "+inf")
        profile = await self.store.get_user(user_id)
        return UserRank(
            user_id=user_id,
            rank=higher + 1,
            total_points=int(score),
            level=profile.level if profile else 1,
        )

    async def get_top(self, limit: int = 10, offset: int = 0, current_user_id: str | None = None) -> LeaderboardPage:
        """Page du classement.

        Description:
            Lit le sorted set ; s'il est vide (Redis vidé, premier démarrage), la page est
            calculée depuis Mongo, source de vérité.

        Args:
            limit: Nombre d'entrées.
            offset: Décalage (0 = tête du classement).
            current_user_id: Joueur courant (marqué dans les entrées, rang renvoyé).

        Returns:
            LeaderboardPage: Entrées, rang du joueur courant, nombre de joueurs classés.
        """
        total = await self.redis.zcard(self.key)
        if total == 0:
            return await self._top_from_store(limit, offset, current_user_id)

        rows = await self.redis.zrevrange(self.key, offset, offset + limit - 1, withscores=True)
        if not rows:
            entries: list[LeaderboardEntry] = []
        else:
            profiles = await self.store.get_users([member for member, _ in rows])
            first_rank = await self.redis.zcount(self.key, f"({rows[0][1]}", "+inf") + 1
            entries = self._project(
                [(member, int(score)) for member, score in rows],
                profiles,
                first_rank,
                offset,
                current_user_id,
            )

        user_rank = await self.get_user_rank(current_user_id) if current_user_id else None
        return LeaderboardPage(entries=entries, user_rank=user_rank, total_players=total)

    async def _top_from_store(self, limit: int, offset: int, current_user_id: str | None) -> LeaderboardPage:
        profiles = await self.store.list_users_by_points(limit=limit, skip=offset)
        by_id = {p.user_id: p for p in profiles}
        scored = [(p.user_id, p.total_points) for p in profiles]
        # Rang exact du premier de la page : on relit les profils qui le précèdent
        first_rank = offset + 1
        if offset and scored:
            head = await self.store.list_users_by_points(limit=offset, skip=0)
            first_rank = sum(1 for p in head if p.total_points > scored[0][1]) + 1
        entries = self._project(scored, by_id, first_rank, offset, current_user_id)
        total = await self.store.count_ranked_users()
        return LeaderboardPage(entries=entries, user_rank=None, total_players=total)

    def _project(
        self,
        scored: list[tuple[str, int]],
        profiles: dict[str, UserProfile],
        first_rank: int,
        offset: int,
        current_user_id: str | None,
    ) -> list[LeaderboardEntry]:
        entries: list[LeaderboardEntry] = []
        rank = first_rank
        previous: int | None = None
        for position, (user_id, points) in enumerate(scored):
            if previous is not None and points != previous:
                rank = offset + position + 1
            previous = points
            profile = profiles.get(user_id)
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    user_id=user_id,
                    username=profile.username if profile else "",
                    total_points=points,
                    level=profile.level if profile else 1,
                    challenges_solved=profile.challenges_solved if profile else 0,
                    is_current_user=user_id == current_user_id,
                )
            )
        return entries

    async def rebuild(self) -> int:
        """Reconstruire le sorted set depuis les totaux persistés.

        Returns:
            int: Nombre de joueurs classés.
        """
        profiles = await self.store.list_users_by_points(limit=0)
        mapping = {p.user_id: p.total_points for p in profiles}
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(self.key)
            if mapping:
                pipe.zadd(self.key, mapping)
            await pipe.execute()
        logger_generic.info(f"[leaderboard] rebuilt with {len(mapping)} players")
        return len(mapping)
