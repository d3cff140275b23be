# backend/linkguess/services/propagation.py
# Propagation best-effort d'un changement de points : invalidation du cache profil + incrément du classement.

from __future__ import annotations

import asyncio

from linkguess.core.logging_config import get_loggers
from linkguess.models.results import PropagationStatus
from linkguess.services.leaderboard import LeaderboardService
from linkguess.services.profile_cache import ProfileCache

logger_generic, logger_errors = get_loggers()


class LeaderboardCoordinator:
    """Propage un changement de points vers les vues dérivées.

    Description:
        Les deux opérations (suppression de l'entrée de cache, ZINCRBY du classement) sont
        lancées en parallèle et indépendantes : l'échec de l'une n'annule pas l'autre et
        n'est jamais levé vers l'appelant. Le total persisté reste la source de vérité ;
        le cache se résorbe au TTL, le classement au prochain incrément ou à `rebuild()`.
    """

    def __init__(self, profile_cache: ProfileCache, leaderboard: LeaderboardService):
        self.profile_cache = profile_cache
        self.leaderboard = leaderboard

    async def on_points_awarded(self, user_id: str, delta: int) -> PropagationStatus:
        """Propager un crédit (ou débit) de points.

        Args:
            user_id: Joueur concerné.
            delta: Variation de points (peut être négative).

        Returns:
            PropagationStatus: Succès de chacune des deux opérations.
        """
        cache_result, leaderboard_result = await asyncio.gather(
            self.profile_cache.invalidate(user_id),
            self.leaderboard.increment_score(user_id, delta),
            return_exceptions=True,
        )

        status = PropagationStatus(
            cache_invalidated=not isinstance(cache_result, BaseException),
            leaderboard_updated=not isinstance(leaderboard_result, BaseException),
        )
        if not status.cache_invalidated:
            logger_errors.error(f"[propagation] cache invalidation failed for {user_id}: {cache_result!r}")
        if not status.leaderboard_updated:
            logger_errors.error(
                f"[propagation] leaderboard increment failed for {user_id} (delta={delta}): {leaderboard_result!r}"
            )
        if status.cache_invalidated and status.leaderboard_updated:
            logger_generic.info(f"[propagation] {user_id} delta={delta} propagated")
        return status
