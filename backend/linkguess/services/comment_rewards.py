# backend/linkguess/services/comment_rewards.py
# Récompense unique du créateur pour chaque commentaire reçu (insert-if-absent atomique côté Mongo).

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from bson import ObjectId

from linkguess.core.bson_utils import to_object_id
from linkguess.core.errors import GameError, NotFound
from linkguess.core.logging_config import get_loggers
from linkguess.core.retry import RetryPolicy, with_retry
from linkguess.db.game_store import GameStore
from linkguess.models.comment_reward import CommentReward, CreatorCommentStats
from linkguess.models.results import ServiceResult
from linkguess.services.propagation import LeaderboardCoordinator
from linkguess.services.score_policy import COMMENT_REWARD

logger_generic, logger_errors = get_loggers()

T = TypeVar("T")


class CommentRewardGuard:
    """Accorde au plus une récompense par commentaire.

    Description:
        L'exclusion mutuelle entre requêtes concurrentes est déléguée à l'index unique
        `comment_rewards.comment_id`, et la ligne est écrite dans la même transaction que
        le crédit du créateur : une seule requête accorde, les autres reçoivent `False`.
        Un auto-commentaire n'écrit rien.
    """

    def __init__(
        self,
        store: GameStore,
        coordinator: LeaderboardCoordinator,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.coordinator = coordinator
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def track_comment(
        self, challenge_id: str | ObjectId, comment_id: str, commenter_id: str, creator_id: str
    ) -> ServiceResult[bool]:
        """Récompenser le créateur pour un commentaire (une seule fois par `comment_id`).

        Args:
            challenge_id: Challenge commenté.
            comment_id: Identifiant plateforme du commentaire.
            commenter_id: Auteur du commentaire.
            creator_id: Créateur du challenge.

        Returns:
            ServiceResult[bool]: True si la récompense vient d'être accordée, False si
            auto-commentaire ou commentaire déjà récompensé.
        """
        if commenter_id == creator_id:
            logger_generic.info(f"[comment_reward] self-comment {comment_id} by {creator_id} ignored")
            return ServiceResult[bool].ok(False)

        oid = to_object_id(challenge_id)
        if oid is None:
            return ServiceResult[bool].fail(NotFound("Challenge", challenge_id))

        reward = CommentReward(
            challenge_id=oid,
            comment_id=comment_id,
            commenter_id=commenter_id,
            creator_id=creator_id,
            points=COMMENT_REWARD.points,
            experience=COMMENT_REWARD.exp,
        )
        try:
            granted = await self._io("grant_comment_reward", lambda: self.store.grant_comment_reward(reward))
        except GameError as e:
            logger_errors.error(f"[comment_reward] {comment_id} could not be recorded: {e.message}")
            return ServiceResult[bool].fail(e)

        if not granted:
            logger_generic.info(f"[comment_reward] {comment_id} already rewarded")
            return ServiceResult[bool].ok(False)

        logger_generic.info(f"[comment_reward] {creator_id} rewarded for comment {comment_id} on {oid}")
        await self.coordinator.on_points_awarded(creator_id, COMMENT_REWARD.points)
        return ServiceResult[bool].ok(True)

    async def handle_comment_event(self, post_id: str, comment_id: str, commenter_id: str) -> ServiceResult[bool]:
        """Point d'entrée du trigger plateforme : retrouve le challenge par `post_id`.

        Returns:
            ServiceResult[bool]: Comme `track_comment` ; NOT_FOUND si aucun challenge n'est lié au post.
        """
        try:
            challenge = await self._io("get_challenge_by_post", lambda: self.store.get_challenge_by_post(post_id))
        except GameError as e:
            return ServiceResult[bool].fail(e)
        if challenge is None:
            logger_generic.info(f"[comment_reward] no challenge for post {post_id}, comment {comment_id} ignored")
            return ServiceResult[bool].fail(NotFound("Challenge for post", post_id))
        return await self.track_comment(challenge.id, comment_id, commenter_id, challenge.creator_id)

    async def comment_count(self, challenge_id: str | ObjectId) -> int:
        oid = to_object_id(challenge_id)
        if oid is None:
            return 0
        return await self._io("comment_count", lambda: self.store.comment_count(oid))

    async def creator_stats(self, creator_id: str) -> CreatorCommentStats:
        return await self._io("creator_stats", lambda: self.store.creator_stats(creator_id))

    async def _io(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_retry(operation, label=label, policy=self.retry_policy, sleep=self._sleep)
