# backend/linkguess/api/routes/challenges.py
# Lecture des challenges : fil paginé (avec préchargement des suivants) et détail dédupliqué.

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Query

from linkguess.api.deps import GameServices, Services
from linkguess.api.dto.game import ChallengeOut, FeedOut
from linkguess.api.dto.response_format import SuccessResponse
from linkguess.core.errors import NotFound
from linkguess.core.exception_handlers import unwrap
from linkguess.models.challenge import Challenge
from linkguess.models.results import ServiceResult
from linkguess.services.request_dedup import RequestDeduplicator

router = APIRouter(prefix="/challenges", tags=["challenges"])


def _creator_enricher(services: GameServices):
    async def enrich(challenge: Challenge) -> dict[str, Any]:
        creator = await services.store.get_user(challenge.creator_id)
        if creator is None:
            return {}
        return {"creator_level": creator.level, "creator_username": creator.username}

    return enrich


@router.get(
    "/feed",
    response_model=SuccessResponse[FeedOut],
    summary="Fil des challenges",
    description=(
        "Liste paginée des challenges les plus récents. Les challenges suivant `index` "
        "sont préchargés en tâche de fond pour accélérer la navigation."
    ),
)
async def get_feed(
    services: Services,
    background_tasks: BackgroundTasks,
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    index: int = Query(0, ge=0, description="Position du challenge affiché dans la page"),
):
    key = RequestDeduplicator.make_key("feed", skip, limit)
    challenges = await services.dedup.dedupe(key, lambda: services.store.list_challenges(limit=limit, skip=skip))
    pending = min(services.preload.preload_count, max(len(challenges) - index - 1, 0))
    if pending:
        background_tasks.add_task(
            services.preload.preload_next, index, challenges, enrich=_creator_enricher(services)
        )
    return SuccessResponse[FeedOut](
        data=FeedOut(items=[ChallengeOut.from_challenge(c) for c in challenges], index=index, preloading=pending)
    )


@router.get(
    "/{challenge_id}",
    response_model=SuccessResponse[ChallengeOut],
    summary="Détail d'un challenge",
    description="Servi depuis le cache de préchargement si possible, sinon lu en base (requêtes concurrentes dédupliquées).",
)
async def get_challenge(challenge_id: str, services: Services):
    preloaded = services.preload.take(challenge_id)
    if preloaded is not None:
        return SuccessResponse[ChallengeOut](
            data=ChallengeOut.from_challenge(preloaded.challenge, preloaded.extras)
        )

    key = RequestDeduplicator.make_key("challenge", challenge_id)
    challenge = await services.dedup.dedupe(key, lambda: services.store.get_challenge(challenge_id))
    if challenge is None:
        unwrap(ServiceResult[ChallengeOut].fail(NotFound("Challenge", challenge_id)))
    return SuccessResponse[ChallengeOut](data=ChallengeOut.from_challenge(challenge))
