# backend/linkguess/api/routes/leaderboard.py
# Classement des joueurs (sorted set Redis projeté sur les profils).

from typing import Annotated, Optional

from fastapi import APIRouter, Header, Query

from linkguess.api.deps import Services
from linkguess.api.dto.response_format import SuccessResponse
from linkguess.models.user import LeaderboardPage

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get(
    "",
    response_model=SuccessResponse[LeaderboardPage],
    summary="Classement",
    description="Top des joueurs par points (rang de compétition : ex æquo au même rang). Les modérateurs ne sont pas classés.",
)
async def get_leaderboard(
    services: Services,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    x_user_id: Annotated[Optional[str], Header()] = None,
):
    page = await services.leaderboard.get_top(limit=limit, offset=offset, current_user_id=x_user_id)
    return SuccessResponse[LeaderboardPage](data=page)


@router.post(
    "/rebuild",
    response_model=SuccessResponse[dict],
    summary="Reconstruire le classement",
    description="Resynchronise le sorted set depuis les totaux persistés (maintenance).",
)
async def rebuild_leaderboard(services: Services):
    count = await services.leaderboard.rebuild()
    return SuccessResponse[dict](data={"players": count})
