# backend/linkguess/api/routes/my_profile.py
# Routes "mon profil" : totaux, niveau et rang du joueur, statistiques de créateur.

from fastapi import APIRouter, Depends, HTTPException, status

from linkguess.api.deps import CurrentUserId, Services, get_current_user_id, sync_username
from linkguess.api.dto.game import MyProfileOut
from linkguess.api.dto.response_format import SuccessResponse
from linkguess.models.comment_reward import CreatorCommentStats

router = APIRouter(
    prefix="/my/profile", tags=["my_profile"], dependencies=[Depends(get_current_user_id), Depends(sync_username)]
)


@router.get(
    "",
    response_model=SuccessResponse[MyProfileOut],
    summary="Mon profil",
    description="Profil servi depuis le cache (TTL 5 min), invalidé à chaque changement de points.",
)
async def get_my_profile(services: Services, user_id: CurrentUserId):
    """Lire mon profil.

    Returns:
        SuccessResponse[MyProfileOut]: Totaux, niveau, expérience restante et rang.

    Raises:
        HTTPException: 404 si le joueur n'a encore aucun profil.
    """
    profile = await services.profile_cache.get_or_load(user_id, services.store.get_user)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    rank = None if profile.is_moderator else await services.leaderboard.get_user_rank(user_id)
    return SuccessResponse[MyProfileOut](data=MyProfileOut.from_profile(profile, rank))


@router.get(
    "/comment-stats",
    response_model=SuccessResponse[CreatorCommentStats],
    summary="Mes récompenses de créateur",
)
async def get_my_comment_stats(services: Services, user_id: CurrentUserId):
    stats = await services.comments.creator_stats(user_id)
    return SuccessResponse[CreatorCommentStats](data=stats)
