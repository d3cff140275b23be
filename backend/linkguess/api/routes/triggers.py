# backend/linkguess/api/routes/triggers.py
# Triggers appelés par la plateforme hôte (événements de commentaires).

from fastapi import APIRouter, Body

from linkguess.api.deps import Services
from linkguess.api.dto.game import CommentEventIn
from linkguess.api.dto.response_format import SuccessResponse

router = APIRouter(prefix="/internal/triggers", tags=["triggers"])


@router.post(
    "/comment-submit",
    response_model=SuccessResponse[dict],
    summary="Commentaire publié sur un post de challenge",
    description=(
        "Récompense le créateur du challenge lié au post (une seule fois par commentaire, "
        "jamais pour ses propres commentaires).\n\n"
        "Répond toujours 200 : la plateforme ne doit pas rejouer l'événement."
    ),
)
async def on_comment_submit(services: Services, payload: CommentEventIn = Body(...)):
    """Trigger « commentaire publié ».

    Description:
        Un échec (post inconnu, base indisponible) est signalé dans `message`, pas par le code HTTP.

    Returns:
        SuccessResponse[dict]: `{"granted": bool}`.
    """
    result = await services.comments.handle_comment_event(
        payload.post_id, payload.comment_id, payload.author_id
    )
    if not result.success:
        return SuccessResponse[dict](
            success=False, data={"granted": False}, message=f"{result.error.code.value}: {result.error.message}"
        )
    return SuccessResponse[dict](data={"granted": result.data})
