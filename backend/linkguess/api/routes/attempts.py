# backend/linkguess/api/routes/attempts.py
# Routes de jeu : proposition, indice, abandon et état d'une tentative.

from fastapi import APIRouter, Body, Depends

from linkguess.api.deps import CurrentUserId, Services, get_current_user_id, sync_username
from linkguess.api.dto.game import GiveUpIn, GuessIn, HintIn
from linkguess.api.dto.response_format import SuccessResponse
from linkguess.core.exception_handlers import unwrap
from linkguess.models.attempt import AttemptView
from linkguess.models.results import GiveUpOutcome, GuessOutcome, HintOutcome

router = APIRouter(
    prefix="/attempts", tags=["attempts"], dependencies=[Depends(get_current_user_id), Depends(sync_username)]
)


@router.post(
    "/guess",
    response_model=SuccessResponse[GuessOutcome],
    summary="Soumettre une proposition",
    description=(
        "Consomme un essai et compare la proposition (insensible à la casse et aux espaces).\n\n"
        "- Bonne réponse : points crédités (score décroissant avec les essais et les indices)\n"
        "- Partie déjà terminée : renvoie le résultat antérieur avec `already_complete=true`"
    ),
)
async def submit_guess(
    services: Services,
    user_id: CurrentUserId,
    payload: GuessIn = Body(...),
):
    """Soumettre une proposition.

    Args:
        payload (GuessIn): Challenge visé et proposition.

    Returns:
        SuccessResponse[GuessOutcome]: Résultat de la proposition.
    """
    result = await services.attempts.submit_guess(user_id, payload.challenge_id, payload.guess)
    return SuccessResponse[GuessOutcome](data=unwrap(result))


@router.post(
    "/hint",
    response_model=SuccessResponse[HintOutcome],
    summary="Révéler l'indice d'une image",
    description="Révèle la description d'une image. 409 si la partie est terminée, 422 si l'index est invalide ou déjà révélé.",
)
async def reveal_hint(
    services: Services,
    user_id: CurrentUserId,
    payload: HintIn = Body(...),
):
    result = await services.attempts.reveal_hint(
        user_id, payload.challenge_id, payload.image_index, hint_cost=payload.hint_cost
    )
    return SuccessResponse[HintOutcome](data=unwrap(result))


@router.post(
    "/giveup",
    response_model=SuccessResponse[GiveUpOutcome],
    summary="Abandonner un challenge",
    description="Termine la partie sans point. Idempotent.",
)
async def give_up(
    services: Services,
    user_id: CurrentUserId,
    payload: GiveUpIn = Body(...),
):
    result = await services.attempts.give_up(user_id, payload.challenge_id)
    return SuccessResponse[GiveUpOutcome](data=unwrap(result))


@router.get(
    "/{challenge_id}",
    response_model=SuccessResponse[AttemptView],
    summary="État de ma tentative sur un challenge",
)
async def get_attempt(challenge_id: str, services: Services, user_id: CurrentUserId):
    result = await services.attempts.get_attempt(user_id, challenge_id)
    return SuccessResponse[AttemptView](data=unwrap(result))
