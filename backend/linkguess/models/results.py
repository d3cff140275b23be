# backend/linkguess/models/results.py
# Valeurs de retour des services : enveloppe succès/échec + résultats de jeu.

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from linkguess.core.errors import ErrorCode, GameError
from linkguess.models.attempt import AttemptStatus

T = TypeVar("T")


class Failure(BaseModel):
    code: ErrorCode
    message: str


class ServiceResult(BaseModel, Generic[T]):
    """Résultat explicite d'une opération de service.

    Description:
        Les services ne lèvent pas d'exception pour les cas métier : ils renvoient
        `ServiceResult.ok(data)` ou `ServiceResult.fail(error)`.
    """

    success: bool = True
    data: Optional[T] = None
    error: Optional[Failure] = None

    @classmethod
    def ok(cls, data: T) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: GameError) -> "ServiceResult[T]":
        return cls(success=False, error=Failure(code=error.code, message=error.client_message()))


class Reward(BaseModel):
    points: int = 0
    exp: int = 0


class PropagationStatus(BaseModel):
    cache_invalidated: bool = False
    leaderboard_updated: bool = False


class GuessOutcome(BaseModel):
    """Résultat d'une proposition.

    Attributes:
        is_correct (bool): Proposition juste (ou partie déjà résolue).
        status (AttemptStatus): État de la tentative après l'opération.
        attempts_made (int): Propositions consommées.
        attempts_remaining (int): Propositions restantes.
        potential_score (int): Score si la prochaine proposition est juste (0 si terminé).
        reward (Reward | None): Récompense créditée (ou antérieure si déjà terminé).
        already_complete (bool): Partie déjà terminée avant l'appel (aucune mutation).
        game_over (bool): Partie terminée.
        explanation (str | None): Explication de la réponse (fin de partie).
    """

    is_correct: bool
    status: AttemptStatus
    attempts_made: int
    attempts_remaining: int
    potential_score: int = 0
    reward: Optional[Reward] = None
    already_complete: bool = False
    game_over: bool = False
    explanation: Optional[str] = None


class HintOutcome(BaseModel):
    image_index: int
    hint: str
    hints_used: list[int]
    potential_score: int
    points_spent: int = 0


class GiveUpOutcome(BaseModel):
    status: AttemptStatus
    already_complete: bool = False
    points_earned: int = 0
    explanation: Optional[str] = None
