# backend/linkguess/models/attempt.py
# Tentative d'un joueur sur un challenge (clé unique user_id + challenge_id) et historique des propositions.

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from linkguess.core.bson_utils import MongoBaseModel, PyObjectId
from linkguess.core.utils import utcnow

MAX_ATTEMPTS = 10


class AttemptStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SOLVED = "solved"
    EXHAUSTED = "exhausted"
    GAVE_UP = "gave_up"


class Attempt(MongoBaseModel):
    """Document Mongo d'une tentative.

    Description:
        Créé au premier essai ou au premier indice révélé. `game_over` est monotone :
        toutes les écritures du store filtrent sur `game_over: False`.

    Attributes:
        user_id (str): Joueur.
        challenge_id (PyObjectId): Challenge joué.
        attempts_made (int): Nombre de propositions (0–10).
        hints_used (list[int]): Index d'images révélés, dans l'ordre, sans doublon.
        is_solved (bool): Bonne réponse trouvée.
        gave_up (bool): Abandon explicite.
        game_over (bool): Partie terminée (résolue, épuisée ou abandonnée).
        points_earned (int): Points crédités à la résolution (fixés une seule fois).
        experience_earned (int): Expérience créditée (= points).
        attempted_at (datetime): Création.
        completed_at (datetime | None): Passage à l'état terminal.
    """

    user_id: str
    challenge_id: PyObjectId
    attempts_made: int = Field(default=0, ge=0, le=MAX_ATTEMPTS)
    hints_used: list[int] = Field(default_factory=list)
    is_solved: bool = False
    gave_up: bool = False
    game_over: bool = False
    points_earned: int = Field(default=0, ge=0)
    experience_earned: int = Field(default=0, ge=0)
    attempted_at: dt.datetime = Field(default_factory=utcnow)
    completed_at: Optional[dt.datetime] = None

    @property
    def status(self) -> AttemptStatus:
        if self.is_solved:
            return AttemptStatus.SOLVED
        if self.gave_up:
            return AttemptStatus.GAVE_UP
        if self.game_over:
            return AttemptStatus.EXHAUSTED
        if self.attempts_made == 0 and not self.hints_used:
            return AttemptStatus.NOT_STARTED
        return AttemptStatus.IN_PROGRESS

    @property
    def attempts_remaining(self) -> int:
        if self.game_over:
            return 0
        return max(0, MAX_ATTEMPTS - self.attempts_made)


class GuessRecord(MongoBaseModel):
    """Proposition individuelle (historique, collection `attempt_guesses`)."""

    attempt_id: PyObjectId
    guess_text: str
    is_correct: bool
    created_at: dt.datetime = Field(default_factory=utcnow)


class AttemptView(BaseModel):
    """Vue publique d'une tentative (sans la réponse)."""

    challenge_id: PyObjectId
    status: AttemptStatus
    attempts_made: int
    attempts_remaining: int
    hints_used: list[int]
    points_earned: int
    game_over: bool

    @classmethod
    def from_attempt(cls, attempt: Attempt) -> "AttemptView":
        return cls(
            challenge_id=attempt.challenge_id,
            status=attempt.status,
            attempts_made=attempt.attempts_made,
            attempts_remaining=attempt.attempts_remaining,
            hints_used=list(attempt.hints_used),
            points_earned=attempt.points_earned,
            game_over=attempt.game_over,
        )
