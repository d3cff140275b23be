# backend/linkguess/models/challenge.py
# Challenge : images liées (2 à 3), réponse attendue, barème et compteurs de joueurs.

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from linkguess.core.bson_utils import MongoBaseModel
from linkguess.core.utils import utcnow

MIN_IMAGES_PER_CHALLENGE = 2
MAX_IMAGES_PER_CHALLENGE = 3


class ChallengeImage(BaseModel):
    """Image d'un challenge.

    Attributes:
        url (str): URL de l'image.
        description (str | None): Indice textuel révélé par `reveal_hint`.
    """

    url: str
    description: Optional[str] = None


class ChallengeBase(BaseModel):
    """Champs de base d'un challenge.

    Attributes:
        creator_id (str): Identifiant plateforme du créateur.
        creator_username (str): Pseudo du créateur.
        title (str): Titre affiché.
        images (list[ChallengeImage]): 2 à 3 images liées.
        correct_answer (str): Lien attendu (comparé après normalisation).
        answer_explanation (str | None): Explication affichée en fin de partie.
        tags (list[str]): Catégories.
        max_score (int): Score de base d'une bonne réponse au 1er essai.
        score_deduction_per_hint (int): Pénalité affichée par indice.
        post_id (str | None): Post associé sur la plateforme (lien avec les commentaires).
    """

    creator_id: str
    creator_username: str = ""
    title: str
    images: list[ChallengeImage] = Field(
        min_length=MIN_IMAGES_PER_CHALLENGE, max_length=MAX_IMAGES_PER_CHALLENGE
    )
    correct_answer: str
    answer_explanation: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    max_score: int = 30
    score_deduction_per_hint: int = 0
    post_id: Optional[str] = None


class Challenge(MongoBaseModel, ChallengeBase):
    """Document Mongo d'un challenge.

    Description:
        Les compteurs ne sont modifiés que par le suivi des tentatives (`$inc`),
        jamais négatifs, et `players_completed <= players_played`.
    """

    players_played: int = Field(default=0, ge=0)
    players_completed: int = Field(default=0, ge=0)
    created_at: dt.datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _completed_not_above_played(self) -> "Challenge":
        if self.players_completed > self.players_played:
            raise ValueError("players_completed cannot exceed players_played")
        return self

    @property
    def image_count(self) -> int:
        return len(self.images)

    def hint_for(self, image_index: int) -> str:
        """Texte d'indice pour une image (valeur par défaut si absent)."""
        description = self.images[image_index].description
        return description or "No description available"
