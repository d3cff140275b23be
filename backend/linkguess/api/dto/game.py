# backend/linkguess/api/dto/game.py
# DTO d'entrée/sortie des routes de jeu (propositions, indices, challenges, profil, triggers).

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, Field

from linkguess.core.bson_utils import PyObjectId
from linkguess.core.utils import utcnow
from linkguess.models.challenge import Challenge
from linkguess.models.user import UserProfile, UserRank
from linkguess.services.score_policy import exp_to_next_level


class GuessIn(BaseModel):
    challenge_id: str = Field(..., description="Identifiant du challenge (ObjectId hex)")
    guess: str = Field(..., min_length=1, max_length=200, description="Proposition du joueur")


class HintIn(BaseModel):
    challenge_id: str
    image_index: int = Field(..., description="Index (0-based) de l'image dont on révèle l'indice")
    hint_cost: int = Field(default=0, ge=0, description="Points dépensés pour l'indice")


class GiveUpIn(BaseModel):
    challenge_id: str


class CommentEventIn(BaseModel):
    """Événement « commentaire publié » envoyé par la plateforme."""

    post_id: str
    comment_id: str
    author_id: str


class ChallengeOut(BaseModel):
    """Vue publique d'un challenge (ni réponse ni indices)."""

    id: PyObjectId
    creator_id: str
    creator_username: str
    title: str
    image_urls: list[str]
    image_count: int
    tags: list[str]
    max_score: int
    players_played: int
    players_completed: int
    post_id: Optional[str] = None
    extras: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_challenge(cls, challenge: Challenge, extras: dict[str, Any] | None = None) -> "ChallengeOut":
        return cls(
            id=challenge.id,
            creator_id=challenge.creator_id,
            creator_username=challenge.creator_username,
            title=challenge.title,
            image_urls=[img.url for img in challenge.images],
            image_count=challenge.image_count,
            tags=list(challenge.tags),
            max_score=challenge.max_score,
            players_played=challenge.players_played,
            players_completed=challenge.players_completed,
            post_id=challenge.post_id,
            extras=extras or {},
        )


class FeedOut(BaseModel):
    items: list[ChallengeOut]
    index: int
    preloading: int = 0


class MyProfileOut(BaseModel):
    user_id: str
    username: str
    total_points: int
    total_experience: int
    level: int
    exp_to_next_level: int
    challenges_attempted: int
    challenges_solved: int
    rank: Optional[int] = None

    @classmethod
    def from_profile(cls, profile: UserProfile, rank: UserRank | None = None) -> "MyProfileOut":
        return cls(
            user_id=profile.user_id,
            username=profile.username,
            total_points=profile.total_points,
            total_experience=profile.total_experience,
            level=profile.level,
            exp_to_next_level=exp_to_next_level(profile.total_experience, profile.level),
            challenges_attempted=profile.challenges_attempted,
            challenges_solved=profile.challenges_solved,
            rank=rank.rank if rank else None,
        )


class HealthCheck(BaseModel):
    """Modèle de réponse health check"""

    status: str = Field(..., description="Overall status: ok, degraded")
    timestamp: dt.datetime = Field(default_factory=utcnow)
    version: str = Field(..., description="API version")
    checks: dict[str, str] = Field(..., description="Individual service checks")
