# backend/linkguess/models/user.py
# Profil joueur (totaux de points / expérience, niveau, compteurs) et entrées de leaderboard.

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from linkguess.core.utils import utcnow


class UserProfile(BaseModel):
    """Document Mongo `user_profiles` (clé unique `user_id`).

    Attributes:
        user_id (str): Identifiant plateforme.
        username (str): Pseudo.
        total_points (int): Total de points (source de vérité du classement).
        total_experience (int): Expérience cumulée.
        level (int): Niveau dérivé de l'expérience.
        challenges_attempted (int): Challenges commencés.
        challenges_solved (int): Challenges résolus.
        role (str): 'player' ou 'mod' (les modérateurs ne sont pas classés).
    """

    user_id: str
    username: str = ""
    total_points: int = 0
    total_experience: int = 0
    level: int = 1
    challenges_attempted: int = 0
    challenges_solved: int = 0
    role: str = "player"
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_moderator(self) -> bool:
        return self.role == "mod"


class LeaderboardEntry(BaseModel):
    """Ligne de classement (projection, jamais persistée)."""

    rank: int
    user_id: str
    username: str
    total_points: int
    level: int
    challenges_solved: int
    is_current_user: bool = False


class UserRank(BaseModel):
    """Position d'un joueur dans le classement."""

    user_id: str
    rank: Optional[int] = None
    total_points: int = 0
    level: int = 1


class LeaderboardPage(BaseModel):
    entries: list[LeaderboardEntry]
    user_rank: Optional[UserRank] = None
    total_players: int = 0
