# backend/linkguess/models/comment_reward.py
# Récompense de commentaire : une ligne au plus par comment_id (piste d'audit, jamais modifiée).

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from linkguess.core.bson_utils import MongoBaseModel, PyObjectId
from linkguess.core.utils import utcnow


class CommentReward(MongoBaseModel):
    """Document Mongo `comment_rewards` (index unique sur `comment_id`).

    Attributes:
        challenge_id (PyObjectId): Challenge commenté.
        comment_id (str): Commentaire plateforme (clé d'unicité).
        commenter_id (str): Auteur du commentaire.
        creator_id (str): Créateur crédité.
        points (int): Points accordés.
        experience (int): Expérience accordée.
    """

    challenge_id: PyObjectId
    comment_id: str
    commenter_id: str
    creator_id: str
    points: int
    experience: int
    created_at: dt.datetime = Field(default_factory=utcnow)


class CreatorCommentStats(BaseModel):
    total_comments: int = 0
    total_points: int = 0
    total_experience: int = 0
