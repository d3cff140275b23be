# backend/linkguess/db/game_store.py
# Accès Mongo du moteur de jeu : challenges, tentatives, récompenses de commentaires, profils.

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from linkguess.core.bson_utils import dump_mongo, to_object_id
from linkguess.core.utils import utcnow
from linkguess.db.mongodb import ATTEMPTS, CHALLENGES, COMMENT_REWARDS, GUESSES, USER_PROFILES
from linkguess.models.attempt import MAX_ATTEMPTS, Attempt, GuessRecord
from linkguess.models.challenge import Challenge
from linkguess.models.comment_reward import CommentReward, CreatorCommentStats
from linkguess.models.user import UserProfile
from linkguess.services.score_policy import calculate_level

CHALLENGE_COUNTERS = ("players_played", "players_completed")
USER_COUNTERS = ("challenges_attempted", "challenges_solved")

T = TypeVar("T")


class GameStore:
    """Collaborateur de persistance du moteur de jeu.

    Description:
        Toutes les exclusions mutuelles inter-requêtes reposent sur MongoDB :
        index uniques (`seed_indexes`) et mises à jour conditionnelles filtrées sur
        `game_over: False`. Une écriture qui fait foi et le crédit de points qui
        l'accompagne sont regroupés dans une même transaction (replica set requis).
        Les erreurs pymongo remontent telles quelles ; les services appliquent
        `with_retry` autour des appels.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialiser le store.

        Args:
            db: Instance de base de données MongoDB.
        """
        self.db = db
        self.client = db.client
        self.challenges = db[CHALLENGES]
        self.attempts = db[ATTEMPTS]
        self.guesses = db[GUESSES]
        self.comment_rewards = db[COMMENT_REWARDS]
        self.user_profiles = db[USER_PROFILES]

    async def _in_transaction(self, work: Callable[[AsyncIOMotorClientSession], Awaitable[T]]) -> T:
        async with await self.client.start_session() as session:
            return await session.with_transaction(work)

    # ---------------------------------------------------------------- challenges

    async def get_challenge(self, challenge_id: str | ObjectId) -> Challenge | None:
        oid = to_object_id(challenge_id)
        if oid is None:
            return None
        doc = await self.challenges.find_one({"_id": oid})
        return Challenge.model_validate(doc) if doc else None

    async def get_challenge_by_post(self, post_id: str) -> Challenge | None:
        doc = await self.challenges.find_one({"post_id": post_id})
        return Challenge.model_validate(doc) if doc else None

    async def list_challenges(self, limit: int = 20, skip: int = 0) -> list[Challenge]:
        """Lister les challenges, plus récents d'abord.

        Args:
            limit: Nombre maximum de challenges.
            skip: Décalage (pagination).

        Returns:
            list[Challenge]: Page de challenges.
        """
        cursor = self.challenges.find({}).sort("created_at", DESCENDING).skip(skip).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [Challenge.model_validate(d) for d in docs]

    async def increment_challenge_counter(self, challenge_id: ObjectId, field: str) -> bool:
        """Incrémenter `players_played` ou `players_completed` (jamais de décrément)."""
        if field not in CHALLENGE_COUNTERS:
            raise ValueError(f"Unknown challenge counter: {field}")
        res = await self.challenges.update_one({"_id": challenge_id}, {"$inc": {field: 1}})
        return res.matched_count == 1

    # ---------------------------------------------------------------- attempts

    def _attempt_filter(self, user_id: str, challenge_id: ObjectId) -> dict[str, Any]:
        return {"user_id": user_id, "challenge_id": challenge_id}

    async def find_attempt(self, user_id: str, challenge_id: ObjectId) -> Attempt | None:
        doc = await self.attempts.find_one(self._attempt_filter(user_id, challenge_id))
        return Attempt.model_validate(doc) if doc else None

    async def get_or_create_attempt(self, user_id: str, challenge_id: ObjectId) -> tuple[Attempt, bool]:
        """Charger la tentative, la créer si absente.

        Description:
            Upsert avec `$setOnInsert` sur la clé unique (user_id, challenge_id) :
            une seule requête concurrente obtient `upserted_id`, les autres voient
            le document existant (ou une `DuplicateKeyError`, traitée comme « existe »).

        Returns:
            tuple: (attempt, created) où `created` vaut True pour la seule requête créatrice.
        """
        query = self._attempt_filter(user_id, challenge_id)
        on_insert = {
            "attempts_made": 0,
            "hints_used": [],
            "is_solved": False,
            "gave_up": False,
            "game_over": False,
            "points_earned": 0,
            "experience_earned": 0,
            "attempted_at": utcnow(),
        }
        try:
            res = await self.attempts.update_one(query, {"$setOnInsert": on_insert}, upsert=True)
            created = res.upserted_id is not None
        except DuplicateKeyError:
            created = False
        doc = await self.attempts.find_one(query)
        return Attempt.model_validate(doc), created

    async def consume_guess(self, attempt_id: ObjectId) -> Attempt | None:
        """Consommer un essai : `$inc attempts_made` si la partie est en cours et non épuisée.

        Returns:
            Attempt | None: Tentative mise à jour, None si la condition n'est plus vraie.
        """
        doc = await self.attempts.find_one_and_update(
            {"_id": attempt_id, "game_over": False, "attempts_made": {"$lt": MAX_ATTEMPTS}},
            {"$inc": {"attempts_made": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return Attempt.model_validate(doc) if doc else None

    async def record_guess(self, record: GuessRecord) -> None:
        await self.guesses.insert_one(dump_mongo(record))

    async def finalize_attempt(
        self,
        attempt_id: ObjectId,
        *,
        is_solved: bool = False,
        gave_up: bool = False,
        points: int = 0,
        experience: int = 0,
        session: AsyncIOMotorClientSession | None = None,
    ) -> Attempt | None:
        """Passer la tentative à l'état terminal (une seule fois).

        Returns:
            Attempt | None: Tentative finalisée, None si elle l'était déjà.
        """
        doc = await self.attempts.find_one_and_update(
            {"_id": attempt_id, "game_over": False},
            {
                "$set": {
                    "game_over": True,
                    "is_solved": is_solved,
                    "gave_up": gave_up,
                    "points_earned": points,
                    "experience_earned": experience,
                    "completed_at": utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return Attempt.model_validate(doc) if doc else None

    async def solve_attempt(
        self, attempt_id: ObjectId, user_id: str, points: int, experience: int
    ) -> Attempt | None:
        """Finaliser une tentative résolue et créditer le joueur dans la même transaction.

        Description:
            Si la tentative était déjà terminée, rien n'est écrit ni crédité. Un commit
            incertain rejoué par `with_retry` retombe dans ce cas : le crédit n'est
            jamais appliqué deux fois.

        Returns:
            Attempt | None: Tentative résolue, None si elle était déjà terminée.
        """

        async def work(session: AsyncIOMotorClientSession) -> Attempt | None:
            solved = await self.finalize_attempt(
                attempt_id, is_solved=True, points=points, experience=experience, session=session
            )
            if solved is None:
                return None
            await self.award_points(user_id, points, experience, solved=True, session=session)
            return solved

        return await self._in_transaction(work)

    async def add_hint(self, attempt_id: ObjectId, image_index: int) -> Attempt | None:
        """Ajouter un index d'image révélé (pas de doublon, partie en cours).

        Returns:
            Attempt | None: Tentative mise à jour, None si déjà révélé ou partie terminée.
        """
        doc = await self.attempts.find_one_and_update(
            {"_id": attempt_id, "game_over": False, "hints_used": {"$ne": image_index}},
            {"$push": {"hints_used": image_index}},
            return_document=ReturnDocument.AFTER,
        )
        return Attempt.model_validate(doc) if doc else None

    # ---------------------------------------------------------------- comment rewards

    async def grant_comment_reward(self, reward: CommentReward) -> bool:
        """Enregistrer la récompense d'un commentaire et créditer le créateur, une seule fois.

        Description:
            La ligne `comment_rewards` et le `$inc` du profil sont écrits dans la même
            transaction : un crédit ne peut pas manquer derrière une ligne existante.
            Un `comment_id` déjà présent (relu dans la transaction, ou `DuplicateKeyError`
            d'une insertion concurrente) ne crédite rien.

        Returns:
            bool: True si la récompense vient d'être accordée, False si déjà accordée.
        """

        async def work(session: AsyncIOMotorClientSession) -> bool:
            existing = await self.comment_rewards.find_one(
                {"comment_id": reward.comment_id}, {"_id": 1}, session=session
            )
            if existing:
                return False
            await self.comment_rewards.insert_one(dump_mongo(reward), session=session)
            await self.award_points(reward.creator_id, reward.points, reward.experience, session=session)
            return True

        try:
            return await self._in_transaction(work)
        except DuplicateKeyError:
            return False

    async def comment_count(self, challenge_id: ObjectId) -> int:
        return await self.comment_rewards.count_documents({"challenge_id": challenge_id})

    async def creator_stats(self, creator_id: str) -> CreatorCommentStats:
        pipeline = [
            {"$match": {"creator_id": creator_id}},
            {
                "$group": {
                    "_id": None,
                    "total_comments": {"$sum": 1},
                    "total_points": {"$sum": "$points"},
                    "total_experience": {"$sum": "$experience"},
                }
            },
        ]
        rows = await self.comment_rewards.aggregate(pipeline).to_list(length=1)
        if not rows:
            return CreatorCommentStats()
        return CreatorCommentStats(**{k: v for k, v in rows[0].items() if k != "_id"})

    # ---------------------------------------------------------------- user profiles

    async def get_user(self, user_id: str) -> UserProfile | None:
        doc = await self.user_profiles.find_one({"user_id": user_id})
        return UserProfile.model_validate(doc) if doc else None

    async def upsert_user(self, user_id: str, username: str | None = None, role: str | None = None) -> UserProfile:
        now = utcnow()
        on_insert: dict[str, Any] = {
            "total_points": 0,
            "total_experience": 0,
            "level": 1,
            "challenges_attempted": 0,
            "challenges_solved": 0,
            "created_at": now,
        }
        to_set: dict[str, Any] = {"updated_at": now}
        if username is not None:
            to_set["username"] = username
        else:
            on_insert["username"] = ""
        if role is not None:
            to_set["role"] = role
        else:
            on_insert["role"] = "player"
        doc = await self.user_profiles.find_one_and_update(
            {"user_id": user_id},
            {"$set": to_set, "$setOnInsert": on_insert},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return UserProfile.model_validate(doc)

    async def award_points(
        self,
        user_id: str,
        points: int,
        experience: int,
        *,
        solved: bool = False,
        session: AsyncIOMotorClientSession | None = None,
    ) -> UserProfile:
        """Créditer points / expérience (et `challenges_solved` si résolu), niveau recalculé.

        Description:
            `$inc` atomique avec upsert, puis mise à jour conditionnelle du niveau
            (filtrée sur l'expérience lue pour ne pas écraser un crédit concurrent).

        Returns:
            UserProfile: Profil après crédit.
        """
        inc: dict[str, int] = {"total_points": points, "total_experience": experience}
        if solved:
            inc["challenges_solved"] = 1
        doc = await self.user_profiles.find_one_and_update(
            {"user_id": user_id},
            {
                "$inc": inc,
                "$set": {"updated_at": utcnow()},
                "$setOnInsert": {"username": "", "role": "player", "created_at": utcnow()},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        profile = UserProfile.model_validate(doc)
        level = calculate_level(profile.total_experience)
        if level != profile.level:
            await self.user_profiles.update_one(
                {"user_id": user_id, "total_experience": profile.total_experience},
                {"$set": {"level": level}},
                session=session,
            )
            profile = profile.model_copy(update={"level": level})
        return profile

    async def deduct_points(self, user_id: str, amount: int) -> int:
        """Retirer jusqu'à `amount` points (jamais sous 0).

        Description:
            Mise à jour par pipeline (`$max [0, total - amount]`) en un seul aller-retour ;
            le document AVANT mise à jour donne le montant réellement retiré.

        Returns:
            int: Points effectivement retirés (0 si profil absent).
        """
        if amount <= 0:
            return 0
        before = await self.user_profiles.find_one_and_update(
            {"user_id": user_id},
            [
                {
                    "$set": {
                        "total_points": {"$max": [0, {"$subtract": ["$total_points", amount]}]},
                        "updated_at": utcnow(),
                    }
                }
            ],
            return_document=ReturnDocument.BEFORE,
        )
        if not before:
            return 0
        return min(amount, int(before.get("total_points", 0)))

    async def increment_user_counter(self, user_id: str, field: str, amount: int = 1) -> None:
        if field not in USER_COUNTERS:
            raise ValueError(f"Unknown user counter: {field}")
        await self.user_profiles.update_one(
            {"user_id": user_id},
            {
                "$inc": {field: amount},
                "$set": {"updated_at": utcnow()},
                "$setOnInsert": {"username": "", "role": "player", "created_at": utcnow()},
            },
            upsert=True,
        )

    async def list_users_by_points(self, limit: int = 10, skip: int = 0, *, include_moderators: bool = False) -> list[UserProfile]:
        """Profils triés par points décroissants (modérateurs exclus par défaut).

        Args:
            limit: Nombre maximum de profils (0 = tous).
            skip: Décalage.
            include_moderators: Inclure les profils `role == "mod"`.

        Returns:
            list[UserProfile]: Profils classés.
        """
        query: dict[str, Any] = {} if include_moderators else {"role": {"$ne": "mod"}}
        cursor = self.user_profiles.find(query).sort([("total_points", DESCENDING), ("user_id", 1)]).skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=limit or None)
        return [UserProfile.model_validate(d) for d in docs]

    async def count_ranked_users(self) -> int:
        return await self.user_profiles.count_documents({"role": {"$ne": "mod"}})

    async def get_users(self, user_ids: list[str]) -> dict[str, UserProfile]:
        if not user_ids:
            return {}
        cursor = self.user_profiles.find({"user_id": {"$in": list(user_ids)}})
        docs = await cursor.to_list(length=len(user_ids))
        return {d["user_id"]: UserProfile.model_validate(d) for d in docs}
