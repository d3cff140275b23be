# backend/linkguess/services/attempts/attempt_tracker.py
# Cycle de vie d'une tentative (propositions, indices, abandon) et crédit du score à la résolution.

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from bson import ObjectId
from pymongo.errors import PyMongoError

from linkguess.core.errors import AlreadyComplete, GameError, InvalidAttempt, NotFound
from linkguess.core.logging_config import get_loggers
from linkguess.core.retry import RetryPolicy, with_retry
from linkguess.core.utils import normalize_answer
from linkguess.db.game_store import GameStore
from linkguess.models.attempt import MAX_ATTEMPTS, Attempt, AttemptStatus, AttemptView, GuessRecord
from linkguess.models.challenge import Challenge
from linkguess.models.results import GiveUpOutcome, GuessOutcome, HintOutcome, Reward, ServiceResult
from linkguess.services.propagation import LeaderboardCoordinator
from linkguess.services.score_policy import potential_score

logger_generic, logger_errors = get_loggers()

T = TypeVar("T")


class AttemptTracker:
    """Suivi des tentatives par (joueur, challenge).

    Description:
        Machine à états NotStarted → InProgress → {Solved, Exhausted, GaveUp}.
        Chaque transition est une mise à jour conditionnelle Mongo (filtrée sur
        `game_over: False`), rejouée sur erreur d'I/O transitoire via `with_retry`.
        La résolution et le crédit du joueur forment une seule écriture transactionnelle.
        Les effets secondaires qui suivent (compteurs, journal des propositions,
        propagation) sont journalisés en cas d'échec sans changer le résultat renvoyé.
    """

    def __init__(
        self,
        store: GameStore,
        coordinator: LeaderboardCoordinator,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialiser le service.

        Args:
            store: Accès Mongo du jeu.
            coordinator: Propagation cache / classement.
            retry_policy: Politique de retry (défaut : settings).
            sleep: Attente entre deux essais (injectable pour les tests).
        """
        self.store = store
        self.coordinator = coordinator
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._sleep = sleep

    # ------------------------------------------------------------------ public API

    async def submit_guess(self, user_id: str, challenge_id: str | ObjectId, guess: str) -> ServiceResult[GuessOutcome]:
        """Soumettre une proposition.

        Description:
            - partie déjà terminée : succès avec `already_complete=True` et le résultat
              antérieur, sans aucune écriture ;
            - bonne réponse : Solved, score = `potential_score(attempts_made, indices, images)` ;
            - 10e proposition fausse : Exhausted, 0 point ;
            - sinon : essais restants et score potentiel du prochain essai.

        Args:
            user_id: Joueur.
            challenge_id: Challenge visé.
            guess: Proposition brute (normalisée avant comparaison).

        Returns:
            ServiceResult[GuessOutcome]: Résultat ou erreur typée (NOT_FOUND, INVALID_ATTEMPT,
            PERSISTENCE_FAILURE).
        """
        try:
            outcome = await self._submit_guess(user_id, challenge_id, guess)
        except GameError as e:
            self._log_failure("submit_guess", user_id, challenge_id, e)
            return ServiceResult[GuessOutcome].fail(e)
        return ServiceResult[GuessOutcome].ok(outcome)

    async def reveal_hint(
        self, user_id: str, challenge_id: str | ObjectId, image_index: int, hint_cost: int = 0
    ) -> ServiceResult[HintOutcome]:
        """Révéler l'indice d'une image.

        Description:
            Refuse si la partie est terminée (ALREADY_COMPLETE), si l'index est hors bornes
            ou déjà révélé (INVALID_ATTEMPT). Un `hint_cost` positif est débité du total du
            joueur (jamais sous 0) puis propagé avec un delta négatif.

        Returns:
            ServiceResult[HintOutcome]: Texte de l'indice et score potentiel du prochain essai.
        """
        try:
            outcome = await self._reveal_hint(user_id, challenge_id, image_index, hint_cost)
        except GameError as e:
            self._log_failure("reveal_hint", user_id, challenge_id, e)
            return ServiceResult[HintOutcome].fail(e)
        return ServiceResult[HintOutcome].ok(outcome)

    async def give_up(self, user_id: str, challenge_id: str | ObjectId) -> ServiceResult[GiveUpOutcome]:
        """Abandonner (idempotent, 0 point)."""
        try:
            outcome = await self._give_up(user_id, challenge_id)
        except GameError as e:
            self._log_failure("give_up", user_id, challenge_id, e)
            return ServiceResult[GiveUpOutcome].fail(e)
        return ServiceResult[GiveUpOutcome].ok(outcome)

    async def get_attempt(self, user_id: str, challenge_id: str | ObjectId) -> ServiceResult[AttemptView]:
        """État courant de la tentative (lecture seule, NOT_STARTED si aucune)."""
        try:
            challenge = await self._load_challenge(challenge_id)
            attempt = await self._io("find_attempt", lambda: self.store.find_attempt(user_id, challenge.id))
        except GameError as e:
            return ServiceResult[AttemptView].fail(e)
        if attempt is None:
            attempt = Attempt(user_id=user_id, challenge_id=challenge.id)
        return ServiceResult[AttemptView].ok(AttemptView.from_attempt(attempt))

    # ------------------------------------------------------------------ guesses

    async def _submit_guess(self, user_id: str, challenge_id: str | ObjectId, guess: str) -> GuessOutcome:
        normalized_guess = normalize_answer(guess)
        if not normalized_guess:
            raise InvalidAttempt("guess cannot be empty")

        challenge = await self._load_challenge(challenge_id)
        attempt = await self._start_attempt(user_id, challenge)
        if attempt.game_over:
            return self._terminal_guess(attempt, challenge)

        updated = await self._io("consume_guess", lambda: self.store.consume_guess(attempt.id))
        if updated is None:
            return await self._settle_race(attempt, challenge)

        is_correct = normalized_guess == normalize_answer(challenge.correct_answer)
        record = GuessRecord(attempt_id=updated.id, guess_text=guess, is_correct=is_correct)
        await self._best_effort("record_guess", lambda: self.store.record_guess(record))

        if is_correct:
            return await self._solve(user_id, updated, challenge)
        if updated.attempts_made >= MAX_ATTEMPTS:
            return await self._exhaust(updated, challenge)

        logger_generic.info(
            f"[attempt] {user_id} missed challenge {challenge.id} ({updated.attempts_made}/{MAX_ATTEMPTS})"
        )
        return GuessOutcome(
            is_correct=False,
            status=AttemptStatus.IN_PROGRESS,
            attempts_made=updated.attempts_made,
            attempts_remaining=MAX_ATTEMPTS - updated.attempts_made,
            potential_score=potential_score(updated.attempts_made + 1, len(updated.hints_used), challenge.image_count),
        )

    async def _solve(self, user_id: str, attempt: Attempt, challenge: Challenge) -> GuessOutcome:
        score = potential_score(attempt.attempts_made, len(attempt.hints_used), challenge.image_count)
        finalized = await self._io(
            "solve_attempt", lambda: self.store.solve_attempt(attempt.id, user_id, score, score)
        )
        if finalized is None:
            return await self._settle_race(attempt, challenge)

        logger_generic.info(
            f"[attempt] {user_id} solved challenge {challenge.id} in {attempt.attempts_made} attempt(s) for {score} pts"
        )
        await self._best_effort(
            "increment_players_completed",
            lambda: self.store.increment_challenge_counter(challenge.id, "players_completed"),
        )
        if score > 0:
            await self.coordinator.on_points_awarded(user_id, score)

        return GuessOutcome(
            is_correct=True,
            status=AttemptStatus.SOLVED,
            attempts_made=finalized.attempts_made,
            attempts_remaining=0,
            potential_score=0,
            reward=Reward(points=score, exp=score),
            game_over=True,
            explanation=challenge.answer_explanation,
        )

    async def _exhaust(self, attempt: Attempt, challenge: Challenge) -> GuessOutcome:
        finalized = await self._io("finalize_attempt", lambda: self.store.finalize_attempt(attempt.id))
        if finalized is None:
            return await self._settle_race(attempt, challenge)
        logger_generic.info(f"[attempt] {attempt.user_id} exhausted challenge {challenge.id}")
        return GuessOutcome(
            is_correct=False,
            status=AttemptStatus.EXHAUSTED,
            attempts_made=finalized.attempts_made,
            attempts_remaining=0,
            reward=Reward(),
            game_over=True,
            explanation=challenge.answer_explanation,
        )

    async def _settle_race(self, attempt: Attempt, challenge: Challenge) -> GuessOutcome:
        """Une écriture conditionnelle n'a rien trouvé : une requête concurrente a avancé la partie."""
        current = await self._io(
            "find_attempt", lambda: self.store.find_attempt(attempt.user_id, challenge.id)
        )
        if current is None:
            raise NotFound("Attempt", attempt.id)
        if not current.game_over and current.attempts_made >= MAX_ATTEMPTS:
            finalized = await self._io("finalize_attempt", lambda: self.store.finalize_attempt(current.id))
            if finalized is not None:
                current = finalized
            else:
                current = await self._io(
                    "find_attempt", lambda: self.store.find_attempt(attempt.user_id, challenge.id)
                ) or current
        if not current.game_over:
            raise AlreadyComplete("attempt changed concurrently, please retry", attempt_id=str(current.id))
        return self._terminal_guess(current, challenge)

    def _terminal_guess(self, attempt: Attempt, challenge: Challenge) -> GuessOutcome:
        return GuessOutcome(
            is_correct=attempt.is_solved,
            status=attempt.status,
            attempts_made=attempt.attempts_made,
            attempts_remaining=0,
            potential_score=0,
            reward=Reward(points=attempt.points_earned, exp=attempt.experience_earned),
            already_complete=True,
            game_over=True,
            explanation=challenge.answer_explanation,
        )

    # ------------------------------------------------------------------ hints

    async def _reveal_hint(
        self, user_id: str, challenge_id: str | ObjectId, image_index: int, hint_cost: int
    ) -> HintOutcome:
        if hint_cost < 0:
            raise InvalidAttempt(f"hint cost cannot be negative, got {hint_cost}")
        challenge = await self._load_challenge(challenge_id)
        if not 0 <= image_index < challenge.image_count:
            raise InvalidAttempt(
                f"image index {image_index} out of range for {challenge.image_count} images",
                image_index=image_index,
            )

        attempt = await self._start_attempt(user_id, challenge)
        if attempt.game_over:
            raise AlreadyComplete(f"challenge {challenge.id} is already complete for {user_id}")
        if image_index in attempt.hints_used:
            raise InvalidAttempt(f"hint {image_index} already revealed", image_index=image_index)

        updated = await self._io("add_hint", lambda: self.store.add_hint(attempt.id, image_index))
        if updated is None:
            current = await self._io("find_attempt", lambda: self.store.find_attempt(user_id, challenge.id))
            if current is not None and current.game_over:
                raise AlreadyComplete(f"challenge {challenge.id} is already complete for {user_id}")
            raise InvalidAttempt(f"hint {image_index} already revealed", image_index=image_index)

        spent = 0
        if hint_cost > 0:
            deducted = await self._best_effort("deduct_points", lambda: self.store.deduct_points(user_id, hint_cost))
            spent = deducted or 0
            if spent:
                await self.coordinator.on_points_awarded(user_id, -spent)

        next_attempt = min(updated.attempts_made + 1, MAX_ATTEMPTS)
        logger_generic.info(f"[attempt] {user_id} revealed hint {image_index} on challenge {challenge.id}")
        return HintOutcome(
            image_index=image_index,
            hint=challenge.hint_for(image_index),
            hints_used=list(updated.hints_used),
            potential_score=potential_score(next_attempt, len(updated.hints_used), challenge.image_count),
            points_spent=spent,
        )

    # ------------------------------------------------------------------ give up

    async def _give_up(self, user_id: str, challenge_id: str | ObjectId) -> GiveUpOutcome:
        challenge = await self._load_challenge(challenge_id)
        attempt = await self._start_attempt(user_id, challenge)
        if not attempt.game_over:
            finalized = await self._io(
                "finalize_attempt", lambda: self.store.finalize_attempt(attempt.id, gave_up=True)
            )
            if finalized is not None:
                logger_generic.info(f"[attempt] {user_id} gave up challenge {challenge.id}")
                return GiveUpOutcome(status=AttemptStatus.GAVE_UP, explanation=challenge.answer_explanation)
            attempt = await self._io("find_attempt", lambda: self.store.find_attempt(user_id, challenge.id))
            if attempt is None:
                raise NotFound("Attempt", f"{user_id}/{challenge.id}")

        return GiveUpOutcome(
            status=attempt.status,
            already_complete=True,
            points_earned=attempt.points_earned,
            explanation=challenge.answer_explanation,
        )

    # ------------------------------------------------------------------ helpers

    async def _load_challenge(self, challenge_id: str | ObjectId) -> Challenge:
        challenge = await self._io("get_challenge", lambda: self.store.get_challenge(challenge_id))
        if challenge is None:
            raise NotFound("Challenge", challenge_id)
        return challenge

    async def _start_attempt(self, user_id: str, challenge: Challenge) -> Attempt:
        """Charger ou créer la tentative ; la création compte le joueur une seule fois."""
        attempt, created = await self._io(
            "get_or_create_attempt", lambda: self.store.get_or_create_attempt(user_id, challenge.id)
        )
        if created:
            logger_generic.info(f"[attempt] {user_id} started challenge {challenge.id}")
            await self._best_effort(
                "increment_players_played",
                lambda: self.store.increment_challenge_counter(challenge.id, "players_played"),
            )
            await self._best_effort(
                "increment_challenges_attempted",
                lambda: self.store.increment_user_counter(user_id, "challenges_attempted"),
            )
        return attempt

    async def _io(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_retry(operation, label=label, policy=self.retry_policy, sleep=self._sleep)

    async def _best_effort(self, label: str, operation: Callable[[], Awaitable[T]]) -> T | None:
        """Écriture secondaire : les échecs sont journalisés, jamais remontés."""
        try:
            return await self._io(label, operation)
        except (GameError, PyMongoError) as e:
            logger_errors.error(f"[attempt] {label} failed after authoritative write: {e!r}")
            return None

    def _log_failure(self, operation: str, user_id: str, challenge_id: Any, error: GameError) -> None:
        message = f"[attempt] {operation} rejected for {user_id} on {challenge_id}: {error.code.value} {error.message}"
        if isinstance(error, (InvalidAttempt, AlreadyComplete, NotFound)):
            logger_generic.info(message)
        else:
            logger_errors.error(message)
