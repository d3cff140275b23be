# backend/linkguess/services/score_policy.py
# Barème : score décroissant par essai, pénalité d'indice selon le nombre d'images, niveaux.

from __future__ import annotations

from linkguess.core.errors import InvalidAttempt
from linkguess.models.results import Reward

MAX_ATTEMPTS = 10
BASE_SCORE = 30
ATTEMPT_DECAY = 2
ATTEMPT_SCORE_FLOOR = 12

# Constante d'équilibrage (non dérivée) : points retirés par indice selon le nombre d'images.
HINT_PENALTY_BY_IMAGE_COUNT: dict[int, int] = {2: 6, 3: 4}

COMMENT_REWARD = Reward(points=1, exp=1)

EXP_PER_LEVEL_STEP = 50


def _check_attempt_number(attempt_number: int) -> None:
    if not isinstance(attempt_number, int) or isinstance(attempt_number, bool):
        raise InvalidAttempt(f"attempt number must be an integer, got {attempt_number!r}")
    if not 1 <= attempt_number <= MAX_ATTEMPTS:
        raise InvalidAttempt(
            f"attempt number must be in [1, {MAX_ATTEMPTS}], got {attempt_number}",
            attempt_number=attempt_number,
        )


def reward(attempt_number: int, was_correct: bool) -> Reward:
    """Récompense d'une proposition.

    Description:
        Proposition fausse : `Reward(0, 0)`. Proposition juste :
        `max(12, 30 - 2 * (n - 1))` points, expérience égale aux points.

    Args:
        attempt_number: Numéro de l'essai (1-based, dans [1, 10]).
        was_correct: Proposition juste ou non.

    Returns:
        Reward: Points et expérience.

    Raises:
        InvalidAttempt: Si `attempt_number` est hors de [1, 10] (pas de clamp).
    """
    _check_attempt_number(attempt_number)
    if not was_correct:
        return Reward(points=0, exp=0)
    points = max(ATTEMPT_SCORE_FLOOR, BASE_SCORE - ATTEMPT_DECAY * (attempt_number - 1))
    return Reward(points=points, exp=points)


def hint_penalty(image_count: int) -> int:
    """Pénalité par indice pour un challenge de `image_count` images.

    Raises:
        InvalidAttempt: Si le nombre d'images n'est pas dans la table.
    """
    try:
        return HINT_PENALTY_BY_IMAGE_COUNT[image_count]
    except KeyError:
        raise InvalidAttempt(f"unsupported image count: {image_count}", image_count=image_count) from None


def potential_score(attempt_number: int, hints_used: int, image_count: int) -> int:
    """Score obtenu si la proposition `attempt_number` est juste.

    Description:
        Score de `reward` diminué de `hint_penalty(image_count) * hints_used`, plancher à 0.
        C'est à la fois le score affiché avant la proposition et le score crédité.

    Args:
        attempt_number: Numéro de l'essai (1-based, dans [1, 10]).
        hints_used: Nombre d'indices déjà révélés (>= 0).
        image_count: Nombre d'images du challenge (2 ou 3).

    Returns:
        int: Score potentiel (>= 0).

    Raises:
        InvalidAttempt: Entrées hors contrat.
    """
    if hints_used < 0:
        raise InvalidAttempt(f"hints used cannot be negative, got {hints_used}", hints_used=hints_used)
    penalty = hint_penalty(image_count)
    base = reward(attempt_number, True).points
    return max(0, base - penalty * hints_used)


def exp_for_level(level: int) -> int:
    """Expérience nécessaire pour passer du niveau `level` au suivant."""
    return EXP_PER_LEVEL_STEP * level


def calculate_level(total_exp: int) -> int:
    """Niveau atteint pour une expérience cumulée.

    Description:
        Le palier du niveau `l` vers `l+1` coûte `50 * l` : niveau 2 à 100 exp,
        niveau 3 à 250, niveau 4 à 450, etc.
    """
    level = 1
    remaining = max(0, total_exp)
    while remaining >= exp_for_level(level + 1):
        remaining -= exp_for_level(level + 1)
        level += 1
    return level


def exp_to_next_level(total_exp: int, level: int | None = None) -> int:
    """Expérience manquante avant le prochain niveau."""
    current = level if level is not None else calculate_level(total_exp)
    threshold = sum(exp_for_level(step) for step in range(2, current + 2))
    return max(0, threshold - max(0, total_exp))
