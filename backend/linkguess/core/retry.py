# backend/linkguess/core/retry.py
# Retry avec backoff exponentiel + jitter pour les erreurs d'I/O transitoires (Mongo, Redis).

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from pymongo.errors import ConnectionFailure
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from linkguess.core.errors import PersistenceFailure
from linkguess.core.logging_config import get_loggers
from linkguess.core.settings import get_settings

logger_generic, logger_errors = get_loggers()

T = TypeVar("T")

# ConnectionFailure couvre AutoReconnect, NetworkTimeout, ServerSelectionTimeoutError.
# DuplicateKeyError (OperationFailure) n'en fait pas partie : jamais rejouée.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionFailure,
    RedisConnectionError,
    RedisTimeoutError,
    ConnectionError,
    asyncio.TimeoutError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Politique de retry.

    Attributes:
        max_attempts (int): Nombre total d'essais (1 = pas de retry).
        initial_delay_s (float): Délai avant le 2e essai.
        max_delay_s (float): Plafond du délai (avant jitter).
        jitter_ratio (float): Jitter aléatoire ajouté, en fraction du délai.
    """

    max_attempts: int = 3
    initial_delay_s: float = 1.0
    max_delay_s: float = 10.0
    jitter_ratio: float = 0.3

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        settings = get_settings()
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay_s=settings.retry_initial_delay_s,
            max_delay_s=settings.retry_max_delay_s,
            jitter_ratio=settings.retry_jitter_ratio,
        )

    def delay_for(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """Délai à attendre après l'échec de l'essai `attempt` (0-based).

        Description:
            `min(initial * 2**attempt, max)` puis ajout d'un jitter dans `[0, jitter_ratio * delay)`.
        """
        delay = min(self.initial_delay_s * (2 ** attempt), self.max_delay_s)
        return delay + rand() * self.jitter_ratio * delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Exécuter une opération d'I/O avec retry sur erreurs transitoires.

    Description:
        Seules les erreurs de `TRANSIENT_ERRORS` sont rejouées ; toute autre exception
        (rejet logique, clé dupliquée, bug) remonte immédiatement. Une fois les essais
        épuisés, lève `PersistenceFailure` (chaînée sur la dernière erreur).

    Args:
        operation: Fabrique de coroutine (rappelée à chaque essai).
        label: Nom de l'opération pour les logs.
        policy: Politique de retry (défaut : settings).
        sleep: Fonction d'attente (injectable pour les tests).

    Returns:
        T: Résultat de l'opération.

    Raises:
        PersistenceFailure: Si tous les essais échouent sur erreur transitoire.
    """
    policy = policy or RetryPolicy.from_settings()
    last_error: BaseException | None = None

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except TRANSIENT_ERRORS as e:
            last_error = e
            if attempt < policy.max_attempts - 1:
                delay = policy.delay_for(attempt)
                logger_generic.warning(
                    f"[retry] {label} attempt {attempt + 1}/{policy.max_attempts} failed ({e!r}), "
                    f"retrying in {delay:.2f}s"
                )
                await sleep(delay)

    logger_errors.error(f"[retry] {label} failed after {policy.max_attempts} attempts: {last_error!r}")
    raise PersistenceFailure(f"{label} failed after {policy.max_attempts} attempts") from last_error
