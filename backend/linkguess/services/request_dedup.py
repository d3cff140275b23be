# backend/linkguess/services/request_dedup.py
# Déduplication des lectures concurrentes : une seule exécution par clé, résultat partagé.

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from linkguess.core.logging_config import get_loggers
from linkguess.core.settings import get_settings

logger_generic, _ = get_loggers()

T = TypeVar("T")


@dataclass
class _InFlight:
    task: asyncio.Task
    started_at: float


class RequestDeduplicator:
    """Regroupe les appels concurrents partageant une même clé.

    Description:
        Tous les appelants d'une clé dans la fenêtre `timeout_s` reçoivent la même
        `asyncio.Task` : le fetcher ne s'exécute qu'une fois et tous observent le même
        objet résultat (ou la même exception). La clé est retirée dès la fin de la tâche
        (succès ou échec) ; une entrée plus vieille que `timeout_s` est considérée absente.
        Instance propre au processus (construite au démarrage de l'application).
    """

    def __init__(self, timeout_s: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.timeout_s = timeout_s if timeout_s is not None else get_settings().dedupe_timeout_s
        self._clock = clock
        self._pending: dict[str, _InFlight] = {}

    @staticmethod
    def make_key(*parts: Any) -> str:
        """Clé de déduplication (`challenge:42:user:7`)."""
        return ":".join(str(p) for p in parts)

    def dedupe(self, key: str, fetcher: Callable[[], Awaitable[T]]) -> "asyncio.Task[T]":
        """Retourner la tâche en cours pour `key`, ou en lancer une.

        Args:
            key: Clé de la requête.
            fetcher: Fabrique de coroutine (appelée seulement si aucune tâche n'est en cours).

        Returns:
            asyncio.Task: Tâche partagée ; `await` donne le résultat commun.
        """
        self.cleanup_expired()
        entry = self._pending.get(key)
        if entry is not None:
            return entry.task

        task = asyncio.ensure_future(self._run(key, fetcher))
        self._pending[key] = _InFlight(task=task, started_at=self._clock())
        return task

    async def _run(self, key: str, fetcher: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fetcher()
        finally:
            entry = self._pending.get(key)
            # Ne pas retirer une tâche plus récente ayant remplacé une entrée expirée
            if entry is not None and entry.task is asyncio.current_task():
                del self._pending[key]

    def cleanup_expired(self) -> int:
        """Oublier les entrées plus vieilles que `timeout_s`.

        Returns:
            int: Nombre d'entrées retirées.
        """
        now = self._clock()
        expired = [k for k, e in self._pending.items() if now - e.started_at > self.timeout_s]
        for key in expired:
            del self._pending[key]
        if expired:
            logger_generic.warning(f"[dedupe] dropped {len(expired)} stale in-flight request(s)")
        return len(expired)

    def is_in_flight(self, key: str) -> bool:
        self.cleanup_expired()
        return key in self._pending

    def clear(self, key: str) -> None:
        self._pending.pop(key, None)

    def clear_all(self) -> None:
        self._pending.clear()

    @property
    def pending_count(self) -> int:
        return len(self._pending)
