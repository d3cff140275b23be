# backend/linkguess/services/preload.py
# Préchargement des challenges suivants du fil (cache borné, enrichissement optionnel).

from __future__ import annotations

import asyncio
import datetime as dt
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Optional

from pydantic import BaseModel, Field

from linkguess.core.logging_config import get_loggers
from linkguess.core.settings import get_settings
from linkguess.core.utils import utcnow
from linkguess.models.challenge import Challenge

logger_generic, logger_errors = get_loggers()

Enricher = Callable[[Challenge], Awaitable[dict[str, Any]]]


class PreloadedChallenge(BaseModel):
    """Challenge préchargé et ses données d'enrichissement (ex. avatar du créateur)."""

    challenge: Challenge
    extras: dict[str, Any] = Field(default_factory=dict)
    preloaded_at: dt.datetime = Field(default_factory=utcnow)
    enrichment_failed: bool = False


class PreloadCache:
    """Cache des prochains challenges du fil.

    Description:
        Cache consultatif borné (`max_cache_size`, éviction du plus ancien). Le
        préchargement ne lève jamais d'exception : un échec d'enrichissement est
        journalisé et le challenge de base reste en cache.
    """

    def __init__(
        self,
        preload_count: int | None = None,
        max_cache_size: int | None = None,
        delay_s: float | None = None,
    ):
        settings = get_settings()
        self.preload_count = preload_count if preload_count is not None else settings.preload_count
        self.max_cache_size = max_cache_size if max_cache_size is not None else settings.preload_max_cache_size
        self.delay_s = delay_s if delay_s is not None else settings.preload_delay_s
        self._cache: OrderedDict[str, PreloadedChallenge] = OrderedDict()
        self._pending: set[str] = set()

    async def preload_next(
        self,
        current_index: int,
        challenges: Sequence[Challenge],
        count: Optional[int] = None,
        enrich: Optional[Enricher] = None,
    ) -> list[str]:
        """Précharger les challenges `current_index+1 .. current_index+count`.

        Args:
            current_index: Position du challenge affiché dans `challenges`.
            challenges: Fil de challenges.
            count: Nombre à précharger (défaut : `preload_count`, plafonné à `max_cache_size`).
            enrich: Enrichissement optionnel par challenge.

        Returns:
            list[str]: Identifiants nouvellement mis en cache et toujours présents (vide en fin de liste).
        """
        count = self.preload_count if count is None else count
        count = min(count, self.max_cache_size)
        start = max(current_index + 1, 0)
        upcoming = list(challenges[start:start + max(count, 0)])
        targets: list[Challenge] = []
        for challenge in upcoming:
            if self._wants(challenge):
                self._pending.add(str(challenge.id))
                targets.append(challenge)
        if not targets:
            return []

        try:
            if self.delay_s > 0:
                await asyncio.sleep(self.delay_s)
            loaded = await asyncio.gather(*(self._load(c, enrich) for c in targets))
        finally:
            for challenge in targets:
                self._pending.discard(str(challenge.id))

        for item in loaded:
            self._put(item)
        # Un lot concurrent a pu évincer une partie de celui-ci
        ids = [str(item.challenge.id) for item in loaded if str(item.challenge.id) in self._cache]
        logger_generic.info(f"[preload] cached {len(ids)} challenge(s) after index {current_index}")
        return ids

    def _wants(self, challenge: Challenge) -> bool:
        if challenge.id is None:
            return False
        key = str(challenge.id)
        return key not in self._cache and key not in self._pending

    async def _load(self, challenge: Challenge, enrich: Optional[Enricher]) -> PreloadedChallenge:
        if enrich is None:
            return PreloadedChallenge(challenge=challenge)
        try:
            extras = await enrich(challenge)
        except Exception as e:
            logger_errors.error(f"[preload] enrichment failed for challenge {challenge.id}: {e!r}")
            return PreloadedChallenge(challenge=challenge, enrichment_failed=True)
        return PreloadedChallenge(challenge=challenge, extras=extras or {})

    def _put(self, item: PreloadedChallenge) -> None:
        self._cache[str(item.challenge.id)] = item
        while len(self._cache) > self.max_cache_size:
            self._cache.popitem(last=False)

    def take(self, challenge_id: str) -> PreloadedChallenge | None:
        """Récupérer (et retirer) un challenge préchargé."""
        return self._cache.pop(str(challenge_id), None)

    def has(self, challenge_id: str) -> bool:
        return str(challenge_id) in self._cache

    def clear(self) -> None:
        self._cache.clear()
        self._pending.clear()

    @property
    def size(self) -> int:
        return len(self._cache)
