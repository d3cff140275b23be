# backend/linkguess/core/errors.py
# Taxonomie des erreurs métier du moteur de tentatives / récompenses.

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Codes d'erreur exposés aux appelants (routes, triggers)."""

    INVALID_ATTEMPT = "INVALID_ATTEMPT"
    ALREADY_COMPLETE = "ALREADY_COMPLETE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    NOT_FOUND = "NOT_FOUND"


class GameError(Exception):
    """Erreur métier typée.

    Description:
        Porte un `code` stable (voir `ErrorCode`) et un message destiné aux logs.
        Les services la convertissent en `ServiceResult` en échec ; elle ne doit pas
        remonter jusqu'au client sous forme d'exception.

    Attributes:
        code (ErrorCode): Code de l'erreur.
        message (str): Message lisible.
        details (dict): Contexte optionnel (identifiants, index…).
    """

    code: ErrorCode = ErrorCode.INVALID_ATTEMPT
    public_message: str | None = None

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def client_message(self) -> str:
        """Message renvoyé au client (générique pour les erreurs d'I/O)."""
        return self.public_message or self.message


class InvalidAttempt(GameError):
    """Violation du contrat appelant (numéro de tentative, index d'image hors bornes…)."""

    code = ErrorCode.INVALID_ATTEMPT


class AlreadyComplete(GameError):
    """La partie est déjà terminée (résolue, épuisée ou abandonnée)."""

    code = ErrorCode.ALREADY_COMPLETE


class NotFound(GameError):
    """Challenge, tentative ou profil introuvable."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} not found: {identifier}", resource=resource, identifier=str(identifier))


class PersistenceFailure(GameError):
    """Échec d'I/O persistant (retries épuisés)."""

    code = ErrorCode.PERSISTENCE_FAILURE
    public_message = "Something went wrong, please try again."
