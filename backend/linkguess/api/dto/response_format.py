# backend/linkguess/api/dto/response_format.py
# Enveloppes de réponse standard de l'API (succès / erreur métier).

from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

from linkguess.models.results import Failure

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Réponse de succès : `data` porte le résultat du service (GuessOutcome, LeaderboardPage…)."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Réponse d'erreur : `error` contient au moins `code` et `message`."""

    success: bool = False
    error: dict[str, Any]

    @classmethod
    def from_detail(cls, detail: Union[str, dict[str, Any]], code: str = "VALIDATION_ERROR"):
        """Créer une réponse d'erreur à partir d'un détail."""
        if isinstance(detail, str):
            return cls(error={"code": code, "message": detail})
        return cls(error={"code": code, **detail})

    @classmethod
    def from_failure(cls, failure: Failure) -> "ErrorResponse":
        """Créer une réponse d'erreur depuis l'échec d'un `ServiceResult`."""
        return cls(error={"code": failure.code.value, "message": failure.message})
