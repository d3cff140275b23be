# backend/linkguess/core/exception_handlers.py
# Gestionnaires d'exceptions globaux + traduction des `ServiceResult` en échec vers des statuts HTTP.

from typing import TypeVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from linkguess.api.dto.response_format import ErrorResponse
from linkguess.core.errors import ErrorCode
from linkguess.core.logging_config import get_loggers
from linkguess.models.results import Failure, ServiceResult

logger_generic, logger_errors = get_loggers()

T = TypeVar("T")

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_ATTEMPT: 422,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ALREADY_COMPLETE: 409,
    ErrorCode.PERSISTENCE_FAILURE: 503,
}


class ServiceFailure(Exception):
    """Échec métier remonté par une route (converti en `ErrorResponse`)."""

    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.failure.code, 400)


def unwrap(result: ServiceResult[T]) -> T:
    """Retourne `result.data` ou lève `ServiceFailure` si le service a échoué."""
    if not result.success:
        raise ServiceFailure(result.error)
    return result.data


def register_exception_handlers(app: FastAPI):
    """Enregistre les gestionnaires d'exceptions globaux pour standardiser les réponses."""

    @app.exception_handler(ServiceFailure)
    async def service_failure_handler(request: Request, exc: ServiceFailure):
        """Gestionnaire pour les échecs métier (INVALID_ATTEMPT, NOT_FOUND…)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse.from_failure(exc.failure).model_dump(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Gestionnaire pour les exceptions HTTP standards."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse.from_detail(
                {"code": f"HTTP_{exc.status_code}", "message": exc.detail}
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Gestionnaire pour les erreurs de validation Pydantic."""
        errors = []
        for error in exc.errors():
            errors.append(
                {
                    "field": " -> ".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
            )

        return JSONResponse(
            status_code=422,
            content=ErrorResponse.from_detail(
                {"code": "VALIDATION_ERROR", "message": "Validation failed", "details": errors}
            ).model_dump(),
        )

    # Gestionnaire pour les exceptions non capturées
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Gestionnaire pour les exceptions non capturées."""
        logger_errors.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.from_detail(
                {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
            ).model_dump(),
        )
