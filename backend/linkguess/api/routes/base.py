# backend/linkguess/api/routes/base.py
# Routes de base (ping, health check MongoDB + Redis).

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from linkguess.api.deps import Services
from linkguess.api.dto.game import HealthCheck
from linkguess.core.logging_config import get_loggers

logger_generic, logger_errors = get_loggers()

API_VERSION = "0.1.0"

router = APIRouter(tags=["Health"])


@router.get(
    "/ping",
    summary="Vérification de santé de l’API",
    description="Retourne un message 'pong' permettant de tester que l’API répond.",
)
async def ping():
    """Health-check API.

    Returns:
        dict: Statut et message de réponse.
    """
    return {"status": "ok", "message": "pong"}


@router.get(
    "/health",
    response_model=HealthCheck,
    summary="Health check de l'API",
    description="Retourne le statut de l'API et de ses dépendances (MongoDB, Redis).",
)
async def health(services: Services) -> JSONResponse:
    """Health check : 200 si tout répond, 503 sinon."""
    checks = {
        "database": await _check("database", services.store.db.command("ping")),
        "redis": await _check("redis", services.redis.ping()),
    }

    has_errors = any(check != "ok" for check in checks.values())
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE if has_errors else status.HTTP_200_OK
    response = HealthCheck(
        status="degraded" if has_errors else "ok",
        version=API_VERSION,
        checks=checks,
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


async def _check(name: str, pending) -> str:
    try:
        await pending
        return "ok"
    except Exception as e:
        logger_errors.error(f"{name} health check failed: {e}")
        return f"error: {str(e)}"
