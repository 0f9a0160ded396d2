"""Health check endpoints used for liveness and readiness checks."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fieldflow.core.config import get_settings
from fieldflow.infrastructure.persistence import database
from fieldflow.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        503: {"description": "Automation runtime not available", "model": ReadinessErrorResponse}
    },
)
def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the automation runtime is up (or deliberately disabled); 503 otherwise."""
    settings = get_settings()
    runtime = getattr(request.app.state, "automation", None)
    if settings.automation_enabled and runtime is None:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                message="Automation runtime not started (is DATABASE_URL set?)",
            ).model_dump(),
        )
    return ReadinessResponse(
        database=database.is_configured(),
        automation=runtime is not None,
        scheduler_running=runtime is not None and runtime.scheduler.is_running,
    )
