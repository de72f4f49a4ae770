"""Health and service info endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from weather_proxy import __version__
from weather_proxy.dependencies import get_open_meteo_client
from weather_proxy.models import DetailedHealthResponse, HealthResponse
from weather_proxy.services.open_meteo_client import OpenMeteoClient
from weather_proxy.services.resilience import CircuitState

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Weather Proxy API", "docs": "/docs"}


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health check endpoint.

    Returns simple status for container healthchecks and basic monitoring.
    For circuit breaker state, use `/health/ready`.
    """
    return HealthResponse(status="ok", version=__version__)


@router.get("/health/ready", response_model=DetailedHealthResponse)
async def readiness_check(client: OpenMeteoClient = Depends(get_open_meteo_client)):
    """Readiness probe - can the application serve traffic?

    Reports each outbound channel's circuit breaker state. No upstream call is made.

    **Returns:**
    - 200: Every circuit is closed or half-open
    - 503: At least one circuit is open
    """
    checks = client.circuit_states()
    any_open = any(state == CircuitState.OPEN.value for state in checks.values())

    return JSONResponse(
        status_code=503 if any_open else 200,
        content=DetailedHealthResponse(
            status="degraded" if any_open else "healthy",
            version=__version__,
            timestamp=datetime.now(UTC),
            checks=checks,
        ).model_dump(mode="json"),
    )
