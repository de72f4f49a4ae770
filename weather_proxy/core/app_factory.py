"""Application factory for creating and configuring the FastAPI app."""

import httpx
from fastapi import FastAPI

from weather_proxy import __version__
from weather_proxy.config import Settings, get_settings
from weather_proxy.core.lifespan import lifespan
from weather_proxy.core.middleware import setup_middleware
from weather_proxy.middleware.error_handlers import register_error_handlers
from weather_proxy.routers import city_router, health_router, weather_router


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment-based singleton
        transport: Transport for outbound Open-Meteo calls, e.g. ``httpx.MockTransport`` in tests

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Weather Proxy API",
        description="""
        **Weather Proxy** - City search and weather forecasts backed by Open-Meteo

        ## Endpoints
        - `/api/cities/search` - Search cities by name
        - `/api/weather` - Current conditions and daily forecast by coordinates

        ## Errors
        Failures are returned as RFC 7807 problem details (`application/problem+json`)
        carrying the request's `x-correlation-id`.

        ## Health
        - `/health` - Basic health check
        - `/health/ready` - Readiness with circuit breaker state

        ## Rate Limits
        - API endpoints: 60 requests/minute per IP (configurable)
        """,
        version=__version__,
        lifespan=lifespan,
    )

    # Read by the lifespan at startup
    app.state.settings = settings
    app.state.upstream_transport = transport

    # Configure middleware
    setup_middleware(app, settings)

    # Register exception handlers
    register_error_handlers(app)

    # Include routers
    app.include_router(health_router.router, tags=["health"])
    app.include_router(city_router.router, prefix="/api/cities", tags=["cities"])
    app.include_router(weather_router.router, prefix="/api/weather", tags=["weather"])

    return app
