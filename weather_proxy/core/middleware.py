"""Middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter

from weather_proxy.config import Settings
from weather_proxy.core.rate_limit import configure_limiter
from weather_proxy.logging_config import get_logger, log_with_context
from weather_proxy.middleware.correlation_middleware import CORRELATION_ID_HEADER, CorrelationIdMiddleware

logger = get_logger(__name__)

CORS_MAX_AGE_SECONDS = 600


def setup_middleware(app: FastAPI, settings: Settings) -> Limiter:
    """Configure all middleware for the application.

    Args:
        app: FastAPI application instance
        settings: Application settings

    Returns:
        Limiter instance for rate limiting
    """
    # Correlation ids first so CORS runs outermost
    app.add_middleware(CorrelationIdMiddleware)

    log_with_context(
        logger,
        "info",
        "Configuring CORS middleware",
        event_type="security_config",
        origin=settings.cors_origin,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", CORRELATION_ID_HEADER],
        expose_headers=[CORRELATION_ID_HEADER],
        max_age=CORS_MAX_AGE_SECONDS,
    )

    limiter = configure_limiter(settings)
    app.state.limiter = limiter
    log_with_context(
        logger,
        "info",
        "Configured rate limiting",
        event_type="rate_limit_config",
        rate_limit=settings.rate_limit,
        enabled=settings.rate_limit_enabled,
    )

    return limiter
