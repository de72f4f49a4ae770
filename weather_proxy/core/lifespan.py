"""Application lifespan management."""

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI

from weather_proxy import __version__
from weather_proxy.config import ChannelSettings, Settings, get_settings
from weather_proxy.logging_config import get_logger, log_with_context
from weather_proxy.services.open_meteo_client import OpenMeteoClient
from weather_proxy.services.resilience import ResilientChannel
from weather_proxy.services.weather_service import WeatherService

logger = get_logger(__name__)


async def log_request(request: httpx.Request) -> None:
    """Event hook to log outbound requests."""
    log_with_context(
        logger,
        "info",
        "HTTP Request",
        method=request.method,
        url=str(request.url),
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Event hook to log outbound responses."""
    await response.aread()  # Ensure response is read
    log_with_context(
        logger,
        "info",
        "HTTP Response",
        status_code=response.status_code,
        url=str(response.request.url),
        event_type="http_response",
    )


def build_http_client(
    channel: ChannelSettings,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the pooled HTTP client for one outbound channel.

    The read timeout matches the per-attempt budget; the resilience policy
    enforces the attempt and overall deadlines on top of it.
    """
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }
    return httpx.AsyncClient(
        base_url=channel.base_url,
        headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
        timeout=httpx.Timeout(
            connect=min(5.0, channel.attempt_timeout),  # Connection establishment timeout
            read=channel.attempt_timeout,  # Read response timeout
            write=5.0,  # Write operation timeout
            pool=5.0,  # Pool checkout timeout
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,  # How long to keep idle connections
        ),
        follow_redirects=True,
        event_hooks=event_hooks,
        transport=transport,
    )


def build_open_meteo_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OpenMeteoClient:
    """Create the Open-Meteo client with its geocoding and forecast channels."""
    return OpenMeteoClient(
        geocoding=ResilientChannel(
            "geocoding",
            build_http_client(settings.geocoding, settings, transport),
            settings.geocoding.to_policy(),
        ),
        forecast=ResilientChannel(
            "forecast",
            build_http_client(settings.forecast, settings, transport),
            settings.forecast.to_policy(),
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan - startup and shutdown events.

    Settings and an optional upstream transport are read from ``app.state``,
    where ``create_app`` puts them.
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    transport: httpx.AsyncBaseTransport | None = getattr(app.state, "upstream_transport", None)

    app.state.startup_time = time.time()

    log_with_context(
        logger,
        "info",
        "Starting Weather Proxy application",
        version=__version__,
        event_type="app_startup",
    )

    client = build_open_meteo_client(settings, transport)
    app.state.open_meteo_client = client
    app.state.weather_service = WeatherService(client)
    log_with_context(
        logger,
        "info",
        "Open-Meteo client initialized",
        geocoding_url=settings.geocoding.base_url,
        forecast_url=settings.forecast.base_url,
        event_type="http_client_ready",
    )

    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Application error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        # Cleanup always runs, even if exception was raised
        log_with_context(
            logger,
            "info",
            "Shutting down Weather Proxy application",
            event_type="app_shutdown",
        )

        await client.aclose()
        log_with_context(
            logger,
            "info",
            "HTTP clients closed",
            event_type="http_client_cleanup",
        )
