"""FastAPI dependencies for dependency injection."""

from fastapi import Request

from weather_proxy.services.open_meteo_client import OpenMeteoClient
from weather_proxy.services.weather_service import WeatherService


async def get_open_meteo_client(request: Request) -> OpenMeteoClient:
    """
    Get the shared Open-Meteo client from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        The shared OpenMeteoClient instance.

    Raises:
        RuntimeError: If the client is not initialized.
    """
    client: OpenMeteoClient | None = getattr(request.app.state, "open_meteo_client", None)

    if client is None:
        raise RuntimeError("Open-Meteo client not initialized. This should never happen.")

    return client


async def get_weather_service(request: Request) -> WeatherService:
    """
    Get the weather service from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        The shared WeatherService instance.

    Raises:
        RuntimeError: If the weather service is not initialized.
    """
    service: WeatherService | None = getattr(request.app.state, "weather_service", None)

    if service is None:
        raise RuntimeError("Weather service not initialized.")

    return service
