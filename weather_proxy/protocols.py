"""Protocol definitions for dependency injection."""

from typing import Protocol

from weather_proxy.models.open_meteo import ForecastResponse, GeocodingResponse


class OpenMeteoClientProtocol(Protocol):
    """Protocol for the upstream weather data client.

    ``WeatherService`` depends on this interface rather than on the concrete
    HTTP client, so tests can substitute an ``AsyncMock``.
    """

    async def fetch_geocoding(self, name: str, max_results: int, language_code: str) -> GeocodingResponse:
        """Search cities by name.

        Args:
            name: Free-text city name
            max_results: Maximum number of matches
            language_code: Two-letter language code

        Returns:
            Raw geocoding response
        """
        ...

    async def fetch_forecast(self, latitude: float, longitude: float, forecast_days: int) -> ForecastResponse:
        """Fetch current conditions and a daily forecast.

        Returns:
            Raw forecast response
        """
        ...

    def circuit_states(self) -> dict[str, str]:
        """Circuit breaker state per outbound channel."""
        ...
