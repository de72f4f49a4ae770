"""Open-Meteo API client.

Two resilient channels, one for the geocoding search API and one for the
forecast API. Every failure surfaces as an ``UpstreamError`` whose code tells
callers whether it was transient (retries exhausted) or terminal.
"""

from typing import TypeVar
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ValidationError

from weather_proxy.exceptions import ErrorCode, UpstreamError
from weather_proxy.logging_config import get_logger, log_with_context
from weather_proxy.middleware.correlation_middleware import CORRELATION_ID_HEADER, get_correlation_id
from weather_proxy.models.open_meteo import ForecastResponse, GeocodingResponse
from weather_proxy.services.resilience import ResilientChannel, is_retryable_status
from weather_proxy.utils.coordinates import are_valid_coordinates

GEOCODING_PATH = "v1/search"
FORECAST_PATH = "v1/forecast"

CURRENT_FIELDS = "temperature_2m,wind_speed_10m,is_day,weather_code"
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min,precipitation_probability_max,wind_speed_10m_max"

STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid request parameters",
    404: "Resource not found",
    422: "Invalid coordinates or parameters",
    429: "Rate limit exceeded",
    500: "External service error",
    502: "External service unavailable",
    503: "External service temporarily unavailable",
    504: "External service timeout",
}
UNKNOWN_STATUS_MESSAGE = "Unknown error from external service"

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = get_logger(__name__)


def status_error(response: httpx.Response) -> UpstreamError:
    """Build the ``UpstreamError`` for a non-success response."""
    status = response.status_code
    message = STATUS_MESSAGES.get(status, UNKNOWN_STATUS_MESSAGE)
    code = ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED if is_retryable_status(status) else ErrorCode.UPSTREAM_TERMINAL
    return UpstreamError(
        f"{message} (HTTP {status})",
        http_status_code=status,
        response_body=response.text,
        code=code,
    )


class OpenMeteoClient:
    """Client for the Open-Meteo geocoding and forecast APIs."""

    def __init__(self, geocoding: ResilientChannel, forecast: ResilientChannel):
        self.geocoding = geocoding
        self.forecast = forecast

    async def fetch_geocoding(self, name: str, max_results: int, language_code: str) -> GeocodingResponse:
        """Search cities by name.

        Args:
            name: Free-text city name
            max_results: Maximum number of matches to request
            language_code: Two-letter language for result names

        Returns:
            Parsed response; ``results`` is empty when the body was empty

        Raises:
            ValueError: Blank name or non-positive max_results
            UpstreamError: The call failed or the response could not be parsed
        """
        if not name or not name.strip():
            raise ValueError("City name cannot be empty")
        if max_results <= 0:
            raise ValueError("max_results must be greater than 0")

        url = (
            f"{GEOCODING_PATH}?name={quote(name, safe='')}"
            f"&count={max_results}&language={quote(language_code, safe='')}&format=json"
        )
        response = await self._send(
            self.geocoding,
            url,
            failure_message="Failed to retrieve geocoding data from Open-Meteo API",
            timeout_message="Geocoding API request timed out",
        )

        if not response.text.strip():
            return GeocodingResponse(results=[])

        return self._parse(response, GeocodingResponse, "Invalid response format from geocoding API")

    async def fetch_forecast(self, latitude: float, longitude: float, forecast_days: int) -> ForecastResponse:
        """Fetch current conditions and a daily forecast.

        Raises:
            ValueError: Invalid coordinates or non-positive forecast_days
            UpstreamError: The call failed, or the body was empty or malformed
        """
        if not are_valid_coordinates(latitude, longitude):
            raise ValueError(f"Invalid coordinates: latitude={latitude}, longitude={longitude}")
        if forecast_days <= 0:
            raise ValueError("forecast_days must be greater than 0")

        query = urlencode(
            {
                "latitude": f"{latitude:.6f}",
                "longitude": f"{longitude:.6f}",
                "current": CURRENT_FIELDS,
                "daily": DAILY_FIELDS,
                "timezone": "auto",
                "forecast_days": forecast_days,
            },
            safe=",",
            quote_via=quote,
        )
        response = await self._send(
            self.forecast,
            f"{FORECAST_PATH}?{query}",
            failure_message="Failed to retrieve weather data from Open-Meteo API",
            timeout_message="Weather API request timed out",
        )

        if not response.text.strip():
            raise UpstreamError("Empty response from weather API")

        return self._parse(response, ForecastResponse, "Invalid response format from weather API")

    async def _send(
        self,
        channel: ResilientChannel,
        url: str,
        failure_message: str,
        timeout_message: str,
    ) -> httpx.Response:
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id

        try:
            response = await channel.send("GET", url, headers=headers)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamError(timeout_message, code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED) from e
        except httpx.RequestError as e:
            raise UpstreamError(failure_message, code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED) from e

        if not response.is_success:
            error = status_error(response)
            log_with_context(
                logger,
                "warning",
                "Open-Meteo returned an error status",
                channel=channel.name,
                upstream_status_code=response.status_code,
                response_body=response.text[:500],
                error_code=error.code.value,
                event_type="upstream_error_status",
            )
            raise error

        return response

    def _parse(self, response: httpx.Response, model: type[ModelT], message: str) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            log_with_context(
                logger,
                "warning",
                message,
                error=str(e)[:500],
                event_type="upstream_parse_error",
            )
            raise UpstreamError(message, response_body=response.text) from e

    def circuit_states(self) -> dict[str, str]:
        """Current circuit state per channel."""
        return {
            self.geocoding.name: self.geocoding.breaker.state.value,
            self.forecast.name: self.forecast.breaker.state.value,
        }

    async def aclose(self) -> None:
        await self.geocoding.aclose()
        await self.forecast.aclose()
