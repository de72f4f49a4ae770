"""Weather service: city search and forecasts on top of the Open-Meteo client.

Upstream failures never leave this module as ``UpstreamError``; they are
wrapped in ``ServiceError`` with the error code the routers match on.
"""

import asyncio

from weather_proxy.exceptions import ErrorCode, ServiceError, UpstreamError
from weather_proxy.logging_config import get_logger, log_with_context
from weather_proxy.models.city import CityRecord
from weather_proxy.models.requests import CitySearchQuery, WeatherQuery
from weather_proxy.models.weather import WeatherResult
from weather_proxy.protocols import OpenMeteoClientProtocol
from weather_proxy.services.response_mapper import map_city_result, map_city_results, map_weather_result

logger = get_logger(__name__)

REVERSE_GEOCODE_LANGUAGE = "en"


def classify_upstream_error(error: UpstreamError) -> ErrorCode:
    """Error code for an upstream failure, treating "not found" answers as empty results."""
    if error.http_status_code == 404:
        return ErrorCode.NOT_FOUND_AS_EMPTY
    if error.response_body and "no results" in error.response_body.lower():
        return ErrorCode.NOT_FOUND_AS_EMPTY
    return error.code


def _upstream_details(error: UpstreamError) -> dict[str, object]:
    details: dict[str, object] = {"upstream_message": error.message}
    if error.http_status_code is not None:
        details["upstream_status_code"] = error.http_status_code
    return details


class WeatherService:
    """City search and weather lookups.

    Both operations take an optional ``timeout`` in seconds for the whole
    operation. Cancelling the calling task cancels the outbound request.
    """

    def __init__(self, client: OpenMeteoClientProtocol):
        self.client = client

    async def search_cities(self, query: CitySearchQuery, timeout: float | None = None) -> list[CityRecord]:
        """Search cities matching ``query.q``.

        Returns:
            Matching cities, empty when the provider found nothing

        Raises:
            ServiceError: Upstream failure (UPSTREAM_* codes) or anything else (UNEXPECTED)
        """
        log_with_context(
            logger,
            "info",
            "Searching cities",
            query=query.q,
            count=query.count,
            language=query.language,
            event_type="city_search",
        )

        try:
            async with asyncio.timeout(timeout):
                response = await self.client.fetch_geocoding(query.q, query.count, query.language)
            cities = map_city_results(response.results if response else None)
        except UpstreamError as e:
            code = classify_upstream_error(e)
            if code is ErrorCode.NOT_FOUND_AS_EMPTY:
                log_with_context(
                    logger,
                    "info",
                    "No cities found",
                    query=query.q,
                    upstream_status_code=e.http_status_code,
                    event_type="city_search_not_found",
                )
                return []
            log_with_context(
                logger,
                "error",
                "Upstream error during city search",
                query=query.q,
                error=e.message,
                error_code=code.value,
                event_type="city_search_upstream_error",
            )
            raise ServiceError(
                "Failed to retrieve city data from external service",
                code=code,
                details=_upstream_details(e),
            ) from e
        except TimeoutError as e:
            log_with_context(
                logger,
                "error",
                "City search timed out",
                query=query.q,
                timeout=timeout,
                event_type="city_search_timeout",
            )
            raise ServiceError(
                "City search timed out",
                code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED,
            ) from e
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Unexpected error during city search",
                query=query.q,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
                event_type="city_search_error",
            )
            raise ServiceError("An unexpected error occurred while searching for cities") from e

        log_with_context(
            logger,
            "info",
            "City search completed",
            query=query.q,
            city_count=len(cities),
            event_type="city_search_complete",
        )
        return cities

    async def get_weather(self, query: WeatherQuery, timeout: float | None = None) -> WeatherResult:
        """Current conditions and daily forecast for a coordinate.

        Location names come from the caller's hints, then from a best-effort
        reverse geocoding lookup, then from defaults.

        Raises:
            ServiceError: Upstream failure (UPSTREAM_* codes) or anything else (UNEXPECTED)
        """
        log_with_context(
            logger,
            "info",
            "Getting weather",
            latitude=query.lat,
            longitude=query.lon,
            days=query.days,
            event_type="weather_request",
        )

        deadline = None if timeout is None else asyncio.get_running_loop().time() + timeout
        try:
            async with asyncio.timeout_at(deadline):
                forecast = await self.client.fetch_forecast(query.lat, query.lon, query.days)
            if forecast is None:
                raise ServiceError("Received empty response from weather service")

            city_name, country_name = query.city_name, query.country_name
            if city_name is None or country_name is None:
                found_city, found_country = await self._reverse_geocode(query.lat, query.lon, deadline)
                city_name = city_name or found_city
                country_name = country_name or found_country

            weather = map_weather_result(forecast, city_name, country_name)
        except ServiceError:
            raise
        except UpstreamError as e:
            log_with_context(
                logger,
                "error",
                "Upstream error during weather lookup",
                latitude=query.lat,
                longitude=query.lon,
                error=e.message,
                error_code=e.code.value,
                event_type="weather_upstream_error",
            )
            raise ServiceError(
                "Failed to retrieve weather data from external service",
                code=e.code,
                details=_upstream_details(e),
            ) from e
        except TimeoutError as e:
            log_with_context(
                logger,
                "error",
                "Weather lookup timed out",
                latitude=query.lat,
                longitude=query.lon,
                timeout=timeout,
                event_type="weather_timeout",
            )
            raise ServiceError(
                "Weather lookup timed out",
                code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED,
            ) from e
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Unexpected error during weather lookup",
                latitude=query.lat,
                longitude=query.lon,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
                event_type="weather_error",
            )
            raise ServiceError("An unexpected error occurred while retrieving weather data") from e

        log_with_context(
            logger,
            "info",
            "Weather lookup completed",
            latitude=query.lat,
            longitude=query.lon,
            location=weather.location.name,
            event_type="weather_complete",
        )
        return weather

    async def _reverse_geocode(
        self,
        latitude: float,
        longitude: float,
        deadline: float | None = None,
    ) -> tuple[str | None, str | None]:
        """Best-effort name lookup for a coordinate. Failures yield ``(None, None)``.

        The lookup has its own timeout ending at ``deadline`` (event loop time), so
        running out of time here never fails the weather request.
        """
        try:
            async with asyncio.timeout_at(deadline):
                response = await self.client.fetch_geocoding(
                    f"{latitude:.2f},{longitude:.2f}",
                    1,
                    REVERSE_GEOCODE_LANGUAGE,
                )
            results = response.results if response else None
            if not results:
                return None, None
            city = map_city_result(results[0])
            return city.name, city.country
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            self._log_reverse_geocode_failure(latitude, longitude, e)
        except Exception as e:
            self._log_reverse_geocode_failure(latitude, longitude, e)
        return None, None

    @staticmethod
    def _log_reverse_geocode_failure(latitude: float, longitude: float, error: BaseException) -> None:
        log_with_context(
            logger,
            "debug",
            "Reverse geocoding failed, continuing without a location name",
            latitude=latitude,
            longitude=longitude,
            error=str(error),
            error_type=type(error).__name__,
            event_type="reverse_geocode_failed",
        )
