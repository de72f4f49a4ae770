"""Unit tests for the weather service."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from weather_proxy.exceptions import CircuitOpenError, ErrorCode, ServiceError, UpstreamError
from weather_proxy.models.open_meteo import ForecastResponse, GeocodingResponse
from weather_proxy.models.requests import CitySearchQuery, WeatherQuery
from weather_proxy.services.weather_service import WeatherService, classify_upstream_error


@pytest.fixture
def mock_client(forecast_payload):
    """AsyncMock standing in for OpenMeteoClient."""
    client = AsyncMock()
    client.fetch_geocoding = AsyncMock(return_value=GeocodingResponse(results=[]))
    client.fetch_forecast = AsyncMock(return_value=ForecastResponse.model_validate(forecast_payload))
    return client


@pytest.fixture
def service(mock_client):
    return WeatherService(mock_client)


def london_query():
    return WeatherQuery(lat=51.5074, lon=-0.1278, days=5)


class TestClassifyUpstreamError:
    """Tests for not-found classification."""

    def test_404_is_empty(self):
        assert classify_upstream_error(UpstreamError("x", http_status_code=404)) is ErrorCode.NOT_FOUND_AS_EMPTY

    def test_no_results_body_is_empty(self):
        error = UpstreamError("x", http_status_code=400, response_body='{"reason": "No Results found"}')
        assert classify_upstream_error(error) is ErrorCode.NOT_FOUND_AS_EMPTY

    def test_other_errors_keep_their_code(self):
        error = UpstreamError("x", http_status_code=503, code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED)
        assert classify_upstream_error(error) is ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED


class TestSearchCities:
    """Tests for WeatherService.search_cities."""

    @pytest.mark.asyncio
    async def test_returns_mapped_cities(self, service, mock_client, london_result, krakow_result):
        mock_client.fetch_geocoding.return_value = GeocodingResponse.model_validate(
            {"results": [london_result, krakow_result]}
        )

        cities = await service.search_cities(CitySearchQuery(q="London", count=2, language="en"))

        assert [city.name for city in cities] == ["London", "Kraków"]
        mock_client.fetch_geocoding.assert_awaited_once_with("London", 2, "en")

    @pytest.mark.asyncio
    async def test_missing_results_is_empty(self, service, mock_client):
        mock_client.fetch_geocoding.return_value = GeocodingResponse()
        assert await service.search_cities(CitySearchQuery(q="Nowhere")) == []

    @pytest.mark.asyncio
    async def test_upstream_404_is_empty(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = UpstreamError("Resource not found (HTTP 404)", http_status_code=404)
        assert await service.search_cities(CitySearchQuery(q="Nowhere")) == []

    @pytest.mark.asyncio
    async def test_no_results_body_is_empty(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = UpstreamError(
            "Invalid request parameters (HTTP 400)", http_status_code=400, response_body="no results"
        )
        assert await service.search_cities(CitySearchQuery(q="Nowhere")) == []

    @pytest.mark.asyncio
    async def test_upstream_error_wrapped(self, service, mock_client):
        upstream = UpstreamError(
            "External service error (HTTP 500)",
            http_status_code=500,
            code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED,
        )
        mock_client.fetch_geocoding.side_effect = upstream

        with pytest.raises(ServiceError) as exc_info:
            await service.search_cities(CitySearchQuery(q="London"))

        error = exc_info.value
        assert error.message == "Failed to retrieve city data from external service"
        assert error.code is ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED
        assert error.status_code == 502
        assert error.details["upstream_status_code"] == 500
        assert error.__cause__ is upstream

    @pytest.mark.asyncio
    async def test_terminal_error_keeps_code(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = UpstreamError("Invalid response format from geocoding API")

        with pytest.raises(ServiceError) as exc_info:
            await service.search_cities(CitySearchQuery(q="London"))

        assert exc_info.value.code is ErrorCode.UPSTREAM_TERMINAL

    @pytest.mark.asyncio
    async def test_open_circuit_is_transient(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = CircuitOpenError("geocoding", 10.0)

        with pytest.raises(ServiceError) as exc_info:
            await service.search_cities(CitySearchQuery(q="London"))

        assert exc_info.value.code is ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = RuntimeError("boom")

        with pytest.raises(ServiceError) as exc_info:
            await service.search_cities(CitySearchQuery(q="London"))

        assert exc_info.value.message == "An unexpected error occurred while searching for cities"
        assert exc_info.value.code is ErrorCode.UNEXPECTED
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_deadline_expiry(self, service, mock_client):
        async def slow(*args):
            await asyncio.sleep(1)

        mock_client.fetch_geocoding.side_effect = slow

        with pytest.raises(ServiceError) as exc_info:
            await service.search_cities(CitySearchQuery(q="London"), timeout=0.01)

        assert exc_info.value.code is ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED


class TestGetWeather:
    """Tests for WeatherService.get_weather."""

    @pytest.mark.asyncio
    async def test_hints_skip_reverse_geocoding(self, service, mock_client):
        query = WeatherQuery(lat=51.5074, lon=-0.1278, days=5, city_name="London", country_name="United Kingdom")

        result = await service.get_weather(query)

        assert result.location.name == "London"
        assert result.location.country == "United Kingdom"
        mock_client.fetch_forecast.assert_awaited_once_with(51.5074, -0.1278, 5)
        mock_client.fetch_geocoding.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reverse_geocoding_fills_names(self, service, mock_client, london_result):
        mock_client.fetch_geocoding.return_value = GeocodingResponse.model_validate({"results": [london_result]})

        result = await service.get_weather(london_query())

        assert result.location.name == "London"
        assert result.location.country == "United Kingdom"
        mock_client.fetch_geocoding.assert_awaited_once_with("51.51,-0.13", 1, "en")

    @pytest.mark.asyncio
    async def test_hint_wins_over_reverse_geocoding(self, service, mock_client, london_result):
        mock_client.fetch_geocoding.return_value = GeocodingResponse.model_validate({"results": [london_result]})
        query = WeatherQuery(lat=51.5074, lon=-0.1278, city_name="Westminster")

        result = await service.get_weather(query)

        assert result.location.name == "Westminster"
        assert result.location.country == "United Kingdom"

    @pytest.mark.asyncio
    async def test_no_reverse_geocoding_match_uses_defaults(self, service):
        result = await service.get_weather(london_query())

        assert result.location.name == "Unknown Location"
        assert result.location.country == "Unknown"

    @pytest.mark.asyncio
    async def test_reverse_geocoding_failure_is_ignored(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = UpstreamError("External service error (HTTP 500)")

        result = await service.get_weather(london_query())

        assert result.location.name == "Unknown Location"
        assert len(result.daily) == 3

    @pytest.mark.asyncio
    async def test_reverse_geocoding_own_cancellation_is_ignored(self, service, mock_client):
        mock_client.fetch_geocoding.side_effect = asyncio.CancelledError()

        result = await service.get_weather(london_query())

        assert result.location.name == "Unknown Location"

    @pytest.mark.asyncio
    async def test_request_cancellation_propagates(self, service, mock_client):
        started = asyncio.Event()

        async def slow(*args):
            started.set()
            await asyncio.sleep(10)

        mock_client.fetch_geocoding.side_effect = slow

        task = asyncio.create_task(service.get_weather(london_query()))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_deadline_during_reverse_geocoding_keeps_forecast(self, service, mock_client):
        async def slow(*args):
            await asyncio.sleep(5)

        mock_client.fetch_geocoding.side_effect = slow

        result = await service.get_weather(london_query(), timeout=0.2)

        assert result.location.name == "Unknown Location"
        assert result.location.country == "Unknown"
        assert len(result.daily) == 3
        mock_client.fetch_geocoding.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reverse_geocoding_gets_remaining_time(self, service, mock_client, forecast_payload, london_result):
        async def slow_forecast(*args):
            await asyncio.sleep(0.15)
            return ForecastResponse.model_validate(forecast_payload)

        async def geocoding(*args):
            await asyncio.sleep(0.1)
            return GeocodingResponse.model_validate({"results": [london_result]})

        mock_client.fetch_forecast.side_effect = slow_forecast
        mock_client.fetch_geocoding.side_effect = geocoding

        result = await service.get_weather(london_query(), timeout=0.2)

        assert result.location.name == "Unknown Location"

    @pytest.mark.asyncio
    async def test_forecast_fetched_before_reverse_geocoding(self, service, mock_client, forecast_payload):
        order = []

        async def forecast(*args):
            order.append("forecast")
            return ForecastResponse.model_validate(forecast_payload)

        async def geocoding(*args):
            order.append("geocoding")
            return GeocodingResponse(results=[])

        mock_client.fetch_forecast.side_effect = forecast
        mock_client.fetch_geocoding.side_effect = geocoding

        await service.get_weather(london_query())

        assert order == ["forecast", "geocoding"]

    @pytest.mark.asyncio
    async def test_upstream_error_wrapped(self, service, mock_client):
        upstream = UpstreamError(
            "External service temporarily unavailable (HTTP 503)",
            http_status_code=503,
            code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED,
        )
        mock_client.fetch_forecast.side_effect = upstream

        with pytest.raises(ServiceError) as exc_info:
            await service.get_weather(london_query())

        assert exc_info.value.message == "Failed to retrieve weather data from external service"
        assert exc_info.value.code is ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED
        assert exc_info.value.__cause__ is upstream
        mock_client.fetch_geocoding.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_forecast(self, service, mock_client):
        mock_client.fetch_forecast.return_value = None

        with pytest.raises(ServiceError) as exc_info:
            await service.get_weather(london_query())

        assert exc_info.value.message == "Received empty response from weather service"
        assert exc_info.value.code is ErrorCode.UNEXPECTED

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, service, mock_client):
        mock_client.fetch_forecast.side_effect = ValueError("bad coordinates")

        with pytest.raises(ServiceError) as exc_info:
            await service.get_weather(london_query())

        assert exc_info.value.message == "An unexpected error occurred while retrieving weather data"
        assert exc_info.value.code is ErrorCode.UNEXPECTED

    @pytest.mark.asyncio
    async def test_deadline_expiry(self, service, mock_client):
        async def slow(*args):
            await asyncio.sleep(1)

        mock_client.fetch_forecast.side_effect = slow

        with pytest.raises(ServiceError) as exc_info:
            await service.get_weather(london_query(), timeout=0.01)

        assert exc_info.value.code is ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED
