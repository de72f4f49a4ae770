"""Weather forecast API routes."""

from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError

from weather_proxy.core.rate_limit import api_rate_limit, limiter
from weather_proxy.dependencies import get_weather_service
from weather_proxy.exceptions import UPSTREAM_CODES, ExternalServiceUnavailable, RequestValidationFailed, ServiceError
from weather_proxy.models.problem import PROBLEM_CONTENT_TYPE
from weather_proxy.models.requests import DEFAULT_DAYS, WeatherQuery, validation_errors
from weather_proxy.models.weather import WeatherResult
from weather_proxy.services.weather_service import WeatherService
from weather_proxy.utils.query_params import float_or_default, int_or_default

router = APIRouter()

WEATHER_UNAVAILABLE = "The weather data provider is currently unavailable. Please try again later."
RETRY_AFTER = timedelta(minutes=5)

# Public query names for model fields
QUERY_NAMES = {"city_name": "cityName", "country_name": "countryName"}


@router.get(
    "",
    response_model=WeatherResult,
    response_model_exclude_none=True,
    summary="Get weather by coordinates",
    description="""
    Retrieves current conditions and a daily forecast from Open-Meteo.

    Wind speeds are in km/h, temperatures in °C. Location names come from
    `cityName`/`countryName` when given, otherwise from a best-effort lookup.

    **Rate Limited:** 60 requests/minute
    """,
    responses={
        400: {"description": "Invalid query parameters", "content": {PROBLEM_CONTENT_TYPE: {}}},
        429: {"description": "Rate limit exceeded", "content": {PROBLEM_CONTENT_TYPE: {}}},
        502: {"description": "Weather provider unavailable", "content": {PROBLEM_CONTENT_TYPE: {}}},
    },
)
@limiter.limit(api_rate_limit)
async def get_weather(
    request: Request,
    service: WeatherService = Depends(get_weather_service),
    lat: str | None = Query(default=None, description="Latitude, -90 to 90"),
    lon: str | None = Query(default=None, description="Longitude, -180 to 180"),
    days: str | None = Query(default=None, description="Forecast days, 1-7 (default 5)"),
    city_name: str | None = Query(default=None, alias="cityName", description="Location name hint"),
    country_name: str | None = Query(default=None, alias="countryName", description="Country name hint"),
):
    """Get current weather and daily forecast for a coordinate."""
    try:
        query = WeatherQuery(
            lat=float_or_default(lat, 0.0),
            lon=float_or_default(lon, 0.0),
            days=int_or_default(days, DEFAULT_DAYS),
            city_name=city_name,
            country_name=country_name,
        )
    except ValidationError as e:
        raise RequestValidationFailed(validation_errors(e, QUERY_NAMES)) from e

    try:
        return await service.get_weather(query)
    except ServiceError as e:
        if e.code in UPSTREAM_CODES:
            raise ExternalServiceUnavailable(
                WEATHER_UNAVAILABLE,
                e,
                retry_after=datetime.now(UTC) + RETRY_AFTER,
            ) from e
        raise
