"""City search API routes."""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError

from weather_proxy.core.rate_limit import api_rate_limit, limiter
from weather_proxy.dependencies import get_weather_service
from weather_proxy.exceptions import (
    UPSTREAM_CODES,
    CityNotFoundException,
    ExternalServiceUnavailable,
    RequestValidationFailed,
    ServiceError,
)
from weather_proxy.models.city import CitySearchResponse
from weather_proxy.models.problem import PROBLEM_CONTENT_TYPE
from weather_proxy.models.requests import DEFAULT_COUNT, DEFAULT_LANGUAGE, CitySearchQuery, validation_errors
from weather_proxy.services.weather_service import WeatherService
from weather_proxy.utils.query_params import int_or_default

router = APIRouter()

CITY_SEARCH_UNAVAILABLE = "The city search service is currently unavailable. Please try again later."


def _problem(description: str) -> dict:
    return {"description": description, "content": {PROBLEM_CONTENT_TYPE: {}}}


@router.get(
    "/search",
    response_model=CitySearchResponse,
    response_model_exclude_none=True,
    summary="Search cities",
    description="""
    Searches cities by name using the Open-Meteo geocoding API.

    Returns up to `count` matches with coordinates, country and region.

    **Rate Limited:** 60 requests/minute
    """,
    responses={
        200: {
            "description": "Successful response",
            "content": {
                "application/json": {
                    "example": {
                        "cities": [
                            {
                                "name": "London",
                                "country": "United Kingdom",
                                "latitude": 51.50853,
                                "longitude": -0.12574,
                                "region": "England",
                                "population": 8982000,
                            }
                        ]
                    }
                }
            },
        },
        400: _problem("Invalid query parameters"),
        404: _problem("No city matched the query"),
        429: _problem("Rate limit exceeded"),
        502: _problem("Geocoding provider unavailable"),
    },
)
@limiter.limit(api_rate_limit)
async def search_cities(
    request: Request,
    service: WeatherService = Depends(get_weather_service),
    q: str | None = Query(default=None, description="City name, 2-100 characters"),
    count: str | None = Query(default=None, description="Maximum number of results, 1-10 (default 5)"),
    language: str | None = Query(default=None, description="Two-letter language code (default en)"),
):
    """Search cities by name.

    Malformed ``count`` falls back to the default; a missing ``q`` fails validation.
    """
    try:
        query = CitySearchQuery(
            q=q or "",
            count=int_or_default(count, DEFAULT_COUNT),
            language=language or DEFAULT_LANGUAGE,
        )
    except ValidationError as e:
        raise RequestValidationFailed(validation_errors(e)) from e

    try:
        cities = await service.search_cities(query)
    except ServiceError as e:
        if e.code in UPSTREAM_CODES:
            raise ExternalServiceUnavailable(CITY_SEARCH_UNAVAILABLE, e) from e
        raise

    if not cities:
        raise CityNotFoundException(query.q, query.count, query.language)

    return CitySearchResponse(cities=cities)
