"""Weather Proxy models"""

from weather_proxy.models.base_models import DetailedHealthResponse, HealthResponse, PublicModel
from weather_proxy.models.city import CityRecord, CitySearchResponse
from weather_proxy.models.open_meteo import ForecastResponse, GeocodingResponse, GeocodingResult
from weather_proxy.models.problem import ProblemPayload
from weather_proxy.models.requests import CitySearchQuery, WeatherQuery
from weather_proxy.models.weather import (
    CurrentConditions,
    DailyForecastEntry,
    Location,
    SourceInfo,
    WeatherResult,
)

__all__ = [
    "CityRecord",
    "CitySearchQuery",
    "CitySearchResponse",
    "CurrentConditions",
    "DailyForecastEntry",
    "DetailedHealthResponse",
    "ForecastResponse",
    "GeocodingResponse",
    "GeocodingResult",
    "HealthResponse",
    "Location",
    "ProblemPayload",
    "PublicModel",
    "SourceInfo",
    "WeatherQuery",
    "WeatherResult",
]
