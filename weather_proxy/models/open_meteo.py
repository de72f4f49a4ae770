"""Pydantic models for raw Open-Meteo API responses.

Field names follow the provider's snake_case JSON. Unknown fields are ignored,
and everything the mappers can default is optional.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class OpenMeteoModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class GeocodingResult(OpenMeteoModel):
    """One match from the geocoding search API."""

    id: int | None = None
    name: str | None = None
    latitude: float
    longitude: float
    elevation: float | None = None
    feature_code: str | None = None
    country_code: str | None = None
    country: str | None = None
    admin1: str | None = None
    timezone: str | None = None
    population: int | None = None


class GeocodingResponse(OpenMeteoModel):
    """Geocoding search response. Open-Meteo omits ``results`` when nothing matched."""

    results: list[GeocodingResult | None] | None = None


class CurrentBlock(OpenMeteoModel):
    """``current`` block of a forecast response."""

    time: datetime
    temperature_2m: float | None = None
    wind_speed_10m: float | None = None
    is_day: int | None = None
    weather_code: int | None = None


class DailyBlock(OpenMeteoModel):
    """``daily`` block: parallel arrays indexed by day.

    Arrays may be null, shorter than ``time`` or contain nulls.
    """

    time: list[date] | None = None
    weather_code: list[int | None] | None = None
    temperature_2m_max: list[float | None] | None = None
    temperature_2m_min: list[float | None] | None = None
    precipitation_probability_max: list[float | None] | None = None
    wind_speed_10m_max: list[float | None] | None = None


class ForecastResponse(OpenMeteoModel):
    """Raw forecast API response."""

    latitude: float
    longitude: float
    timezone: str
    timezone_abbreviation: str | None = None
    elevation: float | None = None
    current_units: dict[str, str] | None = None
    current: CurrentBlock | None = None
    daily_units: dict[str, str] | None = None
    daily: DailyBlock | None = None
