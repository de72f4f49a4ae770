"""Public weather forecast models."""

import datetime as dt

from pydantic import Field

from weather_proxy.models.base_models import PublicModel

PROVIDER_NAME = "open-meteo"
PROVIDER_MODEL = "best_match"


class Location(PublicModel):
    """Where the forecast applies. Coordinates come from the provider, names may be hints."""

    name: str
    country: str
    latitude: float
    longitude: float
    timezone: str


class CurrentConditions(PublicModel):
    """Current observation, wind in km/h."""

    time: dt.datetime
    temperature_c: float
    wind_speed_kph: float
    weather_code: int
    is_day: bool
    condition: str
    icon: str = Field(pattern=r"^[0-9]{2}[dn]$")


class DailyForecastEntry(PublicModel):
    """One forecast day."""

    date: dt.date
    temperature_max_c: float
    temperature_min_c: float
    precipitation_probability_pct: int
    wind_speed_max_kph: float
    weather_code: int
    condition: str
    icon: str = Field(pattern=r"^[0-9]{2}[dn]$")


class SourceInfo(PublicModel):
    provider: str = PROVIDER_NAME
    model: str | None = PROVIDER_MODEL


class WeatherResult(PublicModel):
    """Complete weather response for one location."""

    location: Location
    current: CurrentConditions
    daily: list[DailyForecastEntry]
    source: SourceInfo = Field(default_factory=SourceInfo)
