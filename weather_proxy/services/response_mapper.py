"""Mapping from raw Open-Meteo models to the public API models. No I/O."""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TypeVar

from weather_proxy.models.city import CityRecord
from weather_proxy.models.open_meteo import CurrentBlock, DailyBlock, ForecastResponse, GeocodingResult
from weather_proxy.models.weather import CurrentConditions, DailyForecastEntry, Location, SourceInfo, WeatherResult
from weather_proxy.utils.countries import country_name as lookup_country_name
from weather_proxy.utils.units import meters_per_second_to_kph, round_coordinate, round_temperature
from weather_proxy.utils.weather_codes import UNKNOWN_CONDITION, classify_weather_code

DEFAULT_LOCATION_NAME = "Unknown Location"
DEFAULT_COUNTRY = "Unknown"
DEFAULT_ICON = "01d"

T = TypeVar("T", int, float)


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


def map_city_result(raw: GeocodingResult | None) -> CityRecord:
    """Map one geocoding match.

    Country falls back from the provider's name to a lookup of the ISO code,
    then to the code itself, then to "Unknown".
    """
    if raw is None:
        raise ValueError("Geocoding result cannot be None")

    country = _blank_to_none(raw.country)
    if country is None and _blank_to_none(raw.country_code):
        country = lookup_country_name(raw.country_code)

    return CityRecord(
        name=raw.name or "",
        country=country or DEFAULT_COUNTRY,
        latitude=round_coordinate(raw.latitude),
        longitude=round_coordinate(raw.longitude),
        region=_blank_to_none(raw.admin1),
        population=raw.population,
    )


def map_city_results(raw_list: Sequence[GeocodingResult | None] | None) -> list[CityRecord]:
    """Map geocoding matches, dropping entries without a usable name."""
    if not raw_list:
        return []
    return [map_city_result(raw) for raw in raw_list if raw is not None and _blank_to_none(raw.name)]


def _value_at(values: Sequence[T | None] | None, index: int, default: T) -> T:
    if values is not None and index < len(values) and values[index] is not None:
        return values[index]  # type: ignore[return-value]
    return default


def map_current(current: CurrentBlock | None) -> CurrentConditions:
    if current is None:
        return CurrentConditions(
            time=datetime.now(UTC),
            temperature_c=0.0,
            wind_speed_kph=0.0,
            weather_code=0,
            is_day=True,
            condition=UNKNOWN_CONDITION,
            icon=DEFAULT_ICON,
        )

    is_day = current.is_day is None or current.is_day == 1
    weather_code = current.weather_code if current.weather_code is not None else 0
    temperature = current.temperature_2m if current.temperature_2m is not None else 0.0
    wind_speed = current.wind_speed_10m if current.wind_speed_10m is not None else 0.0
    condition, icon = classify_weather_code(weather_code, is_day)
    return CurrentConditions(
        time=current.time,
        temperature_c=round_temperature(temperature),
        wind_speed_kph=meters_per_second_to_kph(wind_speed),
        weather_code=weather_code,
        is_day=is_day,
        condition=condition,
        icon=icon,
    )


def map_daily(daily: DailyBlock | None) -> list[DailyForecastEntry]:
    """Zip the parallel daily arrays over ``time``; short or null entries become 0."""
    if daily is None or not daily.time:
        return []

    entries = []
    for index, day in enumerate(daily.time):
        weather_code = _value_at(daily.weather_code, index, 0)
        condition, icon = classify_weather_code(weather_code, True)
        entries.append(
            DailyForecastEntry(
                date=day,
                temperature_max_c=round_temperature(_value_at(daily.temperature_2m_max, index, 0.0)),
                temperature_min_c=round_temperature(_value_at(daily.temperature_2m_min, index, 0.0)),
                precipitation_probability_pct=round(_value_at(daily.precipitation_probability_max, index, 0.0)),
                wind_speed_max_kph=meters_per_second_to_kph(_value_at(daily.wind_speed_10m_max, index, 0.0)),
                weather_code=weather_code,
                condition=condition,
                icon=icon,
            )
        )
    return entries


def map_weather_result(
    raw: ForecastResponse | None,
    city_name: str | None = None,
    country_name: str | None = None,
) -> WeatherResult:
    """Map a forecast response. Names come from the hints, coordinates from the provider."""
    if raw is None:
        raise ValueError("Forecast response cannot be None")

    return WeatherResult(
        location=Location(
            name=_blank_to_none(city_name) or DEFAULT_LOCATION_NAME,
            country=_blank_to_none(country_name) or DEFAULT_COUNTRY,
            latitude=round_coordinate(raw.latitude),
            longitude=round_coordinate(raw.longitude),
            timezone=raw.timezone,
        ),
        current=map_current(raw.current),
        daily=map_daily(raw.daily),
        source=SourceInfo(),
    )
