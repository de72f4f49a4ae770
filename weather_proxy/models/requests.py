"""Validated query models for the public endpoints.

Rules raise ``ValueError`` with the exact message returned to clients; the
routers turn pydantic's ``ValidationError`` into a field -> messages map.
"""

import re

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from weather_proxy.utils.coordinates import is_valid_latitude, is_valid_longitude

# Unicode letters and digits, whitespace, hyphen, apostrophe, period
SEARCH_QUERY_PATTERN = re.compile(r"^(?:[^\W_]|[\s\-'.])+$")
LANGUAGE_PATTERN = re.compile(r"^[a-z]{2}$")

DEFAULT_COUNT = 5
MAX_COUNT = 10
DEFAULT_LANGUAGE = "en"
DEFAULT_DAYS = 5
MAX_DAYS = 7


class CitySearchQuery(BaseModel):
    """Parameters of ``GET /api/cities/search``."""

    model_config = ConfigDict(frozen=True)

    q: str
    count: int = DEFAULT_COUNT
    language: str = DEFAULT_LANGUAGE

    @field_validator("q", mode="after")
    @classmethod
    def validate_q(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Search query is required")
        if len(v) < 2:
            raise ValueError("Search query must be at least 2 characters")
        if len(v) > 100:
            raise ValueError("Search query cannot exceed 100 characters")
        if not SEARCH_QUERY_PATTERN.match(v):
            raise ValueError("Search query contains invalid characters")
        return v

    @field_validator("count", mode="after")
    @classmethod
    def validate_count(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Count must be greater than 0")
        if v > MAX_COUNT:
            raise ValueError(f"Count cannot exceed {MAX_COUNT}")
        return v

    @field_validator("language", mode="after")
    @classmethod
    def validate_language(cls, v: str) -> str:
        if v and not LANGUAGE_PATTERN.match(v):
            raise ValueError("Language must be a valid 2-letter ISO code")
        return v


class WeatherQuery(BaseModel):
    """Parameters of ``GET /api/weather``."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
    days: int = DEFAULT_DAYS
    city_name: str | None = None
    country_name: str | None = None

    @field_validator("lat", mode="after")
    @classmethod
    def validate_lat(cls, v: float) -> float:
        if not is_valid_latitude(v):
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("lon", mode="after")
    @classmethod
    def validate_lon(cls, v: float) -> float:
        if not is_valid_longitude(v):
            raise ValueError("Longitude must be between -180 and 180")
        return v

    @field_validator("days", mode="after")
    @classmethod
    def validate_days(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Days must be greater than 0")
        if v > MAX_DAYS:
            raise ValueError(f"Days cannot exceed {MAX_DAYS}")
        return v

    @field_validator("city_name", "country_name", mode="after")
    @classmethod
    def blank_hint_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


def validation_errors(exc: ValidationError, field_names: dict[str, str] | None = None) -> dict[str, list[str]]:
    """Flatten a pydantic ValidationError into ``{field: [message, ...]}``.

    Args:
        exc: Error raised while building a query model
        field_names: Optional mapping from model field to public parameter name

    Returns:
        Messages grouped by parameter name, in the order pydantic reported them
    """
    field_names = field_names or {}
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "request"
        field = field_names.get(field, field)
        if error["type"] == "value_error":
            message = str(error["ctx"]["error"])
        else:
            message = error["msg"]
        errors.setdefault(field, []).append(message)
    return errors
