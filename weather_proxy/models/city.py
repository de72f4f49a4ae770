"""Public city search models."""

from pydantic import Field

from weather_proxy.models.base_models import PublicModel


class CityRecord(PublicModel):
    """A city match returned to API clients."""

    name: str
    country: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    region: str | None = None
    population: int | None = None


class CitySearchResponse(PublicModel):
    cities: list[CityRecord]
