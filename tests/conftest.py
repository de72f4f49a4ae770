"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from copy import deepcopy

import httpx
import pytest
from fastapi.testclient import TestClient

from weather_proxy.config import ForecastChannelSettings, GeocodingChannelSettings, Settings
from weather_proxy.core.app_factory import create_app
from weather_proxy.core.rate_limit import limiter

GEOCODING_PATH = "/v1/search"
FORECAST_PATH = "/v1/forecast"

LONDON_RESULT = {
    "id": 2643743,
    "name": "London",
    "latitude": 51.50853,
    "longitude": -0.12574,
    "elevation": 25.0,
    "feature_code": "PPLC",
    "country_code": "GB",
    "country": "United Kingdom",
    "admin1": "England",
    "timezone": "Europe/London",
    "population": 8982000,
}

KRAKOW_RESULT = {
    "id": 3094802,
    "name": "Kraków",
    "latitude": 50.06143,
    "longitude": 19.93658,
    "elevation": 219.0,
    "feature_code": "PPLA",
    "country_code": "PL",
    "country": "Poland",
    "admin1": "Lesser Poland Voivodeship",
    "timezone": "Europe/Warsaw",
    "population": 779115,
}

FORECAST_PAYLOAD = {
    "latitude": 51.5074,
    "longitude": -0.1278,
    "timezone": "Europe/London",
    "timezone_abbreviation": "GMT",
    "elevation": 23.0,
    "current_units": {
        "time": "iso8601",
        "temperature_2m": "°C",
        "wind_speed_10m": "m/s",
        "is_day": "",
        "weather_code": "wmo code",
    },
    "current": {
        "time": "2024-01-15T14:30",
        "temperature_2m": 15.2,
        "wind_speed_10m": 3.5,
        "is_day": 1,
        "weather_code": 3,
    },
    "daily_units": {
        "time": "iso8601",
        "weather_code": "wmo code",
        "temperature_2m_max": "°C",
        "temperature_2m_min": "°C",
        "precipitation_probability_max": "%",
        "wind_speed_10m_max": "m/s",
    },
    "daily": {
        "time": ["2024-01-15", "2024-01-16", "2024-01-17"],
        "weather_code": [3, 61, 0],
        "temperature_2m_max": [18.1, 22.3, 25.0],
        "temperature_2m_min": [8.3, 12.1, 15.2],
        "precipitation_probability_max": [20, 80, 5],
        "wind_speed_10m_max": [12.5, 15.8, 8.2],
    },
}

Reply = Callable[[httpx.Request], httpx.Response] | Exception


def respond(status_code: int = 200, json: object | None = None, text: str | None = None) -> Callable[[httpx.Request], httpx.Response]:
    """Reply factory; builds a fresh response for every request."""

    def reply(request: httpx.Request) -> httpx.Response:
        if json is not None:
            return httpx.Response(status_code, json=json)
        return httpx.Response(status_code, text=text or "")

    return reply


class FakeOpenMeteo:
    """Stand-in for both Open-Meteo APIs, served through ``httpx.MockTransport``.

    Queued replies are used first, one per request; after that the path's
    default reply is repeated. A queued exception is raised from the transport.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._queued: dict[str, list[Reply]] = {GEOCODING_PATH: [], FORECAST_PATH: []}
        self._defaults: dict[str, Reply] = {
            GEOCODING_PATH: respond(200, json={"generationtime_ms": 0.5}),
            FORECAST_PATH: respond(200, json=deepcopy(FORECAST_PAYLOAD)),
        }

    def queue(self, path: str, *replies: Reply) -> None:
        self._queued[path].extend(replies)

    def set_default(self, path: str, reply: Reply) -> None:
        self._defaults[path] = reply

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queued = self._queued.get(request.url.path)
        reply = queued.pop(0) if queued else self._defaults.get(request.url.path, respond(404))
        if isinstance(reply, Exception):
            raise reply
        return reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Rate limit counters live in process memory; start every test clean."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def test_settings(tmp_path):
    """Settings with zero backoff so retries run instantly."""
    return Settings(
        _env_file=None,
        log_dir=tmp_path / "logs",
        geocoding=GeocodingChannelSettings(retry_base_delay=0, use_jitter=False),
        forecast=ForecastChannelSettings(retry_base_delay=0, use_jitter=False),
    )


@pytest.fixture
def fake_open_meteo():
    """Programmable fake upstream."""
    return FakeOpenMeteo()


@pytest.fixture
def london_result():
    return deepcopy(LONDON_RESULT)


@pytest.fixture
def krakow_result():
    return deepcopy(KRAKOW_RESULT)


@pytest.fixture
def forecast_payload():
    return deepcopy(FORECAST_PAYLOAD)


@pytest.fixture
def test_client(test_settings, fake_open_meteo):
    """FastAPI test client with lifespan context, wired to the fake upstream."""
    app = create_app(test_settings, fake_open_meteo.transport)
    with TestClient(app) as client:
        yield client
