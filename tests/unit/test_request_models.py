"""Tests for query models and problem payloads."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from weather_proxy.models.problem import ProblemPayload
from weather_proxy.models.requests import CitySearchQuery, WeatherQuery, validation_errors


def errors_for(model, **values):
    with pytest.raises(ValidationError) as exc_info:
        model(**values)
    return validation_errors(exc_info.value, {"city_name": "cityName"})


class TestCitySearchQuery:
    """Tests for city search validation."""

    def test_defaults(self):
        query = CitySearchQuery(q="London")
        assert query.count == 5
        assert query.language == "en"

    @pytest.mark.parametrize("q", ["London", "São Paulo", "St. John's", "Winston-Salem", "東京", "Kraków 2"])
    def test_accepts_letters_digits_and_punctuation(self, q):
        assert CitySearchQuery(q=q).q == q

    @pytest.mark.parametrize(
        ("q", "message"),
        [
            ("", "Search query is required"),
            ("   ", "Search query is required"),
            ("L", "Search query must be at least 2 characters"),
            ("x" * 101, "Search query cannot exceed 100 characters"),
            ("London<script>", "Search query contains invalid characters"),
            ("under_score", "Search query contains invalid characters"),
        ],
    )
    def test_query_rules(self, q, message):
        assert errors_for(CitySearchQuery, q=q) == {"q": [message]}

    @pytest.mark.parametrize(
        ("count", "message"),
        [(0, "Count must be greater than 0"), (-3, "Count must be greater than 0"), (11, "Count cannot exceed 10")],
    )
    def test_count_rules(self, count, message):
        assert errors_for(CitySearchQuery, q="London", count=count) == {"count": [message]}

    @pytest.mark.parametrize("language", ["EN", "eng", "e1"])
    def test_language_rule(self, language):
        assert errors_for(CitySearchQuery, q="London", language=language) == {
            "language": ["Language must be a valid 2-letter ISO code"]
        }

    def test_multiple_fields_reported_together(self):
        errors = errors_for(CitySearchQuery, q="", count=20, language="xyz")
        assert set(errors) == {"q", "count", "language"}


class TestWeatherQuery:
    """Tests for weather query validation."""

    def test_defaults(self):
        query = WeatherQuery(lat=51.5, lon=-0.1)
        assert query.days == 5
        assert query.city_name is None

    def test_blank_hints_become_none(self):
        query = WeatherQuery(lat=51.5, lon=-0.1, city_name="  ", country_name="")
        assert query.city_name is None
        assert query.country_name is None

    @pytest.mark.parametrize(
        ("field", "value", "message"),
        [
            ("lat", 90.5, "Latitude must be between -90 and 90"),
            ("lat", float("nan"), "Latitude must be between -90 and 90"),
            ("lon", -180.5, "Longitude must be between -180 and 180"),
            ("days", 0, "Days must be greater than 0"),
            ("days", 8, "Days cannot exceed 7"),
        ],
    )
    def test_rules(self, field, value, message):
        values = {"lat": 0.0, "lon": 0.0, "days": 5, field: value}
        assert errors_for(WeatherQuery, **values) == {field: [message]}


class TestProblemPayload:
    """Tests for the problem details envelope."""

    def test_type_chosen_from_status(self):
        assert ProblemPayload.for_status(400, title="t", detail="d", instance="/").type.endswith("section-6.5.1")
        assert ProblemPayload.for_status(404, title="t", detail="d", instance="/").type == (
            "https://example.com/problems/city-not-found"
        )
        assert ProblemPayload.for_status(502, title="t", detail="d", instance="/").type == (
            "https://example.com/problems/upstream-error"
        )
        assert ProblemPayload.for_status(429, title="t", detail="d", instance="/").type == (
            "https://tools.ietf.org/html/rfc6585#section-4"
        )
        assert ProblemPayload.for_status(500, title="t", detail="d", instance="/").type.endswith("section-6.6.1")

    def test_content_omits_empty_errors_and_context(self):
        payload = ProblemPayload.for_status(
            500,
            title="Internal Server Error",
            detail="d",
            instance="/api/weather",
            correlation_id="abc",
            timestamp=datetime(2024, 1, 15, tzinfo=UTC),
        )

        content = payload.to_content()

        assert content == {
            "type": "https://tools.ietf.org/html/rfc7231#section-6.6.1",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "d",
            "instance": "/api/weather",
            "traceId": None,
            "correlationId": "abc",
            "timestamp": "2024-01-15T00:00:00Z",
        }

    def test_content_keeps_errors(self):
        payload = ProblemPayload.for_status(
            400, title="Validation Failed", detail="d", instance="/", errors={"q": ["Search query is required"]}
        )
        assert payload.to_content()["errors"] == {"q": ["Search query is required"]}
