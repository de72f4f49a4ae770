"""RFC 7807 problem details returned for every failed request."""

from datetime import UTC, datetime
from typing import Any

from pydantic import Field

from weather_proxy.models.base_models import PublicModel

PROBLEM_CONTENT_TYPE = "application/problem+json"

PROBLEM_TYPES: dict[int, str] = {
    400: "https://tools.ietf.org/html/rfc7231#section-6.5.1",
    404: "https://example.com/problems/city-not-found",
    429: "https://tools.ietf.org/html/rfc6585#section-4",
    502: "https://example.com/problems/upstream-error",
}
DEFAULT_PROBLEM_TYPE = "https://tools.ietf.org/html/rfc7231#section-6.6.1"


class ProblemPayload(PublicModel):
    """Error envelope. ``errors`` and ``context`` are omitted when empty."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
    trace_id: str | None = None
    correlation_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    errors: dict[str, list[str]] | None = None
    context: dict[str, Any] | None = None

    @classmethod
    def for_status(cls, status: int, **fields: Any) -> "ProblemPayload":
        """Build a payload whose ``type`` URI is chosen from the status code."""
        return cls(type=PROBLEM_TYPES.get(status, DEFAULT_PROBLEM_TYPE), status=status, **fields)

    def to_content(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        exclude = {name for name in ("errors", "context") if getattr(self, name) is None}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)
