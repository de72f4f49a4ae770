"""Custom exceptions for the Weather Proxy API.

Every application exception carries an ``ErrorCode``. Boundaries (service layer,
exception handlers) decide what to do by matching on that code rather than on the
exception class.
"""

from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Closed set of error kinds."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CITY_NOT_FOUND = "CITY_NOT_FOUND"
    UPSTREAM_TERMINAL = "UPSTREAM_TERMINAL"
    UPSTREAM_TRANSIENT_EXHAUSTED = "UPSTREAM_TRANSIENT_EXHAUSTED"
    NOT_FOUND_AS_EMPTY = "NOT_FOUND_AS_EMPTY"
    RATE_LIMITED = "RATE_LIMITED"
    UNEXPECTED = "UNEXPECTED"


UPSTREAM_CODES = frozenset({ErrorCode.UPSTREAM_TERMINAL, ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED})

UPSTREAM_SERVICE = "open-meteo.com"


class WeatherProxyException(Exception):
    """Base exception for weather proxy errors with HTTP status code support.

    All custom exceptions should inherit from this class to ensure
    consistent error handling across the application.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNEXPECTED,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize weather proxy exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UpstreamError(WeatherProxyException):
    """An Open-Meteo call failed.

    ``http_status_code`` and ``response_body`` are set when the upstream answered
    with a non-success status. The body is kept for diagnostics only.
    """

    def __init__(
        self,
        message: str,
        http_status_code: int | None = None,
        response_body: str | None = None,
        code: ErrorCode = ErrorCode.UPSTREAM_TERMINAL,
    ):
        super().__init__(message, code=code, status_code=502)
        self.http_status_code = http_status_code
        self.response_body = response_body
        if http_status_code is not None:
            self.details["upstream_status_code"] = http_status_code


class CircuitOpenError(UpstreamError):
    """The channel's circuit breaker is open; the call was not attempted."""

    def __init__(self, channel: str, retry_after: float):
        super().__init__(
            f"Circuit open for {channel} channel",
            code=ErrorCode.UPSTREAM_TRANSIENT_EXHAUSTED,
        )
        self.channel = channel
        self.retry_after = retry_after
        self.details["retry_after_seconds"] = round(retry_after, 1)


class ServiceError(WeatherProxyException):
    """Service-level failure. The original exception is chained as ``__cause__``."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNEXPECTED,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            code=code,
            status_code=502 if code in UPSTREAM_CODES else 500,
            details=details,
        )


class RequestValidationFailed(WeatherProxyException):
    """Query parameters failed validation."""

    def __init__(self, errors: dict[str, list[str]]):
        super().__init__(
            "One or more validation errors occurred.",
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details={"errors": errors},
        )
        self.errors = errors


class CityNotFoundException(WeatherProxyException):
    """City search finished without any match."""

    def __init__(self, query: str, count: int, language: str):
        super().__init__(
            f"No cities found matching the search criteria '{query}'.",
            code=ErrorCode.CITY_NOT_FOUND,
            status_code=404,
            details={
                "searchQuery": query,
                "searchParameters": {"count": count, "language": language},
            },
        )


class ExternalServiceUnavailable(WeatherProxyException):
    """Endpoint-level view of an upstream ``ServiceError``.

    Carries the client-facing detail for the endpoint plus the upstream context
    placed in the problem payload.
    """

    def __init__(
        self,
        detail: str,
        error: ServiceError,
        retry_after: datetime | None = None,
    ):
        context: dict[str, Any] = {
            "upstreamService": UPSTREAM_SERVICE,
            "upstreamError": error.message,
        }
        upstream_status_code = error.details.get("upstream_status_code")
        if upstream_status_code is not None:
            context["upstreamStatusCode"] = upstream_status_code
        if retry_after is not None:
            context["retryAfter"] = retry_after.isoformat()
        super().__init__(detail, code=error.code, status_code=502, details=context)
