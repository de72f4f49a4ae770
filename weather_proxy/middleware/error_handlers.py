"""Exception handlers producing RFC 7807 problem responses."""

import re
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from weather_proxy.exceptions import UPSTREAM_CODES, ErrorCode, ExternalServiceUnavailable, WeatherProxyException
from weather_proxy.logging_config import get_logger, log_with_context
from weather_proxy.middleware.correlation_middleware import CORRELATION_ID_HEADER, resolve_correlation_id
from weather_proxy.models.problem import PROBLEM_CONTENT_TYPE, ProblemPayload

logger = get_logger(__name__)

INTERNAL_ERROR_DETAIL = "An unexpected error occurred while processing your request."
UPSTREAM_ERROR_DETAIL = "The upstream weather provider is currently unavailable. Please try again later."

# W3C trace context: version-traceid-parentid-flags
TRACEPARENT_PATTERN = re.compile(r"^[0-9a-f]{2}-([0-9a-f]{32})-[0-9a-f]{16}-[0-9a-f]{2}$")


def extract_trace_id(request: Request) -> str | None:
    """Trace id from a ``traceparent`` header, if present and well-formed."""
    match = TRACEPARENT_PATTERN.match(request.headers.get("traceparent", "").strip().lower())
    return match.group(1) if match else None


def problem_response(
    request: Request,
    status: int,
    title: str,
    detail: str,
    errors: dict[str, list[str]] | None = None,
    context: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build an ``application/problem+json`` response for the current request."""
    correlation_id = resolve_correlation_id(request)
    payload = ProblemPayload.for_status(
        status,
        title=title,
        detail=detail,
        instance=request.url.path,
        trace_id=extract_trace_id(request),
        correlation_id=correlation_id,
        errors=errors,
        context=context,
    )
    return JSONResponse(
        status_code=status,
        content=payload.to_content(),
        media_type=PROBLEM_CONTENT_TYPE,
        headers={CORRELATION_ID_HEADER: correlation_id},
    )


async def weather_proxy_exception_handler(request: Request, exc: WeatherProxyException) -> JSONResponse:
    """Map application exceptions to problem responses by error code.

    Internal details never reach the client for 500 responses.
    """
    log_with_context(
        logger,
        "warning" if exc.status_code < 500 else "error",
        "Request failed",
        error_code=exc.code.value,
        error_message=exc.message,
        status_code=exc.status_code,
        method=request.method,
        url=str(request.url),
        event_type="weather_proxy_error",
    )

    match exc.code:
        case ErrorCode.VALIDATION_ERROR:
            return problem_response(
                request,
                400,
                "Validation Failed",
                exc.message,
                errors=exc.details.get("errors", {}),
            )
        case ErrorCode.CITY_NOT_FOUND:
            return problem_response(request, 404, "City Not Found", exc.message, context=exc.details)
        case code if code in UPSTREAM_CODES:
            if isinstance(exc, ExternalServiceUnavailable):
                return problem_response(request, 502, "External Service Error", exc.message, context=exc.details)
            return problem_response(request, 502, "External Service Error", UPSTREAM_ERROR_DETAIL)
        case ErrorCode.RATE_LIMITED:
            return problem_response(request, 429, "Too Many Requests", exc.message)
        case _:
            return problem_response(request, 500, "Internal Server Error", INTERNAL_ERROR_DETAIL)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Problem response for requests over the configured rate limit."""
    log_with_context(
        logger,
        "warning",
        "Rate limit exceeded",
        limit=str(exc.detail),
        client=request.client.host if request.client else None,
        url=str(request.url),
        event_type="rate_limited",
    )
    return problem_response(request, 429, "Too Many Requests", f"Rate limit exceeded: {exc.detail}")


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions with logging."""
    log_with_context(
        logger,
        "error",
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
        url=str(request.url),
        exc_info=True,
        event_type="unhandled_error",
    )

    # Don't expose internal error details to clients
    return problem_response(request, 500, "Internal Server Error", INTERNAL_ERROR_DETAIL)


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(WeatherProxyException, weather_proxy_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
