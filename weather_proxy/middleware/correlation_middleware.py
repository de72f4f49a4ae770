"""Correlation id propagation and request logging."""

import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from weather_proxy.logging_config import get_logger, log_with_context

CORRELATION_ID_HEADER = "x-correlation-id"

logger = get_logger(__name__)

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation id of the request being served, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def resolve_correlation_id(request: Request) -> str:
    """Correlation id for a request: request state, then header, then a new UUID."""
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        return correlation_id
    return request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Read or generate ``x-correlation-id`` and echo it on the response.

    The id is stored on ``request.state`` and in a context variable so outbound
    calls and log records can carry it.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        log_with_context(
            logger,
            "info",
            f"{request.method} {request.url.path}",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            correlation_id=correlation_id,
            event_type="request_complete",
        )
        return response
