"""Shared slowapi limiter for the public API endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from weather_proxy.config import Settings

DEFAULT_RATE_LIMIT = "60/minute"

limiter = Limiter(key_func=get_remote_address)

_api_rate_limit = DEFAULT_RATE_LIMIT


def api_rate_limit() -> str:
    """Limit applied to ``/api`` endpoints, resolved per request."""
    return _api_rate_limit


def configure_limiter(settings: Settings) -> Limiter:
    """Apply rate limit settings to the shared limiter.

    Args:
        settings: Application settings

    Returns:
        The shared Limiter instance
    """
    global _api_rate_limit
    _api_rate_limit = settings.rate_limit
    limiter.enabled = settings.rate_limit_enabled
    return limiter
