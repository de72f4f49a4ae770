from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from weather_proxy.services.resilience import CircuitBreakerPolicy, ResiliencePolicy

BASE_DIR = Path(__file__).resolve().parent.parent  # weather-proxy/

GEOCODING_BASE_URL = "https://geocoding-api.open-meteo.com/"
FORECAST_BASE_URL = "https://api.open-meteo.com/"


class ChannelSettings(BaseModel):
    """Outbound channel settings: base URL plus its resilience budget.

    Timeouts and delays are in seconds.
    """

    base_url: str = Field(pattern=r"^https?://", description="Upstream base URL")
    client_timeout: float = Field(gt=0, description="Ceiling for a whole call, retries included")
    attempt_timeout: float = Field(gt=0, description="Timeout for a single upstream attempt")
    max_attempts: int = Field(default=3, ge=1, le=10, description="Total upstream calls per request")
    retry_base_delay: float = Field(default=0.5, ge=0, description="Backoff base delay")
    retry_max_delay: float = Field(default=10.0, ge=0, description="Backoff delay cap")
    use_jitter: bool = True
    failure_ratio: float = Field(default=0.5, gt=0, le=1, description="Failure ratio that opens the circuit")
    sampling_duration: float = Field(default=30.0, gt=0, description="Circuit breaker sampling window")
    minimum_throughput: int = Field(default=5, ge=1, description="Samples needed before the circuit may open")
    break_duration: float = Field(default=15.0, gt=0, description="How long an open circuit stays open")

    @field_validator("base_url", mode="after")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Relative request paths are joined onto the base URL."""
        return v if v.endswith("/") else f"{v}/"

    @model_validator(mode="after")
    def check_timeouts(self) -> "ChannelSettings":
        """An attempt cannot be allowed to outlive the whole call."""
        if self.attempt_timeout > self.client_timeout:
            raise ValueError("attempt_timeout must not exceed client_timeout")
        return self

    def to_policy(self) -> ResiliencePolicy:
        """Build the resilience policy for this channel."""
        return ResiliencePolicy(
            total_timeout=self.client_timeout,
            attempt_timeout=self.attempt_timeout,
            max_attempts=self.max_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            use_jitter=self.use_jitter,
            circuit_breaker=CircuitBreakerPolicy(
                failure_ratio=self.failure_ratio,
                sampling_duration=self.sampling_duration,
                minimum_throughput=self.minimum_throughput,
                break_duration=self.break_duration,
            ),
        )


class GeocodingChannelSettings(ChannelSettings):
    """Geocoding search channel."""

    base_url: str = Field(default=GEOCODING_BASE_URL, pattern=r"^https?://")
    client_timeout: float = Field(default=6.0, gt=0)
    attempt_timeout: float = Field(default=4.0, gt=0)


class ForecastChannelSettings(ChannelSettings):
    """Forecast channel. Weather payloads are larger, so the budget is longer."""

    base_url: str = Field(default=FORECAST_BASE_URL, pattern=r"^https?://")
    client_timeout: float = Field(default=8.0, gt=0)
    attempt_timeout: float = Field(default=6.0, gt=0)


class Settings(BaseSettings):
    """Application settings with validation.

    Every field has a working default, so the service runs against the public
    Open-Meteo endpoints with no configuration at all. Channel budgets can be
    overridden with nested variables, e.g. ``FORECAST__MAX_ATTEMPTS=5``.
    """

    # API server settings
    api_host: str = Field(default="127.0.0.1", min_length=1, description="API server host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API server port")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_dir: Path = Field(default=BASE_DIR / "logs", description="Directory for JSON log files")

    # Browser client allowed by CORS
    cors_origin: str = Field(default="http://localhost:4200", description="Allowed CORS origin")

    # Outbound requests
    user_agent: str = Field(default="WeatherProxy/1.0", min_length=1, description="User-Agent for Open-Meteo calls")
    geocoding: GeocodingChannelSettings = Field(default_factory=GeocodingChannelSettings)
    forecast: ForecastChannelSettings = Field(default_factory=ForecastChannelSettings)

    # Inbound rate limiting
    rate_limit: str = Field(default="60/minute", description="slowapi limit for API endpoints")
    rate_limit_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log_level names a standard logging level."""
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a standard logging level, got {v!r}")
        return v

    @field_validator("cors_origin", mode="after")
    @classmethod
    def validate_cors_origin(cls, v: str) -> str:
        """Ensure the CORS origin is an http(s) origin without a trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("cors_origin must be a valid http:// or https:// origin")
        return v


# Singleton settings instance (cached for performance)
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance for dependency injection.

    Returns:
        Cached Settings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
