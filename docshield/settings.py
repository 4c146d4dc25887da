import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from docshield.services.base import CircuitBreakerConfig, RateLimiterConfig

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Upstream Document API
    upstream_base_url: str = Field(default="", alias="UPSTREAM_BASE_URL")
    upstream_api_key: str = Field(default="", alias="UPSTREAM_API_KEY")
    upstream_timeout: float = Field(default=30.0, alias="UPSTREAM_TIMEOUT")
    upstream_name: str = Field(default="upstream-api", alias="UPSTREAM_NAME")

    # Key-Value Store
    store_backend: Literal["memory", "sql", "none"] = Field(
        default="sql", alias="STORE_BACKEND"
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./docshield.db", alias="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Cache TTLs (seconds)
    list_cache_ttl: int = Field(default=5 * 60, gt=0, alias="LIST_CACHE_TTL")
    detail_cache_ttl: int = Field(default=10 * 60, gt=0, alias="DETAIL_CACHE_TTL")
    workspace_cache_ttl: int = Field(default=15 * 60, gt=0, alias="WORKSPACE_CACHE_TTL")

    # Upstream Rate Limit: 3 req/sec
    rate_limit_max_requests: int = Field(default=3, ge=1, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_seconds: int = Field(default=1, gt=0, alias="RATE_LIMIT_WINDOW_SECONDS")

    # Client Rate Limit: 60 req/min
    client_rate_limit_max_requests: int = Field(
        default=60, ge=1, alias="CLIENT_RATE_LIMIT_MAX_REQUESTS"
    )
    client_rate_limit_window_seconds: int = Field(
        default=60, gt=0, alias="CLIENT_RATE_LIMIT_WINDOW_SECONDS"
    )

    # Circuit Breaker
    breaker_failure_threshold: int = Field(default=5, ge=1, alias="BREAKER_FAILURE_THRESHOLD")
    breaker_recovery_time_seconds: int = Field(
        default=30, gt=0, alias="BREAKER_RECOVERY_TIME_SECONDS"
    )
    breaker_half_open_requests: int = Field(default=1, ge=1, alias="BREAKER_HALF_OPEN_REQUESTS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    @property
    def rate_limit(self) -> RateLimiterConfig:
        return RateLimiterConfig(
            max_requests=self.rate_limit_max_requests,
            window_seconds=self.rate_limit_window_seconds,
        )

    @property
    def client_rate_limit(self) -> RateLimiterConfig:
        return RateLimiterConfig(
            max_requests=self.client_rate_limit_max_requests,
            window_seconds=self.client_rate_limit_window_seconds,
        )

    @property
    def circuit_breaker(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.breaker_failure_threshold,
            recovery_time_seconds=self.breaker_recovery_time_seconds,
            half_open_requests=self.breaker_half_open_requests,
        )

    def validate_upstream(self) -> None:
        """Fail fast when the upstream connection settings are missing."""
        missing = [
            alias
            for alias, value in (
                ("UPSTREAM_BASE_URL", self.upstream_base_url),
                ("UPSTREAM_API_KEY", self.upstream_api_key),
            )
            if not value
        ]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


def load_settings() -> Settings:
    """Build settings from the process environment (and a .env file)."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
