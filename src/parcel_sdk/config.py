"""Configuration for the Parcel SDK.

Uses Pydantic v2 for validation with sensible defaults. Every tunable the
token provider relies on (refresh margin, assertion lifetime, retry policy)
lives here rather than being hard-coded.
"""

from __future__ import annotations

import random
from typing import Annotated, Any, Self

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
)

DEFAULT_API_URL = "https://api.oasislabs.com/parcel/v1"
DEFAULT_TOKEN_ENDPOINT = "https://auth.oasislabs.com/oauth/token"
PARCEL_RUNTIME_AUD = "https://api.oasislabs.com/parcel"


class RetryConfig(BaseModel):
    """Retry configuration with exponential backoff."""

    model_config = ConfigDict(frozen=True)

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    initial_delay: Annotated[float, Field(ge=0, le=60)] = 0.5
    max_delay: Annotated[float, Field(ge=0, le=300)] = 8.0
    exponential_base: Annotated[float, Field(ge=1.0, le=3.0)] = 2.0
    jitter: Annotated[float, Field(ge=0, le=1.0)] = 0.1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt with exponential backoff."""
        delay = min(
            self.initial_delay * (self.exponential_base**attempt),
            self.max_delay,
        )
        # Add jitter to prevent thundering herd
        jitter_range = delay * self.jitter
        return max(0.0, delay + random.uniform(-jitter_range, jitter_range))  # noqa: S311


class TokenConfig(BaseModel):
    """Token lifetime and refresh policy."""

    model_config = ConfigDict(frozen=True)

    # Tokens are treated as expired this many seconds early.
    refresh_margin: Annotated[int, Field(ge=0, le=3600)] = 60
    # Lifetime of self-issued and client assertions.
    assertion_lifetime: Annotated[int, Field(gt=0, le=3600)] = 60
    retry: RetryConfig = Field(default_factory=RetryConfig)


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "parcel-sdk"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unsupported log level: {v}"
            raise ValueError(msg)
        return level


class ParcelConfig(BaseModel):
    """Main configuration for the Parcel SDK."""

    model_config = ConfigDict(
        frozen=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    api_url: HttpUrl = Field(default=DEFAULT_API_URL)
    token_endpoint: HttpUrl = Field(default=DEFAULT_TOKEN_ENDPOINT)

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0
    proxy: str | None = None
    user_agent: str = "parcel-sdk/0.1.0 Python"
    transport: httpx.AsyncBaseTransport | None = None

    # Sub-configurations
    token: TokenConfig = Field(default_factory=TokenConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @property
    def api_url_str(self) -> str:
        """Get API URL as string without trailing slash."""
        return str(self.api_url).rstrip("/")

    @property
    def token_endpoint_str(self) -> str:
        """Get token endpoint as string."""
        return str(self.token_endpoint)

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "PARCEL_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        data: dict[str, Any] = {}
        if api_url := get_env("API_URL"):
            data["api_url"] = api_url
        if token_endpoint := get_env("TOKEN_ENDPOINT"):
            data["token_endpoint"] = token_endpoint
        if proxy := get_env("PROXY"):
            data["proxy"] = proxy
        data["timeout"] = float(get_env("TIMEOUT", "30.0"))
        data["connect_timeout"] = float(get_env("CONNECT_TIMEOUT", "10.0"))

        return cls(**data)
