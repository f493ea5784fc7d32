"""
Property-based tests for configuration module.

Configuration is immutable, validated on construction and loadable from the
environment.
"""

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError as PydanticValidationError

from parcel_sdk.config import (
    DEFAULT_API_URL,
    DEFAULT_TOKEN_ENDPOINT,
    ParcelConfig,
    RetryConfig,
    TelemetryConfig,
    TokenConfig,
)

# Strategy for valid API URLs
valid_api_url = st.sampled_from([
    "https://api.oasislabs.com/parcel/v1",
    "https://parcel.example.com/v1/",
    "https://localhost:8443/parcel/v1",
])


class TestConfigurationProperties:
    """Property tests for configuration."""

    def test_defaults(self) -> None:
        config = ParcelConfig()

        assert config.api_url_str == DEFAULT_API_URL
        assert config.token_endpoint_str == DEFAULT_TOKEN_ENDPOINT
        assert config.token.refresh_margin == 60
        assert config.token.retry.max_retries == 3

    @given(api_url=valid_api_url)
    @settings(max_examples=20)
    def test_config_is_frozen(self, api_url: str) -> None:
        """Property: Configuration cannot be mutated after construction."""
        config = ParcelConfig(api_url=api_url)

        with pytest.raises(PydanticValidationError):
            config.timeout = 1.0  # type: ignore[misc]

    @given(api_url=valid_api_url)
    @settings(max_examples=20)
    def test_api_url_has_no_trailing_slash(self, api_url: str) -> None:
        assert not ParcelConfig(api_url=api_url).api_url_str.endswith("/")

    @given(timeout=st.floats(min_value=0.1, max_value=300.0))
    @settings(max_examples=50)
    def test_with_overrides_keeps_other_fields(self, timeout: float) -> None:
        """Property: Overriding one field leaves the rest unchanged."""
        config = ParcelConfig(api_url="https://parcel.example.com/v1", proxy="http://proxy:3128")

        updated = config.with_overrides(timeout=timeout)

        assert updated.timeout == timeout
        assert updated.api_url == config.api_url
        assert updated.proxy == config.proxy
        assert config.timeout == 30.0

    @given(timeout=st.floats(max_value=0.0, allow_nan=False))
    def test_rejects_non_positive_timeout(self, timeout: float) -> None:
        with pytest.raises(PydanticValidationError):
            ParcelConfig(timeout=timeout)

    def test_rejects_invalid_url(self) -> None:
        with pytest.raises(PydanticValidationError):
            ParcelConfig(api_url="not a url")

    @given(margin=st.integers(max_value=-1))
    def test_rejects_negative_refresh_margin(self, margin: int) -> None:
        with pytest.raises(PydanticValidationError):
            TokenConfig(refresh_margin=margin)

    @given(max_retries=st.integers(min_value=11, max_value=1000))
    def test_rejects_excessive_retries(self, max_retries: int) -> None:
        with pytest.raises(PydanticValidationError):
            RetryConfig(max_retries=max_retries)

    @given(level=st.sampled_from(["debug", "Info", "WARNING", "error"]))
    def test_log_level_normalized(self, level: str) -> None:
        assert TelemetryConfig(log_level=level).log_level == level.upper()

    def test_rejects_unknown_log_level(self) -> None:
        with pytest.raises(PydanticValidationError):
            TelemetryConfig(log_level="LOUD")


class TestFromEnv:
    """Tests for environment loading."""

    def test_reads_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PARCEL_API_URL", "https://parcel.example.com/v1")
        monkeypatch.setenv("PARCEL_TOKEN_ENDPOINT", "https://auth.example.com/oauth/token")
        monkeypatch.setenv("PARCEL_TIMEOUT", "12.5")

        config = ParcelConfig.from_env()

        assert config.api_url_str == "https://parcel.example.com/v1"
        assert config.token_endpoint_str == "https://auth.example.com/oauth/token"
        assert config.timeout == 12.5
        assert config.connect_timeout == 10.0

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAGING_PROXY", "http://proxy:3128")

        assert ParcelConfig.from_env(prefix="STAGING_").proxy == "http://proxy:3128"
