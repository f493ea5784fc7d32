"""Tests for tracing helpers."""

from __future__ import annotations

import inspect

import pytest
from opentelemetry import trace

from parcel_sdk import telemetry
from parcel_sdk.config import TelemetryConfig


class TestTraceOperation:
    """Tests for trace_operation and traced_async."""

    def test_exceptions_propagate(self) -> None:
        with pytest.raises(KeyError):
            with telemetry.trace_operation("parcel.test", attributes={"skipped": None}):
                raise KeyError("boom")

    @pytest.mark.asyncio
    async def test_traced_async_returns_result(self) -> None:
        class Service:
            @telemetry.traced_async("parcel.service.echo", record_ids=True)
            async def echo(self, value: str, *, times: int = 1) -> str:
                return value * times

        assert await Service().echo("ab", times=2) == "abab"
        assert Service.echo.__name__ == "echo"


class TestConfigureTelemetry:
    """Tests for configure_telemetry."""

    def test_disabled_uses_noop_tracer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(telemetry, "_tracer", None)

        telemetry.configure_telemetry(TelemetryConfig(enabled=False))

        assert isinstance(telemetry.get_tracer(), trace.NoOpTracer)

    def test_log_level_mapping(self) -> None:
        assert telemetry._log_level_to_int("debug") == 10
        assert telemetry._log_level_to_int("nonsense") == 20


class TestSpanAttributes:
    """Tests for identifier tagging and log redaction."""

    def test_only_id_arguments_recorded(self) -> None:
        async def update(self: object, app_id: str, params: dict[str, str], *, client_id: str) -> None:
            return None

        attributes = telemetry._id_attributes(
            inspect.signature(update),
            (object(), "A1", {"name": "secret"}),
            {"client_id": "C1"},
        )

        assert attributes == {"parcel.app_id": "A1", "parcel.client_id": "C1"}

    def test_redacts_credentials(self) -> None:
        event = {"event": "Token refreshed", "access_token": "abc", "refresh_token": None, "expires_in": 60}

        redacted = telemetry.redact_credentials(None, "info", event)

        assert redacted == {
            "event": "Token refreshed",
            "access_token": telemetry.REDACTED,
            "refresh_token": None,
            "expires_in": 60,
        }
