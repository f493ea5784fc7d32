"""OpenTelemetry and structlog integration for the Parcel SDK.

Resource operations open a span named ``parcel.<resource>.<operation>``
and, when asked, tag it with the identifiers they were called with
(``parcel.document_id``, ``parcel.app_id``...). Logs go through structlog;
credential material is redacted before rendering.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Awaitable, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, ParamSpec, TypeVar

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Generator

    from .config import TelemetryConfig

P = ParamSpec("P")
T = TypeVar("T")

SDK_NAME = "parcel-sdk"
SDK_VERSION = "0.1.0"
ATTRIBUTE_PREFIX = "parcel."

# Event keys whose values are never rendered.
SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "assertion",
        "client_assertion",
        "authorization",
        "private_key",
        "token",
    }
)
REDACTED = "[redacted]"

_LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Get or create the SDK tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SDK_NAME, SDK_VERSION)
    return _tracer


def get_logger() -> structlog.BoundLogger:
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(SDK_NAME)
    return _logger


def redact_credentials(
    logger: Any,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """structlog processor that masks token and key material."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def configure_telemetry(config: TelemetryConfig) -> None:
    """Configure logging and tracing for the SDK.

    Not called by :class:`parcel_sdk.Parcel`; applications that already
    configure structlog can skip it.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            redact_credentials,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _log_level_to_int(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _tracer = trace.get_tracer(config.service_name, SDK_VERSION)
    _logger = structlog.get_logger(config.service_name)


def _log_level_to_int(level: str) -> int:
    return _LOG_LEVELS.get(level.upper(), 20)


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Context manager for tracing an operation.

    ``None`` attribute values are skipped. Exceptions are recorded on the
    span and re-raised.

    Args:
        name: Name of the operation.
        attributes: Optional span attributes.

    Yields:
        The active span.
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def _id_attributes(
    signature: inspect.Signature,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> dict[str, Any]:
    # Only parameters named *_id are recorded; payloads never reach the span.
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {
        f"{ATTRIBUTE_PREFIX}{name}": value
        for name, value in bound.arguments.items()
        if name.endswith("_id") and isinstance(value, str)
    }


def traced_async(
    name: str | None = None,
    *,
    record_ids: bool = False,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to trace an async resource operation.

    Args:
        name: Span name (defaults to the function's qualified name).
        record_ids: Tag the span with the ``*_id`` arguments of the call.

    Returns:
        Decorated async function.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        span_name = name or func.__qualname__
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attributes = _id_attributes(signature, args, kwargs) if record_ids else None
            with trace_operation(span_name, attributes=attributes):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
