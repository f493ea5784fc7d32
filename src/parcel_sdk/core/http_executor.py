"""Request execution for the Parcel SDK.

Sends prepared requests through the configured transport, maps transport
failures to SDK errors and provides the bounded retry loop used by the
token exchange. Platform API calls are never retried here.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from ..errors import ApiError, TransportError
from ..telemetry import get_logger, trace_operation
from .errors import ErrorFactory

if TYPE_CHECKING:
    from ..config import RetryConfig


def calculate_retry_delay(
    retry_config: RetryConfig,
    attempt: int,
    retry_after: str | None = None,
) -> float:
    """Calculate retry delay with exponential backoff.

    A numeric ``Retry-After`` value takes precedence but is capped at
    ``retry_config.max_delay``.

    Args:
        retry_config: Retry configuration.
        attempt: Current attempt number (0-indexed).
        retry_after: Optional Retry-After header value.

    Returns:
        Delay in seconds.
    """
    if retry_after and retry_after.isdigit():
        return min(float(retry_after), retry_config.max_delay)
    return retry_config.get_delay(attempt)


def should_retry_status(status_code: int) -> bool:
    """Check if status code should trigger retry.

    Args:
        status_code: HTTP status code.

    Returns:
        True if should retry.
    """
    return status_code == 429 or status_code >= 500


class AsyncHTTPExecutor:
    """Asynchronous HTTP executor over an ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize async HTTP executor.

        Args:
            client: Async HTTP client.
        """
        self._client = client
        self._logger = get_logger()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def build_request(self, method: str, url: str, **kwargs: Any) -> httpx.Request:
        return self._client.build_request(method, url, **kwargs)

    async def send(
        self,
        request: httpx.Request,
        *,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a single request.

        Args:
            request: Prepared request.
            stream: Leave the response body unread for streaming.

        Returns:
            HTTP response, whatever its status.

        Raises:
            TransportError: If no response was received.
        """
        with trace_operation(
            "http_request",
            attributes={"http.method": request.method, "http.url": str(request.url)},
        ) as span:
            try:
                response = await self._client.send(request, stream=stream)
            except (httpx.HTTPError, httpx.StreamError) as e:
                self._logger.warning(
                    "Request failed without response",
                    method=request.method,
                    url=str(request.url),
                    error=str(e),
                )
                raise ErrorFactory.from_exception(e) from e

            span.set_attribute("http.status_code", response.status_code)
            self._logger.debug(
                "Request completed",
                method=request.method,
                url=str(request.url),
                status=response.status_code,
            )
            return response

    async def execute_with_retry(
        self,
        method: str,
        url: str,
        retry_config: RetryConfig,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute a replayable request, retrying transient failures.

        Transport errors, 429 and 5xx responses are retried up to
        ``retry_config.max_retries`` times. Any other response is returned
        to the caller as-is.

        Raises:
            TransportError: Last transport failure once retries are exhausted.
            ApiError: Last retryable response once retries are exhausted.
        """
        last_error: TransportError | ApiError | None = None

        for attempt in range(retry_config.max_retries + 1):
            retry_after: str | None = None
            try:
                response = await self.send(self.build_request(method, url, **kwargs))
            except TransportError as e:
                last_error = e
            else:
                if not should_retry_status(response.status_code):
                    return response
                retry_after = response.headers.get("Retry-After")
                last_error = ErrorFactory.from_http_response(response)

            if attempt < retry_config.max_retries:
                delay = calculate_retry_delay(retry_config, attempt, retry_after)
                self._log_retry("Transient failure, retrying", attempt, delay, str(last_error))
                await asyncio.sleep(delay)

        raise last_error or TransportError("Request failed after retries")

    def _log_retry(
        self,
        message: str,
        attempt: int,
        delay: float,
        error: str | None = None,
    ) -> None:
        """Log retry attempt."""
        self._logger.warning(
            message,
            attempt=attempt,
            delay=delay,
            error=error,
        )
