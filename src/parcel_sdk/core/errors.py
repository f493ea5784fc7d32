"""Centralized error factory for the Parcel SDK.

Provides consistent error creation and transformation across all SDK components.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx

from ..errors import (
    ApiError,
    CredentialRejectedError,
    ParcelError,
    RequestTimeoutError,
    TransportError,
)

REQUEST_ID_HEADER = "X-Request-Id"


def _status_slug(status: int) -> str:
    try:
        return httpx.codes(status).name.lower()
    except ValueError:
        return f"http_{status}"


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ErrorFactory:
    """Centralized error creation with consistent structure.

    All errors created through this factory include:
    - The HTTP status and the platform's machine-readable code
    - A correlation ID (the server's request ID when it sent one)
    - The parsed error body under ``details`` where available
    """

    @staticmethod
    def generate_correlation_id() -> str:
        """Generate a unique correlation ID."""
        return str(uuid.uuid4())

    @staticmethod
    def correlation_id_for(
        response: httpx.Response,
        correlation_id: str | None = None,
    ) -> str:
        """Pick the server request ID, then the caller's ID, then a fresh one."""
        return (
            response.headers.get(REQUEST_ID_HEADER)
            or correlation_id
            or ErrorFactory.generate_correlation_id()
        )

    @staticmethod
    def parse_error_body(response: httpx.Response) -> tuple[str, str, dict[str, Any]]:
        """Extract ``(code, message, details)`` from a platform error body.

        Accepts ``{"error": {"code", "message", "details"}}``,
        ``{"code", "message", "details"}`` and the OAuth-style
        ``{"error", "error_description"}`` shapes. Anything else falls back to
        the HTTP reason.
        """
        code = _status_slug(response.status_code)
        message = response.reason_phrase or f"Request failed with status {response.status_code}"
        details: dict[str, Any] = {}

        body = _json_body(response)
        if not isinstance(body, dict):
            if response.content:
                details["body"] = response.text[:512]
            return code, message, details

        error = body.get("error")
        if isinstance(error, dict):
            body = error
            error = None

        if isinstance(body.get("code"), str):
            code = body["code"]
        elif isinstance(error, str) and "error_description" in body:
            code = error

        if isinstance(body.get("message"), str):
            message = body["message"]
        elif isinstance(body.get("error_description"), str):
            message = body["error_description"]
        elif isinstance(error, str):
            message = error

        extra = body.get("details")
        if isinstance(extra, dict):
            details.update(extra)
        elif extra is not None:
            details["details"] = extra

        return code, message, details

    @staticmethod
    def from_http_response(
        response: httpx.Response,
        *,
        correlation_id: str | None = None,
    ) -> ApiError:
        """Create an ApiError from a non-2xx platform response.

        Args:
            response: HTTP response object (body already read).
            correlation_id: Optional correlation ID for tracing.

        Returns:
            ApiError carrying status, code and message.
        """
        code, message, details = ErrorFactory.parse_error_body(response)
        return ApiError(
            message,
            status_code=response.status_code,
            code=code,
            correlation_id=ErrorFactory.correlation_id_for(response, correlation_id),
            details=details,
        )

    @staticmethod
    def from_token_response(
        response: httpx.Response,
        *,
        correlation_id: str | None = None,
    ) -> CredentialRejectedError:
        """Create a CredentialRejectedError from a token endpoint 4xx."""
        code, message, details = ErrorFactory.parse_error_body(response)
        details.setdefault("error", code)
        return CredentialRejectedError(
            f"Token endpoint rejected credentials: {message}",
            status_code=response.status_code,
            correlation_id=ErrorFactory.correlation_id_for(response, correlation_id),
            details=details,
        )

    @staticmethod
    def from_exception(
        exc: Exception,
        *,
        correlation_id: str | None = None,
    ) -> ParcelError:
        """Create SDK error from a transport exception.

        Args:
            exc: Original exception.
            correlation_id: Optional correlation ID for tracing.

        Returns:
            Appropriate ParcelError subclass.
        """
        correlation_id = correlation_id or ErrorFactory.generate_correlation_id()

        if isinstance(exc, ParcelError):
            if exc.correlation_id is None:
                exc.correlation_id = correlation_id
            return exc

        if isinstance(exc, httpx.TimeoutException):
            return RequestTimeoutError(
                f"Request timed out: {exc}",
                correlation_id=correlation_id,
                cause=exc,
            )

        if isinstance(exc, httpx.ConnectError):
            return TransportError(
                f"Connection failed: {exc}",
                correlation_id=correlation_id,
                cause=exc,
            )

        if isinstance(exc, (httpx.HTTPError, httpx.StreamError)):
            return TransportError(
                f"HTTP error: {exc}",
                correlation_id=correlation_id,
                cause=exc,
            )

        return TransportError(
            f"Unexpected error: {exc}",
            correlation_id=correlation_id,
            cause=exc,
        )
