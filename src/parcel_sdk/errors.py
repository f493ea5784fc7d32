"""Error classes for the Parcel SDK.

Implements a structured error hierarchy with error codes, correlation IDs
and enough HTTP detail for callers to branch programmatically.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the Parcel SDK."""

    # Configuration errors (1xxx)
    INVALID_CONFIG = "CFG_1001"
    INVALID_CREDENTIALS = "CFG_1002"

    # Authentication errors (2xxx)
    CREDENTIAL_REJECTED = "AUTH_2001"
    CREDENTIAL_EXPIRED = "AUTH_2002"
    TOKEN_REFRESH_FAILED = "AUTH_2003"

    # Validation errors (3xxx)
    VALIDATION_ERROR = "VAL_3001"

    # Remote API errors (4xxx)
    API_ERROR = "API_4001"

    # Network errors (5xxx)
    TRANSPORT_ERROR = "NET_5001"
    TIMEOUT_ERROR = "NET_5002"

    # Stream errors (6xxx)
    STREAM_CLOSED = "STR_6001"


class ParcelError(Exception):
    """Base error for the Parcel SDK with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.status_code = status_code
        self.correlation_id = correlation_id
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "correlation_id": self.correlation_id,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(ParcelError):
    """Credential source or SDK configuration is malformed."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        code: ErrorCode = ErrorCode.INVALID_CONFIG,
    ) -> None:
        super().__init__(
            message,
            code,
            details={"field": field} if field else None,
        )
        self.field = field


class CredentialRejectedError(ParcelError):
    """The token endpoint refused the supplied credentials."""

    def __init__(
        self,
        message: str = "Credentials were rejected",
        *,
        status_code: int | None = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.CREDENTIAL_REJECTED,
            status_code=status_code,
            correlation_id=correlation_id,
            details=details,
        )


class CredentialExpiredError(ParcelError):
    """A static credential has passed its known expiry."""

    def __init__(self, message: str = "Access token has expired") -> None:
        super().__init__(message, ErrorCode.CREDENTIAL_EXPIRED, status_code=401)


class TokenRefreshError(ParcelError):
    """Token refresh kept failing after bounded retries."""

    def __init__(
        self,
        message: str = "Failed to refresh token",
        *,
        attempts: int | None = None,
        correlation_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if attempts is not None:
            details["attempts"] = attempts
        if cause is not None:
            details["cause"] = str(cause)
        super().__init__(
            message,
            ErrorCode.TOKEN_REFRESH_FAILED,
            correlation_id=correlation_id,
            details=details,
        )
        self.__cause__ = cause


class ValidationError(ParcelError):
    """A required argument was missing or invalid before any request was sent."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            details={"field": field} if field else None,
        )
        self.field = field


class ApiError(ParcelError):
    """Structured error response from the platform.

    ``code`` holds the platform's machine-readable error code (for example
    ``"not_found"``), not an SDK :class:`ErrorCode`.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        code: str | None = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code or ErrorCode.API_ERROR,
            status_code=status_code,
            correlation_id=correlation_id,
            details=details,
        )
        self.status_code: int = status_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    def __str__(self) -> str:
        return f"{self.status_code} {self.code}: {self.message}"


class TransportError(ParcelError):
    """No response was received from the platform."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        correlation_id: str | None = None,
        cause: Exception | None = None,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
    ) -> None:
        super().__init__(
            message,
            code,
            correlation_id=correlation_id,
            details={"cause": str(cause)} if cause else None,
        )
        self.__cause__ = cause


class RequestTimeoutError(TransportError):
    """Request timed out at the transport level."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        correlation_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            correlation_id=correlation_id,
            cause=cause,
            code=ErrorCode.TIMEOUT_ERROR,
        )


class StreamClosedError(ParcelError):
    """Write attempted on a byte stream that was closed or aborted."""

    def __init__(self, message: str = "Stream is closed") -> None:
        super().__init__(message, ErrorCode.STREAM_CLOSED)
