"""Parcel Python SDK."""

from .client import Parcel
from .condition import (
    condition_and,
    condition_not,
    condition_or,
    document_id_in,
    document_owner_is,
    tag_in,
)
from .config import (
    DEFAULT_API_URL,
    DEFAULT_TOKEN_ENDPOINT,
    PARCEL_RUNTIME_AUD,
    ParcelConfig,
    RetryConfig,
    TelemetryConfig,
    TokenConfig,
)
from .errors import (
    ApiError,
    ConfigurationError,
    CredentialExpiredError,
    CredentialRejectedError,
    ErrorCode,
    ParcelError,
    RequestTimeoutError,
    StreamClosedError,
    TokenRefreshError,
    TransportError,
    ValidationError,
)
from .models import BearerToken, Page, PageParams, PrivateJWK, PublicJWK
from .resources import *  # noqa: F403
from .resources import __all__ as _resources_all
from .streams import ByteStream, Download
from .telemetry import configure_telemetry
from .token import (
    ClientCredentials,
    RefreshingTokenProvider,
    RefreshingTokenSource,
    RenewingTokenProvider,
    SelfIssuedTokenProvider,
    SelfIssuedTokenSource,
    StaticTokenProvider,
    StaticTokenSource,
    TokenProvider,
)
from .types import AppId, ClientId, DocumentId, GrantId, IdentityId, JobId, PermissionId

__all__ = [
    "ApiError",
    "AppId",
    "BearerToken",
    "ByteStream",
    "ClientCredentials",
    "ClientId",
    "ConfigurationError",
    "CredentialExpiredError",
    "CredentialRejectedError",
    "DEFAULT_API_URL",
    "DEFAULT_TOKEN_ENDPOINT",
    "DocumentId",
    "Download",
    "ErrorCode",
    "GrantId",
    "IdentityId",
    "JobId",
    "PARCEL_RUNTIME_AUD",
    "Page",
    "PageParams",
    "Parcel",
    "ParcelConfig",
    "ParcelError",
    "PermissionId",
    "PrivateJWK",
    "PublicJWK",
    "RefreshingTokenProvider",
    "RefreshingTokenSource",
    "RenewingTokenProvider",
    "RequestTimeoutError",
    "RetryConfig",
    "SelfIssuedTokenProvider",
    "SelfIssuedTokenSource",
    "StaticTokenProvider",
    "StaticTokenSource",
    "StreamClosedError",
    "TelemetryConfig",
    "TokenConfig",
    "TokenProvider",
    "TokenRefreshError",
    "TransportError",
    "ValidationError",
    "condition_and",
    "condition_not",
    "condition_or",
    "configure_telemetry",
    "document_id_in",
    "document_owner_is",
    "tag_in",
    *_resources_all,
]

__version__ = "0.1.0"
