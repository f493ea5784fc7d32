"""Core components for the Parcel SDK.

Error mapping, token request construction and HTTP execution shared by the
token providers and the authenticated HTTP client.
"""

from __future__ import annotations

from .errors import ErrorFactory
from .http_executor import AsyncHTTPExecutor, calculate_retry_delay, should_retry_status
from .token_ops import TokenOperations, load_signing_key, sign_assertion

__all__ = [
    "AsyncHTTPExecutor",
    "ErrorFactory",
    "TokenOperations",
    "calculate_retry_delay",
    "load_signing_key",
    "should_retry_status",
    "sign_assertion",
]
