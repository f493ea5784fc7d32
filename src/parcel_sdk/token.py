"""Bearer token acquisition and refresh for the Parcel SDK.

A credential source describes how to obtain a token; ``TokenProvider.from_source``
selects the matching provider once, at construction. Providers cache the
current token and refresh it on demand, at most one refresh at a time.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import DEFAULT_TOKEN_ENDPOINT, PARCEL_RUNTIME_AUD, TokenConfig
from .core.errors import ErrorFactory
from .core.token_ops import TokenOperations, load_signing_key, sign_assertion
from .errors import (
    ApiError,
    ConfigurationError,
    CredentialExpiredError,
    TokenRefreshError,
    TransportError,
)
from .models import BearerToken, PrivateJWK, TokenResponse
from .telemetry import get_logger, trace_operation
from .types import IdentityId

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey

    from .config import RetryConfig

DEFAULT_SCOPES = ["parcel.full"]


class TokenExchanger(Protocol):
    """Unauthenticated path used to reach the token endpoint."""

    async def exchange_token(
        self,
        url: str,
        data: dict[str, Any],
        retry_config: RetryConfig,
    ) -> httpx.Response: ...


# -- Credential sources -------------------------------------------------------


class StaticTokenSource(BaseModel):
    """A pre-issued bearer token."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, repr=False)
    expires_at: datetime | None = None


class SelfIssuedTokenSource(BaseModel):
    """A principal that signs its own assertions with an EC private key."""

    model_config = ConfigDict(frozen=True)

    principal: IdentityId
    private_key: PrivateJWK
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    token_endpoint: str | None = None
    audience: str = PARCEL_RUNTIME_AUD

    @field_validator("principal")
    @classmethod
    def validate_principal(cls, v: str) -> str:
        if not v.strip():
            msg = "principal must not be empty"
            raise ValueError(msg)
        return v


class RefreshingTokenSource(BaseModel):
    """A delegated refresh token exchanged for access tokens on demand."""

    model_config = ConfigDict(frozen=True)

    refresh_token: str = Field(..., min_length=1, repr=False)
    client_id: str | None = None
    token_endpoint: str | None = None
    audience: str = PARCEL_RUNTIME_AUD


class ClientCredentials(BaseModel):
    """A service client authenticating with ``private_key_jwt``."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    private_key: PrivateJWK
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    token_endpoint: str | None = None
    audience: str = PARCEL_RUNTIME_AUD


CredentialSource = Union[
    StaticTokenSource,
    SelfIssuedTokenSource,
    RefreshingTokenSource,
    ClientCredentials,
]
# Anything accepted by TokenProvider.from_source
TokenSource = Union[str, CredentialSource, "TokenProvider", dict[str, Any]]


# -- Providers ----------------------------------------------------------------


class TokenProvider(ABC):
    """Produces bearer tokens for outgoing requests."""

    @staticmethod
    def from_source(
        source: Any,
        *,
        config: TokenConfig | None = None,
        token_endpoint: str = DEFAULT_TOKEN_ENDPOINT,
    ) -> TokenProvider:
        """Build the provider matching a credential source.

        Args:
            source: A token string, a credential source model, a mapping
                shaped like one, or an existing provider.
            config: Token refresh policy.
            token_endpoint: Token endpoint used when the source names none.

        Returns:
            Token provider for the source.

        Raises:
            ConfigurationError: If the source is malformed.
        """
        config = config or TokenConfig()
        if isinstance(source, TokenProvider):
            return source
        if isinstance(source, dict):
            source = _source_from_mapping(source)

        if isinstance(source, str):
            if not source.strip():
                raise ConfigurationError("Static token must not be empty", field="token")
            return StaticTokenProvider(StaticTokenSource(token=source))
        if isinstance(source, StaticTokenSource):
            return StaticTokenProvider(source)
        if isinstance(source, SelfIssuedTokenSource):
            return SelfIssuedTokenProvider(source, config, source.token_endpoint or token_endpoint)
        if isinstance(source, RefreshingTokenSource):
            return RefreshingTokenProvider(source, config, source.token_endpoint or token_endpoint)
        if isinstance(source, ClientCredentials):
            return RenewingTokenProvider(source, config, source.token_endpoint or token_endpoint)

        msg = f"Unsupported token source: {type(source).__name__}"
        raise ConfigurationError(msg, field="token_source")

    @property
    def can_refresh(self) -> bool:
        """Whether ``invalidate`` can lead to a different token."""
        return True

    def bind(self, exchanger: TokenExchanger) -> None:
        """Attach the unauthenticated path used to reach the token endpoint."""

    @abstractmethod
    async def get_token(self) -> BearerToken:
        """Return a token that is valid for at least the refresh margin."""

    async def invalidate(self, token: BearerToken) -> None:
        """Drop ``token`` if it is still current so the next call refreshes."""


class StaticTokenProvider(TokenProvider):
    """Returns a fixed token; never refreshes."""

    def __init__(self, source: StaticTokenSource) -> None:
        expires_at = source.expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        self._token = BearerToken(value=source.token, expires_at=expires_at)

    @property
    def can_refresh(self) -> bool:
        return False

    async def get_token(self) -> BearerToken:
        if self._token.is_expired():
            raise CredentialExpiredError()
        return self._token


class ExpiringTokenProvider(TokenProvider):
    """Caches a token and renews it when it nears expiry.

    Renewals are serialized with an ``asyncio.Lock``. Callers arriving while a
    renewal is in flight wait for it and then reuse its token.
    """

    def __init__(self, config: TokenConfig, token_endpoint: str) -> None:
        self.config = config
        self._ops = TokenOperations(config, token_endpoint)
        self._token: BearerToken | None = None
        self._lock = asyncio.Lock()
        self._exchanger: TokenExchanger | None = None
        self._logger = get_logger().bind(provider=type(self).__name__)

    @property
    def token_endpoint(self) -> str:
        return self._ops.token_endpoint

    def bind(self, exchanger: TokenExchanger) -> None:
        self._exchanger = exchanger

    def _fresh_token(self) -> BearerToken | None:
        token = self._token
        if token is None or token.is_expired(self.config.refresh_margin):
            return None
        return token

    async def get_token(self) -> BearerToken:
        if (token := self._fresh_token()) is not None:
            return token

        async with self._lock:
            # Another caller may have renewed while we waited.
            if (token := self._fresh_token()) is not None:
                return token

            with trace_operation("token_refresh", attributes={"provider": type(self).__name__}):
                response = await self._exchange(self._build_request())
                token = BearerToken.from_response(response)
                self._token = token
                self._on_renewed(response)

            self._logger.info("Access token renewed", expires_at=str(token.expires_at))
            return token

    async def invalidate(self, token: BearerToken) -> None:
        async with self._lock:
            if self._token is not None and self._token.value == token.value:
                self._token = None

    @abstractmethod
    def _build_request(self) -> dict[str, Any]:
        """Build the token endpoint form payload."""

    def _on_renewed(self, response: TokenResponse) -> None:
        """Hook for sources that keep state from the token response."""

    async def _exchange(self, data: dict[str, Any]) -> TokenResponse:
        if self._exchanger is None:
            msg = "Token provider is not bound to an HTTP client"
            raise ConfigurationError(msg)

        retry = self.config.retry
        try:
            response = await self._exchanger.exchange_token(self.token_endpoint, data, retry)
        except (TransportError, ApiError) as e:
            self._logger.warning("Token refresh failed after retries", error=str(e))
            raise TokenRefreshError(
                f"Token refresh failed after {retry.max_retries + 1} attempts: {e}",
                attempts=retry.max_retries + 1,
                correlation_id=e.correlation_id,
                cause=e,
            ) from e

        if response.is_success:
            return self._ops.parse_token_response(response)

        error = ErrorFactory.from_token_response(response)
        self._logger.error(
            "Token endpoint rejected credentials",
            status=response.status_code,
            error=error.details.get("error"),
        )
        raise error


class SelfIssuedTokenProvider(ExpiringTokenProvider):
    """Exchanges self-signed principal assertions for access tokens."""

    def __init__(
        self,
        source: SelfIssuedTokenSource,
        config: TokenConfig,
        token_endpoint: str,
    ) -> None:
        super().__init__(config, token_endpoint)
        self._source = source
        self._key: EllipticCurvePrivateKey = load_signing_key(source.private_key)

    @property
    def principal(self) -> IdentityId:
        return self._source.principal

    def _build_request(self) -> dict[str, Any]:
        assertion = sign_assertion(
            self._key,
            issuer=self._source.principal,
            subject=self._source.principal,
            audience=self._source.audience,
            lifetime=self.config.assertion_lifetime,
            key_id=self._source.private_key.kid,
        )
        return self._ops.build_jwt_bearer_request(assertion, self._source.scopes)


class RenewingTokenProvider(ExpiringTokenProvider):
    """Obtains tokens with the client credentials grant."""

    def __init__(
        self,
        source: ClientCredentials,
        config: TokenConfig,
        token_endpoint: str,
    ) -> None:
        super().__init__(config, token_endpoint)
        self._source = source
        self._key: EllipticCurvePrivateKey = load_signing_key(source.private_key)

    def _build_request(self) -> dict[str, Any]:
        assertion = sign_assertion(
            self._key,
            issuer=self._source.client_id,
            subject=self._source.client_id,
            audience=self.token_endpoint,
            lifetime=self.config.assertion_lifetime,
            key_id=self._source.private_key.kid,
        )
        return self._ops.build_client_credentials_request(
            self._source.client_id,
            assertion,
            scopes=self._source.scopes,
            audience=self._source.audience,
        )


class RefreshingTokenProvider(ExpiringTokenProvider):
    """Exchanges a refresh token, following rotation."""

    def __init__(
        self,
        source: RefreshingTokenSource,
        config: TokenConfig,
        token_endpoint: str,
    ) -> None:
        super().__init__(config, token_endpoint)
        self._source = source
        self._refresh_token = source.refresh_token

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def _build_request(self) -> dict[str, Any]:
        return self._ops.build_refresh_token_request(
            self._refresh_token,
            client_id=self._source.client_id,
            audience=self._source.audience,
        )

    def _on_renewed(self, response: TokenResponse) -> None:
        if response.refresh_token and response.refresh_token != self._refresh_token:
            self._refresh_token = response.refresh_token
            self._logger.info("Refresh token rotated")


def _source_from_mapping(data: dict[str, Any]) -> CredentialSource:
    """Build a credential source from a plain mapping, chosen by its keys."""
    if "token" in data:
        model: type[BaseModel] = StaticTokenSource
    elif "principal" in data:
        model = SelfIssuedTokenSource
    elif "refresh_token" in data:
        model = RefreshingTokenSource
    elif "client_id" in data and "private_key" in data:
        model = ClientCredentials
    else:
        msg = "Cannot infer token source from keys: " + ", ".join(sorted(data))
        raise ConfigurationError(msg, field="token_source")

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValueError as e:
        msg = f"Malformed {model.__name__}: {e}"
        raise ConfigurationError(msg, field="token_source") from e
