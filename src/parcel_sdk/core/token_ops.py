"""Token request building and assertion signing for the Parcel SDK.

Provides the grant payloads sent to the token endpoint and the ES256
assertions used by self-issued and client-credentials sources.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any

import httpx
import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from jwt import algorithms
from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError, ErrorCode, TokenRefreshError
from ..models import PrivateJWK, TokenResponse

if TYPE_CHECKING:
    from ..config import TokenConfig

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
SIGNING_ALGORITHM = "ES256"


def load_signing_key(jwk: PrivateJWK | dict[str, Any]) -> ec.EllipticCurvePrivateKey:
    """Load an EC private key from a JWK.

    Args:
        jwk: Private JWK, as a model or a plain mapping.

    Returns:
        Private key usable by ``jwt.encode``.

    Raises:
        ConfigurationError: If the JWK is malformed or not a private EC key.
    """
    try:
        key_model = jwk if isinstance(jwk, PrivateJWK) else PrivateJWK.model_validate(jwk)
    except PydanticValidationError as e:
        msg = f"Malformed private key: {e.errors()[0]['msg']}"
        raise ConfigurationError(
            msg, field="private_key", code=ErrorCode.INVALID_CREDENTIALS
        ) from e

    try:
        key = algorithms.ECAlgorithm.from_jwk(key_model.model_dump_json(exclude_none=True))
    except (jwt.exceptions.InvalidKeyError, ValueError) as e:
        msg = f"Unusable private key: {e}"
        raise ConfigurationError(
            msg, field="private_key", code=ErrorCode.INVALID_CREDENTIALS
        ) from e

    if not isinstance(key, ec.EllipticCurvePrivateKey):
        msg = "Private key must contain the EC private scalar 'd'"
        raise ConfigurationError(
            msg, field="private_key", code=ErrorCode.INVALID_CREDENTIALS
        )
    return key


def sign_assertion(
    key: ec.EllipticCurvePrivateKey,
    *,
    issuer: str,
    subject: str,
    audience: str,
    lifetime: int,
    key_id: str | None = None,
    claims: dict[str, Any] | None = None,
) -> str:
    """Sign a short-lived ES256 JWT assertion.

    Args:
        key: Signing key.
        issuer: ``iss`` claim.
        subject: ``sub`` claim.
        audience: ``aud`` claim.
        lifetime: Seconds until ``exp``.
        key_id: Optional ``kid`` header.
        claims: Extra claims merged into the payload.

    Returns:
        Compact JWS string.
    """
    now = int(time.time())
    payload: dict[str, Any] = {
        "iss": issuer,
        "sub": subject,
        "aud": audience,
        "iat": now,
        "exp": now + lifetime,
        "jti": str(uuid.uuid4()),
    }
    if claims:
        payload.update(claims)

    headers = {"kid": key_id} if key_id else None
    return jwt.encode(payload, key, algorithm=SIGNING_ALGORITHM, headers=headers)


class TokenOperations:
    """Builds token endpoint requests and parses their responses."""

    def __init__(self, config: TokenConfig, token_endpoint: str) -> None:
        """Initialize token operations.

        Args:
            config: Token configuration.
            token_endpoint: Absolute URL of the token endpoint.
        """
        self.config = config
        self.token_endpoint = token_endpoint

    def build_jwt_bearer_request(
        self,
        assertion: str,
        scopes: list[str] | None = None,
    ) -> dict[str, Any]:
        """Build JWT bearer grant request payload (RFC 7523 section 2.1)."""
        data: dict[str, Any] = {
            "grant_type": JWT_BEARER_GRANT,
            "assertion": assertion,
        }
        if scopes:
            data["scope"] = " ".join(scopes)
        return data

    def build_client_credentials_request(
        self,
        client_id: str,
        client_assertion: str,
        *,
        scopes: list[str] | None = None,
        audience: str | None = None,
    ) -> dict[str, Any]:
        """Build client credentials grant request payload with private_key_jwt auth."""
        data: dict[str, Any] = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_assertion_type": CLIENT_ASSERTION_TYPE,
            "client_assertion": client_assertion,
        }
        if scopes:
            data["scope"] = " ".join(scopes)
        if audience:
            data["audience"] = audience
        return data

    def build_refresh_token_request(
        self,
        refresh_token: str,
        *,
        client_id: str | None = None,
        audience: str | None = None,
    ) -> dict[str, Any]:
        """Build refresh token grant request payload."""
        data: dict[str, Any] = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        if client_id:
            data["client_id"] = client_id
        if audience:
            data["audience"] = audience
        return data

    @staticmethod
    def parse_token_response(response: httpx.Response) -> TokenResponse:
        """Parse a 2xx token endpoint response.

        Raises:
            TokenRefreshError: If the body is not a valid token response.
        """
        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            msg = "Token endpoint returned a malformed response"
            raise TokenRefreshError(msg, cause=e) from e
