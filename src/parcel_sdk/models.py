"""Pydantic models shared across the Parcel SDK.

Uses Pydantic v2 with frozen models. Platform resources travel as camelCase
JSON; OAuth token responses keep their snake_case field names.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Generic, Literal, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ParcelModel(BaseModel):
    """Base for every platform resource representation."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the platform's JSON representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Page(ParcelModel, Generic[T]):
    """One page of a paginated listing."""

    results: list[T] = Field(default_factory=list)
    next_page_token: str | None = None

    @property
    def has_next(self) -> bool:
        return bool(self.next_page_token)


class PageParams(ParcelModel):
    """Pagination controls for listing operations."""

    page_size: int | None = Field(default=None, gt=0)
    page_token: str | None = None

    def to_query(self) -> dict[str, Any]:
        """Convert to query parameters."""
        return self.to_wire()


class TokenResponse(BaseModel):
    """OAuth 2.0 token response from the token endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="Bearer")
    expires_in: int | None = Field(default=None, gt=0)
    refresh_token: str | None = None
    scope: str | None = None


class BearerToken(BaseModel):
    """In-memory bearer credential with optional expiry."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, repr=False)
    expires_at: datetime | None = None

    @classmethod
    def from_response(cls, response: TokenResponse) -> Self:
        """Create a BearerToken from a token endpoint response."""
        expires_at = None
        if response.expires_in is not None:
            expires_at = datetime.now(UTC) + timedelta(seconds=response.expires_in)
        return cls(value=response.access_token, expires_at=expires_at)

    def is_expired(self, margin_seconds: float = 0) -> bool:
        """Check if token is expired, or will be within ``margin_seconds``."""
        if self.expires_at is None:
            return False
        return datetime.now(UTC) >= self.expires_at - timedelta(seconds=margin_seconds)

    def time_until_expiry(self) -> timedelta | None:
        """Get time remaining until token expires."""
        if self.expires_at is None:
            return None
        return self.expires_at - datetime.now(UTC)


class PublicJWK(BaseModel):
    """Public EC JSON Web Key."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kty: Literal["EC"]
    crv: Literal["P-256"] = "P-256"
    alg: Literal["ES256"] = "ES256"
    use: Literal["sig"] = "sig"
    kid: str | None = None
    x: str = Field(..., min_length=1)
    y: str = Field(..., min_length=1)


class PrivateJWK(PublicJWK):
    """Private EC JSON Web Key used to sign assertions."""

    d: str = Field(..., min_length=1, repr=False)

    def public_key(self) -> PublicJWK:
        """Get the public half of this key."""
        return PublicJWK.model_validate(self.model_dump(exclude={"d"}))
