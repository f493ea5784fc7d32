"""OAuth clients registered under an app.

A client is one of three kinds, told apart by its ``type`` field:

* ``frontend``: a public client (browser or mobile) that signs users in via
  redirects and cannot hold secrets.
* ``backend``: a confidential client that authenticates with a key pair and
  may act on behalf of users.
* ``service``: a confidential client that acts only as the app itself.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models import Page, PageParams, ParcelModel, PublicJWK
from ..telemetry import traced_async
from ..types import AppId, ClientId, IdentityId
from .base import ResourceAPI, coerce, require_id


class ClientType(StrEnum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    SERVICE = "service"


class _ClientBase(ParcelModel):
    id: ClientId
    created_at: datetime
    creator: IdentityId
    app_id: AppId
    name: str


class FrontendClient(_ClientBase):
    type: Literal["frontend"] = "frontend"
    redirect_uris: list[str] = Field(default_factory=list)
    post_logout_redirect_uris: list[str] = Field(default_factory=list)


class BackendClient(_ClientBase):
    type: Literal["backend"] = "backend"
    redirect_uris: list[str] = Field(default_factory=list)
    post_logout_redirect_uris: list[str] = Field(default_factory=list)
    public_keys: list[PublicJWK] = Field(default_factory=list)


class ServiceClient(_ClientBase):
    type: Literal["service"] = "service"
    public_keys: list[PublicJWK] = Field(default_factory=list)


Client = Annotated[
    Union[FrontendClient, BackendClient, ServiceClient],
    Field(discriminator="type"),
]


class FrontendClientCreateParams(ParcelModel):
    type: Literal["frontend"] = "frontend"
    name: str = Field(..., min_length=1)
    redirect_uris: list[str] = Field(..., min_length=1)
    post_logout_redirect_uris: list[str] = Field(default_factory=list)


class BackendClientCreateParams(ParcelModel):
    type: Literal["backend"] = "backend"
    name: str = Field(..., min_length=1)
    redirect_uris: list[str] = Field(default_factory=list)
    post_logout_redirect_uris: list[str] = Field(default_factory=list)
    public_keys: list[PublicJWK] = Field(..., min_length=1)


class ServiceClientCreateParams(ParcelModel):
    type: Literal["service"] = "service"
    name: str = Field(..., min_length=1)
    public_keys: list[PublicJWK] = Field(..., min_length=1)


ClientCreateParams = Annotated[
    Union[FrontendClientCreateParams, BackendClientCreateParams, ServiceClientCreateParams],
    Field(discriminator="type"),
]


class FrontendClientUpdateParams(ParcelModel):
    type: Literal["frontend"] = "frontend"
    name: str | None = Field(default=None, min_length=1)
    redirect_uris: list[str] | None = None
    post_logout_redirect_uris: list[str] | None = None


class BackendClientUpdateParams(ParcelModel):
    type: Literal["backend"] = "backend"
    name: str | None = Field(default=None, min_length=1)
    redirect_uris: list[str] | None = None
    post_logout_redirect_uris: list[str] | None = None
    public_keys: list[PublicJWK] | None = None


class ServiceClientUpdateParams(ParcelModel):
    type: Literal["service"] = "service"
    name: str | None = Field(default=None, min_length=1)
    public_keys: list[PublicJWK] | None = None


ClientUpdateParams = Annotated[
    Union[FrontendClientUpdateParams, BackendClientUpdateParams, ServiceClientUpdateParams],
    Field(discriminator="type"),
]


class ListClientsFilter(PageParams):
    creator: IdentityId | None = None
    type: ClientType | None = None


_client_adapter: TypeAdapter[Any] = TypeAdapter(Client)
_create_adapter: TypeAdapter[Any] = TypeAdapter(ClientCreateParams)
_update_adapter: TypeAdapter[Any] = TypeAdapter(ClientUpdateParams)


def parse_client(data: Any) -> FrontendClient | BackendClient | ServiceClient:
    """Parse a platform client representation into its concrete type."""
    return _client_adapter.validate_python(data)


def _coerce_variant(adapter: TypeAdapter[Any], value: Any, name: str) -> Any:
    if isinstance(value, ParcelModel):
        return value
    try:
        return adapter.validate_python(value or {})
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        msg = f"Invalid {name}: {error['msg']}"
        raise ValidationError(msg, field=field) from e


class ClientsAPI(ResourceAPI):
    """Operations on ``/apps/{app_id}/clients``."""

    @traced_async("parcel.clients.create", record_ids=True)
    async def create(
        self,
        app_id: AppId,
        params: ClientCreateParams | dict[str, Any],
    ) -> FrontendClient | BackendClient | ServiceClient:
        path = f"apps/{require_id(app_id, 'app_id')}/clients"
        params = _coerce_variant(_create_adapter, params, "ClientCreateParams")
        data = await self._http.post(path, json=params.to_wire())
        return parse_client(data)

    @traced_async("parcel.clients.get", record_ids=True)
    async def get(
        self,
        app_id: AppId,
        client_id: ClientId,
    ) -> FrontendClient | BackendClient | ServiceClient:
        data = await self._http.get(
            f"apps/{require_id(app_id, 'app_id')}/clients/{require_id(client_id, 'client_id')}"
        )
        return parse_client(data)

    @traced_async("parcel.clients.list", record_ids=True)
    async def list(
        self,
        app_id: AppId,
        params: ListClientsFilter | dict[str, Any] | None = None,
    ) -> Page[Client]:
        path = f"apps/{require_id(app_id, 'app_id')}/clients"
        query = coerce(ListClientsFilter, params)
        data = await self._http.get(path, params=query.to_query())
        return Page[Client].model_validate(data)

    @traced_async("parcel.clients.update", record_ids=True)
    async def update(
        self,
        app_id: AppId,
        client_id: ClientId,
        update: ClientUpdateParams | dict[str, Any],
    ) -> FrontendClient | BackendClient | ServiceClient:
        path = f"apps/{require_id(app_id, 'app_id')}/clients/{require_id(client_id, 'client_id')}"
        update = _coerce_variant(_update_adapter, update, "ClientUpdateParams")
        data = await self._http.put(path, json=update.to_wire())
        return parse_client(data)

    @traced_async("parcel.clients.delete", record_ids=True)
    async def delete(self, app_id: AppId, client_id: ClientId) -> None:
        await self._http.delete(
            f"apps/{require_id(app_id, 'app_id')}/clients/{require_id(client_id, 'client_id')}"
        )
