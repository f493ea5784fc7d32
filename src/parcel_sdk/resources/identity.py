"""Identities: the principals that own documents and hold grants."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from ..models import Page, PageParams, ParcelModel, PublicJWK
from ..telemetry import traced_async
from ..types import AppId, GrantId, IdentityId, PermissionId
from .base import ResourceAPI, coerce, require_id


class IdentityTokenVerifier(ParcelModel):
    """Accepts tokens issued by ``iss`` for ``sub`` and signed with ``public_key``."""

    sub: str
    iss: str
    public_key: PublicJWK


class Identity(ParcelModel):
    id: IdentityId
    created_at: datetime
    token_verifiers: list[IdentityTokenVerifier] = Field(default_factory=list)


class IdentityCreateParams(ParcelModel):
    token_verifiers: list[IdentityTokenVerifier] = Field(..., min_length=1)


class IdentityUpdateParams(ParcelModel):
    token_verifiers: list[IdentityTokenVerifier] | None = None


class GrantedPermission(ParcelModel):
    """An app permission the identity has accepted, and the grants it created."""

    permission: PermissionId
    app: AppId | None = None
    created_at: datetime | None = None
    grants: list[GrantId] = Field(default_factory=list)


class IdentitiesAPI(ResourceAPI):
    """Operations on ``/identities``."""

    @traced_async("parcel.identities.create")
    async def create(self, params: IdentityCreateParams | dict[str, Any]) -> Identity:
        params = coerce(IdentityCreateParams, params)
        data = await self._http.post("identities", json=params.to_wire())
        return Identity.model_validate(data)

    @traced_async("parcel.identities.current")
    async def current(self) -> Identity:
        """Get the identity the SDK is authenticated as."""
        data = await self._http.get("identities/me")
        return Identity.model_validate(data)

    @traced_async("parcel.identities.get", record_ids=True)
    async def get(self, identity_id: IdentityId) -> Identity:
        data = await self._http.get(f"identities/{require_id(identity_id, 'identity_id')}")
        return Identity.model_validate(data)

    @traced_async("parcel.identities.update", record_ids=True)
    async def update(
        self,
        identity_id: IdentityId,
        update: IdentityUpdateParams | dict[str, Any],
    ) -> Identity:
        path = f"identities/{require_id(identity_id, 'identity_id')}"
        update = coerce(IdentityUpdateParams, update)
        data = await self._http.put(path, json=update.to_wire())
        return Identity.model_validate(data)

    @traced_async("parcel.identities.delete", record_ids=True)
    async def delete(self, identity_id: IdentityId) -> None:
        await self._http.delete(f"identities/{require_id(identity_id, 'identity_id')}")

    @traced_async("parcel.identities.list_granted_permissions", record_ids=True)
    async def list_granted_permissions(
        self,
        identity_id: IdentityId,
        params: PageParams | dict[str, Any] | None = None,
    ) -> Page[GrantedPermission]:
        path = f"identities/{require_id(identity_id, 'identity_id')}/permissions"
        page = coerce(PageParams, params)
        data = await self._http.get(path, params=page.to_query())
        return Page[GrantedPermission].model_validate(data)

    @traced_async("parcel.identities.grant_permission", record_ids=True)
    async def grant_permission(
        self,
        identity_id: IdentityId,
        permission_id: PermissionId,
    ) -> None:
        """Accept an app permission on behalf of the identity."""
        path = (
            f"identities/{require_id(identity_id, 'identity_id')}"
            f"/permissions/{require_id(permission_id, 'permission_id')}"
        )
        await self._http.post(path)

    @traced_async("parcel.identities.revoke_permission", record_ids=True)
    async def revoke_permission(
        self,
        identity_id: IdentityId,
        permission_id: PermissionId,
    ) -> None:
        """Withdraw a previously accepted permission and its grants."""
        path = (
            f"identities/{require_id(identity_id, 'identity_id')}"
            f"/permissions/{require_id(permission_id, 'permission_id')}"
        )
        await self._http.delete(path)
