"""Permissions: grant templates an app asks its participants to accept."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from ..models import Page, PageParams, ParcelModel
from ..telemetry import traced_async
from ..types import AppId, Condition, PermissionId
from .base import ResourceAPI, coerce, require_id
from .grant import Capabilities, CapabilitiesField


class GrantSpec(ParcelModel):
    """A grant to create when an identity accepts the permission.

    ``grantee`` is an identity ID, ``"app"`` for the requesting app, or
    ``"everyone"``.
    """

    grantee: str
    condition: Condition | None = None
    capabilities: CapabilitiesField = Capabilities.READ


class Permission(ParcelModel):
    id: PermissionId
    created_at: datetime
    app: AppId | None = None
    grants: list[GrantSpec] = Field(default_factory=list)
    name: str = ""
    description: str = ""
    allow_text: str = ""
    deny_text: str = ""


class PermissionCreateParams(ParcelModel):
    grants: list[GrantSpec] = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    allow_text: str = ""
    deny_text: str = ""


class PermissionsAPI(ResourceAPI):
    """Operations on ``/apps/{app_id}/permissions``."""

    @traced_async("parcel.permissions.create", record_ids=True)
    async def create(
        self,
        app_id: AppId,
        params: PermissionCreateParams | dict[str, Any],
    ) -> Permission:
        path = f"apps/{require_id(app_id, 'app_id')}/permissions"
        params = coerce(PermissionCreateParams, params)
        data = await self._http.post(path, json=params.to_wire())
        return Permission.model_validate(data)

    @traced_async("parcel.permissions.list", record_ids=True)
    async def list(
        self,
        app_id: AppId,
        params: PageParams | dict[str, Any] | None = None,
    ) -> Page[Permission]:
        path = f"apps/{require_id(app_id, 'app_id')}/permissions"
        query = coerce(PageParams, params)
        data = await self._http.get(path, params=query.to_query())
        return Page[Permission].model_validate(data)

    @traced_async("parcel.permissions.delete", record_ids=True)
    async def delete(self, app_id: AppId, permission_id: PermissionId) -> None:
        await self._http.delete(
            f"apps/{require_id(app_id, 'app_id')}"
            f"/permissions/{require_id(permission_id, 'permission_id')}"
        )
