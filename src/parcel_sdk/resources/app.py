"""Apps: third-party services that request access to user documents."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, HttpUrl

from ..models import Page, PageParams, ParcelModel
from ..telemetry import traced_async
from ..types import AppId, IdentityId, PermissionId
from .base import ResourceAPI, coerce, require_id


class App(ParcelModel):
    id: AppId
    created_at: datetime
    owner: IdentityId
    admins: list[IdentityId] = Field(default_factory=list)
    collaborators: list[IdentityId] = Field(default_factory=list)
    # Identities that have accepted at least one of the app's permissions.
    participants: list[IdentityId] = Field(default_factory=list)
    permissions: list[PermissionId] = Field(default_factory=list)
    published: bool = False
    invite_only: bool = True
    invites: list[IdentityId] = Field(default_factory=list)
    allow_user_uploads: bool = False

    name: str
    organization: str = ""
    short_description: str = ""
    homepage: str = ""
    privacy_policy: str = ""
    terms_and_conditions: str = ""
    invite_text: str = ""
    accept_text: str = ""
    reject_text: str = ""
    extended_description: str | None = None
    brand_color: str | None = None
    category: str | None = None
    logo_url: str | None = None
    identity: IdentityId | None = None


class AppUpdateParams(ParcelModel):
    admins: list[IdentityId] | None = None
    collaborators: list[IdentityId] | None = None
    published: bool | None = None
    invite_only: bool | None = None
    invites: list[IdentityId] | None = None
    allow_user_uploads: bool | None = None
    name: str | None = Field(default=None, min_length=1)
    organization: str | None = None
    short_description: str | None = None
    homepage: HttpUrl | None = None
    privacy_policy: HttpUrl | None = None
    terms_and_conditions: HttpUrl | None = None
    invite_text: str | None = None
    accept_text: str | None = None
    reject_text: str | None = None
    extended_description: str | None = None
    brand_color: str | None = None
    category: str | None = None
    logo_url: HttpUrl | None = None


class AppCreateParams(AppUpdateParams):
    name: str = Field(..., min_length=1)
    identity: IdentityId | None = None


class ListAppsFilter(PageParams):
    owner: IdentityId | None = None
    creator: IdentityId | None = None
    # Only apps in which this identity participates.
    participation: IdentityId | None = None


class AppsAPI(ResourceAPI):
    """Operations on ``/apps``."""

    @traced_async("parcel.apps.create")
    async def create(self, params: AppCreateParams | dict[str, Any]) -> App:
        params = coerce(AppCreateParams, params)
        data = await self._http.post("apps", json=params.to_wire())
        return App.model_validate(data)

    @traced_async("parcel.apps.get", record_ids=True)
    async def get(self, app_id: AppId) -> App:
        data = await self._http.get(f"apps/{require_id(app_id, 'app_id')}")
        return App.model_validate(data)

    @traced_async("parcel.apps.list")
    async def list(self, params: ListAppsFilter | dict[str, Any] | None = None) -> Page[App]:
        query = coerce(ListAppsFilter, params)
        data = await self._http.get("apps", params=query.to_query())
        return Page[App].model_validate(data)

    @traced_async("parcel.apps.update", record_ids=True)
    async def update(self, app_id: AppId, update: AppUpdateParams | dict[str, Any]) -> App:
        path = f"apps/{require_id(app_id, 'app_id')}"
        update = coerce(AppUpdateParams, update)
        data = await self._http.put(path, json=update.to_wire())
        return App.model_validate(data)

    @traced_async("parcel.apps.delete", record_ids=True)
    async def delete(self, app_id: AppId) -> None:
        await self._http.delete(f"apps/{require_id(app_id, 'app_id')}")
