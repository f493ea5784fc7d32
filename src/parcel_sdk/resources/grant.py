"""Grants: standing permission for a grantee to use a granter's documents."""

from __future__ import annotations

from datetime import datetime
from enum import Flag, auto
from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator

from ..models import Page, PageParams, ParcelModel
from ..telemetry import traced_async
from ..types import Condition, GrantId, IdentityId, PermissionId
from .base import ResourceAPI, coerce, require_id

EVERYONE = "everyone"


class Capabilities(Flag):
    """What a grant allows. Serialized as space-separated lowercase names."""

    NONE = 0
    READ = auto()
    EXTEND = auto()

    @classmethod
    def parse(cls, value: Any) -> Capabilities:
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            value = value.replace(",", " ").split()
        if isinstance(value, (list, tuple, set)):
            result = cls.NONE
            for name in value:
                try:
                    result |= cls[str(name).upper()]
                except KeyError:
                    msg = f"Unknown capability: {name}"
                    raise ValueError(msg) from None
            return result
        msg = f"Cannot interpret {value!r} as capabilities"
        raise ValueError(msg)

    def to_wire(self) -> str:
        return " ".join(
            member.name.lower()
            for member in type(self)
            if member.value and member in self and member.name
        )


CapabilitiesField = Annotated[
    Capabilities,
    PlainValidator(Capabilities.parse),
    PlainSerializer(Capabilities.to_wire, return_type=str),
]


class Grant(ParcelModel):
    id: GrantId
    created_at: datetime
    granter: IdentityId
    # An identity ID, or ``"everyone"``.
    grantee: str
    condition: Condition | None = None
    capabilities: CapabilitiesField = Capabilities.READ
    permission: PermissionId | None = None


class GrantCreateParams(ParcelModel):
    grantee: str
    condition: Condition | None = None
    capabilities: CapabilitiesField = Capabilities.READ


class ListGrantsFilter(PageParams):
    granter: IdentityId | None = None
    grantee: str | None = None


class GrantsAPI(ResourceAPI):
    """Operations on ``/grants``."""

    @traced_async("parcel.grants.create")
    async def create(self, params: GrantCreateParams | dict[str, Any]) -> Grant:
        params = coerce(GrantCreateParams, params)
        require_id(params.grantee, "grantee")
        data = await self._http.post("grants", json=params.to_wire())
        return Grant.model_validate(data)

    @traced_async("parcel.grants.get", record_ids=True)
    async def get(self, grant_id: GrantId) -> Grant:
        data = await self._http.get(f"grants/{require_id(grant_id, 'grant_id')}")
        return Grant.model_validate(data)

    @traced_async("parcel.grants.list")
    async def list(
        self,
        params: ListGrantsFilter | dict[str, Any] | None = None,
    ) -> Page[Grant]:
        query = coerce(ListGrantsFilter, params)
        data = await self._http.get("grants", params=query.to_query())
        return Page[Grant].model_validate(data)

    @traced_async("parcel.grants.delete", record_ids=True)
    async def delete(self, grant_id: GrantId) -> None:
        await self._http.delete(f"grants/{require_id(grant_id, 'grant_id')}")
