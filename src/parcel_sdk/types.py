"""Identifier types for Parcel resources.

Identifiers are opaque strings assigned by the platform.
"""

from typing import Any, NewType

IdentityId = NewType("IdentityId", str)
DocumentId = NewType("DocumentId", str)
AppId = NewType("AppId", str)
ClientId = NewType("ClientId", str)
GrantId = NewType("GrantId", str)
PermissionId = NewType("PermissionId", str)
JobId = NewType("JobId", str)

# JSON predicate document evaluated server-side, e.g. {"document.id": {"$eq": "..."}}.
Condition = dict[str, Any]
