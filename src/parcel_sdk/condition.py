"""Builders for grant conditions.

Conditions are JSON predicate documents evaluated by the platform when a
grant is checked, e.g. ``{"document.id": {"$in": ["..."]}}``.
"""

from __future__ import annotations

from collections.abc import Iterable

from .types import Condition, DocumentId, IdentityId


def condition_and(*conditions: Condition) -> Condition:
    return {"$and": list(conditions)}


def condition_or(*conditions: Condition) -> Condition:
    return {"$or": list(conditions)}


def condition_not(condition: Condition) -> Condition:
    return {"$not": condition}


def document_id_in(document_ids: Iterable[DocumentId]) -> Condition:
    """Match documents whose ID is one of ``document_ids``."""
    return {"document.id": {"$in": list(document_ids)}}


def document_owner_is(owner: IdentityId) -> Condition:
    return {"document.owner": {"$eq": owner}}


def tag_in(tags: Iterable[str], *, all_of: bool = False) -> Condition:
    """Match documents tagged with any (or, with ``all_of``, every) tag."""
    op = "$all" if all_of else "$any"
    return {"document.details.tags": {op: list(tags)}}
