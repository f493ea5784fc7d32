"""Shared plumbing for resource modules."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

if TYPE_CHECKING:
    from ..http import HttpClient

M = TypeVar("M", bound=BaseModel)


def require_id(value: str | None, name: str) -> str:
    """Return ``value`` URL-quoted for use as a path segment.

    Raises:
        ValidationError: If the identifier is missing or blank.
    """
    if value is None or not str(value).strip():
        msg = f"{name} is required"
        raise ValidationError(msg, field=name)
    return quote(str(value), safe="")


def coerce(model: type[M], value: M | dict[str, Any] | None) -> M:
    """Accept either a params model or a plain mapping shaped like one."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value or {})
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        msg = f"Invalid {model.__name__}: {error['msg']}"
        raise ValidationError(msg, field=field) from e


class ResourceAPI:
    """Base for resource modules; holds the shared HTTP client."""

    def __init__(self, http: HttpClient) -> None:
        self._http = http
