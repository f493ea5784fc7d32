"""Documents: opaque byte content with owner-controlled access."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Generator
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from ..errors import TransportError
from ..models import Page, PageParams, ParcelModel
from ..streams import Download, Storable, is_replayable, iter_storable
from ..telemetry import get_logger, trace_operation, traced_async
from ..types import AppId, DocumentId, IdentityId
from .base import ResourceAPI, coerce, require_id


class DocumentDetails(ParcelModel):
    """Free-form metadata stored alongside a document."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    tags: list[str] | None = None


class Document(ParcelModel):
    id: DocumentId
    created_at: datetime
    creator: IdentityId
    owner: IdentityId
    size: int = 0
    details: DocumentDetails = Field(default_factory=DocumentDetails)
    # Set when the document was uploaded on behalf of an app.
    to_app: AppId | None = None


class DocumentUploadParams(ParcelModel):
    owner: IdentityId | None = None
    to_app: AppId | None = None
    details: DocumentDetails | None = None

    def to_query(self) -> dict[str, Any]:
        """Render as query parameters; ``details`` travels as a JSON string."""
        query: dict[str, Any] = {"owner": self.owner, "toApp": self.to_app}
        if self.details is not None:
            query["details"] = json.dumps(self.details.to_wire(), separators=(",", ":"))
        return query


class DocumentUpdateParams(ParcelModel):
    owner: IdentityId | None = None
    details: DocumentDetails | None = None


class DocumentSearchParams(PageParams):
    owner: IdentityId | None = None
    creator: IdentityId | None = None
    tags: list[str] | None = None
    to_app: AppId | None = None

    def to_query(self) -> dict[str, Any]:
        query = self.to_wire()
        if self.tags is not None:
            query["tags"] = ",".join(self.tags)
        return query


class AccessEvent(ParcelModel):
    """A single access to a document, as recorded by the platform."""

    created_at: datetime
    document: DocumentId
    accessor: IdentityId


class ListAccessLogFilter(PageParams):
    accessor: IdentityId | None = None
    after: datetime | None = None
    before: datetime | None = None


class Upload:
    """Handle for an in-progress document upload.

    The content is sent the first time the handle is awaited, via
    ``await upload`` or ``await upload.finished()``. Later awaits return the
    same ``Document`` (or raise the same error) without re-sending.

    If the awaiting task is cancelled mid-send, an in-memory body is sent
    again on the next await. A stream or file body has been partly consumed
    by then, so later awaits raise ``TransportError``.
    """

    def __init__(self, api: DocumentsAPI, data: Storable, params: DocumentUploadParams) -> None:
        self._api = api
        self._params = params
        if is_replayable(data):
            self._body: Any = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        else:
            self._body = iter_storable(data)
        self._lock = asyncio.Lock()
        self._outcome: Document | Exception | None = None

    @property
    def done(self) -> bool:
        return self._outcome is not None

    async def finished(self) -> Document:
        async with self._lock:
            outcome = self._outcome
            if outcome is None:
                outcome = self._outcome = await self._send()

        if isinstance(outcome, Document):
            return outcome
        raise outcome

    async def _send(self) -> Document | Exception:
        try:
            outcome: Document | Exception = await self._api._send_upload(self._body, self._params)
        except asyncio.CancelledError:
            if not isinstance(self._body, bytes):
                self._outcome = TransportError("Upload was cancelled and its stream cannot be re-sent")
                self._body = None
            raise
        except Exception as e:
            outcome = e
        self._body = None
        return outcome

    def __await__(self) -> Generator[Any, None, Document]:
        return self.finished().__await__()


class DocumentsAPI(ResourceAPI):
    """Operations on ``/documents``."""

    def upload(
        self,
        data: Storable,
        params: DocumentUploadParams | dict[str, Any] | None = None,
    ) -> Upload:
        """Prepare an upload of ``data``.

        The request is sent when the returned ``Upload`` is first awaited, so
        a ``ByteStream`` producer must run concurrently with that await.

        Raises:
            TypeError: If ``data`` is not a supported byte source.
        """
        return Upload(self, data, coerce(DocumentUploadParams, params))

    async def _send_upload(self, body: Any, params: DocumentUploadParams) -> Document:
        with trace_operation(
            "parcel.documents.upload",
            attributes={"owner": params.owner, "to_app": params.to_app},
        ):
            data = await self._http.upload("documents", body, params=params.to_query())
            document = Document.model_validate(data)
        get_logger().debug("Document uploaded", document_id=document.id, size=document.size)
        return document

    @traced_async("parcel.documents.get", record_ids=True)
    async def get(self, document_id: DocumentId) -> Document:
        data = await self._http.get(f"documents/{require_id(document_id, 'document_id')}")
        return Document.model_validate(data)

    @traced_async("parcel.documents.search")
    async def search(
        self,
        params: DocumentSearchParams | dict[str, Any] | None = None,
    ) -> Page[Document]:
        query = coerce(DocumentSearchParams, params)
        data = await self._http.get("documents", params=query.to_query())
        return Page[Document].model_validate(data)

    def download(self, document_id: DocumentId) -> Download:
        """Stream a document's content. Nothing is sent until the first read."""
        return self._http.download(
            f"documents/{require_id(document_id, 'document_id')}/download"
        )

    @traced_async("parcel.documents.history", record_ids=True)
    async def history(
        self,
        document_id: DocumentId,
        params: ListAccessLogFilter | dict[str, Any] | None = None,
    ) -> Page[AccessEvent]:
        path = f"documents/{require_id(document_id, 'document_id')}/history"
        query = coerce(ListAccessLogFilter, params)
        data = await self._http.get(path, params=query.to_query())
        return Page[AccessEvent].model_validate(data)

    @traced_async("parcel.documents.update", record_ids=True)
    async def update(
        self,
        document_id: DocumentId,
        update: DocumentUpdateParams | dict[str, Any],
    ) -> Document:
        path = f"documents/{require_id(document_id, 'document_id')}"
        update = coerce(DocumentUpdateParams, update)
        data = await self._http.put(path, json=update.to_wire())
        return Document.model_validate(data)

    @traced_async("parcel.documents.delete", record_ids=True)
    async def delete(self, document_id: DocumentId) -> None:
        await self._http.delete(f"documents/{require_id(document_id, 'document_id')}")
