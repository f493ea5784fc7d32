"""Parcel SDK client.

``Parcel`` is the entry point: it turns a credential source into a token
provider, owns the HTTP client, and exposes every platform operation.

Example:
    async with Parcel(ClientCredentials(client_id=..., private_key=...)) as parcel:
        me = await parcel.get_current_identity()
        document = await parcel.upload_document(b"hello", {"owner": me.id})
"""

from __future__ import annotations

import asyncio
from typing import Any, Self

from .config import ParcelConfig
from .http import HttpClient
from .models import Page, PageParams
from .resources.app import App, AppCreateParams, AppsAPI, AppUpdateParams, ListAppsFilter
from .resources.client import (
    BackendClient,
    Client,
    ClientCreateParams,
    ClientsAPI,
    ClientUpdateParams,
    FrontendClient,
    ListClientsFilter,
    ServiceClient,
)
from .resources.compute import ComputeAPI, Job, JobSpec, JobStatusReport, ListJobsFilter
from .resources.document import (
    AccessEvent,
    Document,
    DocumentSearchParams,
    DocumentsAPI,
    DocumentUpdateParams,
    DocumentUploadParams,
    ListAccessLogFilter,
    Upload,
)
from .resources.grant import Grant, GrantCreateParams, GrantsAPI, ListGrantsFilter
from .resources.identity import (
    GrantedPermission,
    IdentitiesAPI,
    Identity,
    IdentityCreateParams,
    IdentityUpdateParams,
)
from .resources.permission import Permission, PermissionCreateParams, PermissionsAPI
from .streams import Download, Storable
from .telemetry import get_logger
from .token import TokenProvider, TokenSource
from .types import AppId, ClientId, DocumentId, GrantId, IdentityId, JobId, PermissionId


class Parcel:
    """Asynchronous client for the Parcel platform API."""

    def __init__(self, token_source: TokenSource, config: ParcelConfig | None = None) -> None:
        """Initialize the client.

        Args:
            token_source: A static token, credential source, mapping shaped
                like one, or a ready-made ``TokenProvider``.
            config: SDK configuration. Defaults to the public platform.

        Raises:
            ConfigurationError: If the credential source is malformed.
        """
        self.config = config or ParcelConfig()
        self._token_provider = TokenProvider.from_source(
            token_source,
            config=self.config.token,
            token_endpoint=self.config.token_endpoint_str,
        )
        self._http = HttpClient(self._token_provider, self.config)
        self._logger = get_logger()

        self._identities = IdentitiesAPI(self._http)
        self._documents = DocumentsAPI(self._http)
        self._apps = AppsAPI(self._http)
        self._permissions = PermissionsAPI(self._http)
        self._clients = ClientsAPI(self._http)
        self._grants = GrantsAPI(self._http)
        self._compute = ComputeAPI(self._http)

        self._current_identity: Identity | None = None
        self._identity_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._http.aclose()

    @property
    def api_url(self) -> str:
        return self._http.api_url

    @property
    def token_provider(self) -> TokenProvider:
        return self._token_provider

    # -- Identities ------------------------------------------------------------

    async def create_identity(self, params: IdentityCreateParams | dict[str, Any]) -> Identity:
        return await self._identities.create(params)

    async def get_current_identity(self) -> Identity:
        """Return the authenticated identity, fetching it on first use."""
        async with self._identity_lock:
            if self._current_identity is None:
                self._current_identity = await self._identities.current()
                self._logger.debug("Resolved current identity", identity_id=self._current_identity.id)
            return self._current_identity

    async def get_identity(self, identity_id: IdentityId) -> Identity:
        return await self._identities.get(identity_id)

    async def update_identity(
        self,
        identity_id: IdentityId,
        update: IdentityUpdateParams | dict[str, Any],
    ) -> Identity:
        identity = await self._identities.update(identity_id, update)
        async with self._identity_lock:
            if self._current_identity is not None and self._current_identity.id == identity.id:
                self._current_identity = identity
        return identity

    async def delete_identity(self, identity_id: IdentityId) -> None:
        await self._identities.delete(identity_id)
        async with self._identity_lock:
            if self._current_identity is not None and self._current_identity.id == identity_id:
                self._current_identity = None

    async def list_granted_permissions(
        self,
        identity_id: IdentityId,
        params: PageParams | dict[str, Any] | None = None,
    ) -> Page[GrantedPermission]:
        return await self._identities.list_granted_permissions(identity_id, params)

    async def grant_permission(self, identity_id: IdentityId, permission_id: PermissionId) -> None:
        await self._identities.grant_permission(identity_id, permission_id)

    async def revoke_permission(self, identity_id: IdentityId, permission_id: PermissionId) -> None:
        await self._identities.revoke_permission(identity_id, permission_id)

    # -- Documents -------------------------------------------------------------

    def upload_document(
        self,
        data: Storable,
        params: DocumentUploadParams | dict[str, Any] | None = None,
    ) -> Upload:
        """Prepare an upload of ``data``; await the returned handle for the ``Document``.

        Nothing is sent until the handle is awaited. With a ``ByteStream``
        source, await the handle concurrently with the producer (for example
        with ``asyncio.gather``): a producer that writes more than
        ``max_buffered_chunks`` before the upload is awaited blocks forever.
        """
        return self._documents.upload(data, params)

    async def get_document(self, document_id: DocumentId) -> Document:
        return await self._documents.get(document_id)

    async def search_documents(
        self,
        params: DocumentSearchParams | dict[str, Any] | None = None,
    ) -> Page[Document]:
        return await self._documents.search(params)

    def download_document(self, document_id: DocumentId) -> Download:
        return self._documents.download(document_id)

    async def get_document_history(
        self,
        document_id: DocumentId,
        params: ListAccessLogFilter | dict[str, Any] | None = None,
    ) -> Page[AccessEvent]:
        return await self._documents.history(document_id, params)

    async def update_document(
        self,
        document_id: DocumentId,
        update: DocumentUpdateParams | dict[str, Any],
    ) -> Document:
        return await self._documents.update(document_id, update)

    async def delete_document(self, document_id: DocumentId) -> None:
        await self._documents.delete(document_id)

    # -- Apps ------------------------------------------------------------------

    async def create_app(self, params: AppCreateParams | dict[str, Any]) -> App:
        return await self._apps.create(params)

    async def get_app(self, app_id: AppId) -> App:
        return await self._apps.get(app_id)

    async def list_apps(self, params: ListAppsFilter | dict[str, Any] | None = None) -> Page[App]:
        return await self._apps.list(params)

    async def update_app(self, app_id: AppId, update: AppUpdateParams | dict[str, Any]) -> App:
        return await self._apps.update(app_id, update)

    async def delete_app(self, app_id: AppId) -> None:
        await self._apps.delete(app_id)

    # -- Permissions -----------------------------------------------------------

    async def create_permission(
        self,
        app_id: AppId,
        params: PermissionCreateParams | dict[str, Any],
    ) -> Permission:
        return await self._permissions.create(app_id, params)

    async def list_permissions(
        self,
        app_id: AppId,
        params: PageParams | dict[str, Any] | None = None,
    ) -> Page[Permission]:
        return await self._permissions.list(app_id, params)

    async def delete_permission(self, app_id: AppId, permission_id: PermissionId) -> None:
        await self._permissions.delete(app_id, permission_id)

    # -- Clients ---------------------------------------------------------------

    async def create_client(
        self,
        app_id: AppId,
        params: ClientCreateParams | dict[str, Any],
    ) -> FrontendClient | BackendClient | ServiceClient:
        return await self._clients.create(app_id, params)

    async def get_client(
        self,
        app_id: AppId,
        client_id: ClientId,
    ) -> FrontendClient | BackendClient | ServiceClient:
        return await self._clients.get(app_id, client_id)

    async def list_clients(
        self,
        app_id: AppId,
        params: ListClientsFilter | dict[str, Any] | None = None,
    ) -> Page[Client]:
        return await self._clients.list(app_id, params)

    async def update_client(
        self,
        app_id: AppId,
        client_id: ClientId,
        update: ClientUpdateParams | dict[str, Any],
    ) -> FrontendClient | BackendClient | ServiceClient:
        return await self._clients.update(app_id, client_id, update)

    async def delete_client(self, app_id: AppId, client_id: ClientId) -> None:
        await self._clients.delete(app_id, client_id)

    # -- Grants ----------------------------------------------------------------

    async def create_grant(self, params: GrantCreateParams | dict[str, Any]) -> Grant:
        return await self._grants.create(params)

    async def get_grant(self, grant_id: GrantId) -> Grant:
        return await self._grants.get(grant_id)

    async def list_grants(
        self,
        params: ListGrantsFilter | dict[str, Any] | None = None,
    ) -> Page[Grant]:
        return await self._grants.list(params)

    async def delete_grant(self, grant_id: GrantId) -> None:
        await self._grants.delete(grant_id)

    # -- Compute ---------------------------------------------------------------

    async def submit_job(self, spec: JobSpec | dict[str, Any]) -> Job:
        return await self._compute.submit_job(spec)

    async def list_jobs(self, params: ListJobsFilter | dict[str, Any] | None = None) -> Page[Job]:
        return await self._compute.list_jobs(params)

    async def get_job(self, job_id: JobId) -> Job:
        return await self._compute.get_job(job_id)

    async def get_job_status(self, job_id: JobId) -> JobStatusReport:
        """Fetch only the job's status; suited to polling."""
        return await self._compute.get_job_status(job_id)

    async def terminate_job(self, job_id: JobId) -> None:
        """Schedule the job for termination. Unknown or finished jobs are not an error."""
        await self._compute.terminate_job(job_id)
