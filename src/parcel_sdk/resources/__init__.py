"""Resource modules, one per platform collection."""

from .app import App, AppCreateParams, AppsAPI, AppUpdateParams, ListAppsFilter
from .client import (
    BackendClient,
    BackendClientCreateParams,
    BackendClientUpdateParams,
    Client,
    ClientCreateParams,
    ClientsAPI,
    ClientType,
    ClientUpdateParams,
    FrontendClient,
    FrontendClientCreateParams,
    FrontendClientUpdateParams,
    ListClientsFilter,
    ServiceClient,
    ServiceClientCreateParams,
    ServiceClientUpdateParams,
)
from .compute import (
    ComputeAPI,
    InputDocumentSpec,
    Job,
    JobPhase,
    JobSpec,
    JobStatus,
    JobStatusReport,
    ListJobsFilter,
    OutputDocument,
    OutputDocumentSpec,
)
from .document import (
    AccessEvent,
    Document,
    DocumentDetails,
    DocumentSearchParams,
    DocumentsAPI,
    DocumentUpdateParams,
    DocumentUploadParams,
    ListAccessLogFilter,
    Upload,
)
from .grant import EVERYONE, Capabilities, Grant, GrantCreateParams, GrantsAPI, ListGrantsFilter
from .identity import (
    GrantedPermission,
    IdentitiesAPI,
    Identity,
    IdentityCreateParams,
    IdentityTokenVerifier,
    IdentityUpdateParams,
)
from .permission import GrantSpec, Permission, PermissionCreateParams, PermissionsAPI

__all__ = [
    "AccessEvent",
    "App",
    "AppCreateParams",
    "AppUpdateParams",
    "AppsAPI",
    "BackendClient",
    "BackendClientCreateParams",
    "BackendClientUpdateParams",
    "Capabilities",
    "Client",
    "ClientCreateParams",
    "ClientType",
    "ClientUpdateParams",
    "ClientsAPI",
    "ComputeAPI",
    "Document",
    "DocumentDetails",
    "DocumentSearchParams",
    "DocumentUpdateParams",
    "DocumentUploadParams",
    "DocumentsAPI",
    "EVERYONE",
    "FrontendClient",
    "FrontendClientCreateParams",
    "FrontendClientUpdateParams",
    "Grant",
    "GrantCreateParams",
    "GrantSpec",
    "GrantedPermission",
    "GrantsAPI",
    "IdentitiesAPI",
    "Identity",
    "IdentityCreateParams",
    "IdentityTokenVerifier",
    "IdentityUpdateParams",
    "InputDocumentSpec",
    "Job",
    "JobPhase",
    "JobSpec",
    "JobStatus",
    "JobStatusReport",
    "ListAccessLogFilter",
    "ListAppsFilter",
    "ListClientsFilter",
    "ListGrantsFilter",
    "ListJobsFilter",
    "OutputDocument",
    "OutputDocumentSpec",
    "Permission",
    "PermissionCreateParams",
    "PermissionsAPI",
    "ServiceClient",
    "ServiceClientCreateParams",
    "ServiceClientUpdateParams",
    "Upload",
]
