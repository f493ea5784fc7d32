"""
Shared test fixtures for Parcel SDK tests.

Provides signing keys, fast retry settings and an in-memory platform that
speaks the Parcel wire format over ``httpx.MockTransport``.
"""

from __future__ import annotations

import itertools
import json
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from jwt import algorithms

from parcel_sdk import Parcel
from parcel_sdk.config import ParcelConfig, RetryConfig, TokenConfig

API_URL = "https://api.parcel.test/v1"
TOKEN_ENDPOINT = "https://auth.parcel.test/oauth/token"


def generate_private_jwk(kid: str = "test-key") -> dict[str, Any]:
    """Generate a fresh P-256 private JWK."""
    key = ec.generate_private_key(ec.SECP256R1())
    jwk = algorithms.ECAlgorithm.to_jwk(key, as_dict=True)
    jwk.update(kid=kid, alg="ES256", use="sig")
    return jwk


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={"error": {"code": code, "message": message}},
        headers={"X-Request-Id": f"req-{code}"},
    )


def _paginate(request: httpx.Request, items: list[dict[str, Any]]) -> httpx.Response:
    size = int(request.url.params.get("pageSize", "100"))
    start = int(request.url.params.get("pageToken", "0"))
    end = start + size
    body: dict[str, Any] = {"results": items[start:end]}
    if end < len(items):
        body["nextPageToken"] = str(end)
    return httpx.Response(200, json=body)


class FakePlatform:
    """In-memory stand-in for the token endpoint and the platform API.

    Identities are named after the principal (or client ID) that signed in.
    Access tokens map to identities; ``revoke_tokens`` forgets all of them so
    the next API call answers 401.
    """

    def __init__(self) -> None:
        self.expires_in = 3600
        # Statuses the token endpoint returns (in order) before succeeding.
        self.token_failures: list[int] = []
        self.token_requests: list[dict[str, str]] = []
        self.api_requests: list[httpx.Request] = []

        self.tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.documents: dict[str, dict[str, Any]] = {}
        self.contents: dict[str, bytes] = {}
        self.grants: dict[str, dict[str, Any]] = {}
        self.jobs: dict[str, dict[str, Any]] = {}
        self.access_log: list[dict[str, Any]] = []
        self._ids = itertools.count(1)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids):04d}"

    def issue_refresh_token(self, identity: str) -> str:
        token = self.next_id("rt-")
        self.refresh_tokens[token] = identity
        return token

    def revoke_tokens(self) -> None:
        self.tokens.clear()

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_ENDPOINT:
            return self._token(request)
        self.api_requests.append(request)
        return self._api(request)

    # -- Token endpoint --------------------------------------------------------

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.token_requests.append(form)
        if self.token_failures:
            status = self.token_failures.pop(0)
            return httpx.Response(status, json={"error": "temporarily_unavailable"})

        grant_type = form.get("grant_type")
        if grant_type == "urn:ietf:params:oauth:grant-type:jwt-bearer":
            claims = jwt.decode(form["assertion"], options={"verify_signature": False})
            identity = claims["sub"]
        elif grant_type == "client_credentials":
            identity = form["client_id"]
        elif grant_type == "refresh_token":
            identity = self.refresh_tokens.pop(form.get("refresh_token", ""), "")
            if not identity:
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Unknown refresh token"},
                )
        else:
            return httpx.Response(400, json={"error": "unsupported_grant_type"})

        access_token = self.next_id("at-")
        self.tokens[access_token] = identity
        body: dict[str, Any] = {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": self.expires_in,
        }
        if grant_type == "refresh_token":
            body["refresh_token"] = self.issue_refresh_token(identity)
        return httpx.Response(200, json=body)

    # -- Platform API ----------------------------------------------------------

    def _api(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("Authorization", "")
        caller = self.tokens.get(auth.removeprefix("Bearer "))
        if caller is None:
            return _error(401, "unauthorized", "Invalid or expired access token")

        path = request.url.path.removeprefix("/v1/")
        routes: list[tuple[str, str, Callable[..., httpx.Response]]] = [
            ("GET", r"identities/me", self._current_identity),
            ("POST", r"documents", self._upload),
            ("GET", r"documents", self._search),
            ("GET", r"documents/(?P<doc>[^/]+)", self._get_document),
            ("DELETE", r"documents/(?P<doc>[^/]+)", self._delete_document),
            ("GET", r"documents/(?P<doc>[^/]+)/download", self._download),
            ("GET", r"documents/(?P<doc>[^/]+)/history", self._history),
            ("POST", r"grants", self._create_grant),
            ("GET", r"grants", self._list_grants),
            ("DELETE", r"grants/(?P<grant>[^/]+)", self._delete_grant),
            ("POST", r"compute/jobs", self._submit_job),
            ("GET", r"compute/jobs", self._list_jobs),
            ("GET", r"compute/jobs/(?P<job>[^/]+)", self._get_job),
            ("GET", r"compute/jobs/(?P<job>[^/]+)/status", self._job_status),
            ("DELETE", r"compute/jobs/(?P<job>[^/]+)", self._terminate_job),
        ]
        for method, pattern, handler in routes:
            match = re.fullmatch(pattern, path)
            if match and request.method == method:
                return handler(request, caller, **match.groupdict())
        return _error(404, "not_found", f"No route for {request.method} {path}")

    def _current_identity(self, request: httpx.Request, caller: str) -> httpx.Response:
        return httpx.Response(
            200, json={"id": caller, "createdAt": _now(), "tokenVerifiers": []}
        )

    def _can_read(self, caller: str, document: dict[str, Any]) -> bool:
        if document["owner"] == caller:
            return True
        for grant in self.grants.values():
            if grant["granter"] != document["owner"]:
                continue
            if grant["grantee"] not in (caller, "everyone"):
                continue
            condition = grant.get("condition")
            if condition is None:
                return True
            allowed = condition.get("document.id", {}).get("$in", [])
            if document["id"] in allowed:
                return True
        return False

    def _readable(self, caller: str, doc: str) -> dict[str, Any] | httpx.Response:
        document = self.documents.get(doc)
        if document is None:
            return _error(404, "not_found", f"Document {doc} not found")
        if not self._can_read(caller, document):
            return _error(403, "forbidden", "Access denied")
        return document

    def _upload(self, request: httpx.Request, caller: str) -> httpx.Response:
        params = request.url.params
        doc_id = self.next_id("D")
        details = json.loads(params["details"]) if "details" in params else {}
        document: dict[str, Any] = {
            "id": doc_id,
            "createdAt": _now(),
            "creator": caller,
            "owner": params.get("owner", caller),
            "size": len(request.content),
            "details": details,
        }
        if "toApp" in params:
            document["toApp"] = params["toApp"]
        self.documents[doc_id] = document
        self.contents[doc_id] = request.content
        return httpx.Response(201, json=document)

    def _search(self, request: httpx.Request, caller: str) -> httpx.Response:
        owner = request.url.params.get("owner")
        items = [
            d
            for d in self.documents.values()
            if self._can_read(caller, d) and (owner is None or d["owner"] == owner)
        ]
        return _paginate(request, items)

    def _get_document(self, request: httpx.Request, caller: str, doc: str) -> httpx.Response:
        document = self._readable(caller, doc)
        if isinstance(document, httpx.Response):
            return document
        self.access_log.append({"createdAt": _now(), "document": doc, "accessor": caller})
        return httpx.Response(200, json=document)

    def _delete_document(self, request: httpx.Request, caller: str, doc: str) -> httpx.Response:
        document = self.documents.get(doc)
        if document is None:
            return _error(404, "not_found", f"Document {doc} not found")
        if document["owner"] != caller:
            return _error(403, "forbidden", "Only the owner may delete a document")
        del self.documents[doc]
        del self.contents[doc]
        return httpx.Response(204)

    def _download(self, request: httpx.Request, caller: str, doc: str) -> httpx.Response:
        document = self._readable(caller, doc)
        if isinstance(document, httpx.Response):
            return document
        self.access_log.append({"createdAt": _now(), "document": doc, "accessor": caller})
        return httpx.Response(
            200,
            content=self.contents[doc],
            headers={"Content-Type": "application/octet-stream"},
        )

    def _history(self, request: httpx.Request, caller: str, doc: str) -> httpx.Response:
        document = self.documents.get(doc)
        if document is None or document["owner"] != caller:
            return _error(404, "not_found", f"Document {doc} not found")
        return _paginate(request, [e for e in self.access_log if e["document"] == doc])

    def _create_grant(self, request: httpx.Request, caller: str) -> httpx.Response:
        body = json.loads(request.content)
        grant = {
            "id": self.next_id("G"),
            "createdAt": _now(),
            "granter": caller,
            "grantee": body["grantee"],
            "condition": body.get("condition"),
            "capabilities": body.get("capabilities", "read"),
        }
        self.grants[grant["id"]] = grant
        return httpx.Response(201, json=grant)

    def _list_grants(self, request: httpx.Request, caller: str) -> httpx.Response:
        items = [g for g in self.grants.values() if caller in (g["granter"], g["grantee"])]
        return _paginate(request, items)

    def _delete_grant(self, request: httpx.Request, caller: str, grant: str) -> httpx.Response:
        if self.grants.get(grant, {}).get("granter") != caller:
            return _error(404, "not_found", f"Grant {grant} not found")
        del self.grants[grant]
        return httpx.Response(204)

    def _submit_job(self, request: httpx.Request, caller: str) -> httpx.Response:
        spec = json.loads(request.content)
        job = {
            "id": self.next_id("J"),
            "spec": spec,
            "status": {"phase": "Pending", "outputDocuments": []},
        }
        self.jobs[job["id"]] = job
        return httpx.Response(201, json=job)

    def _list_jobs(self, request: httpx.Request, caller: str) -> httpx.Response:
        return _paginate(request, list(self.jobs.values()))

    def _get_job(self, request: httpx.Request, caller: str, job: str) -> httpx.Response:
        if job not in self.jobs:
            return _error(404, "not_found", f"Job {job} not found")
        return httpx.Response(200, json=self.jobs[job])

    def _job_status(self, request: httpx.Request, caller: str, job: str) -> httpx.Response:
        if job not in self.jobs:
            return _error(404, "not_found", f"Job {job} not found")
        return httpx.Response(200, json={"id": job, "status": self.jobs[job]["status"]})

    def _terminate_job(self, request: httpx.Request, caller: str, job: str) -> httpx.Response:
        if self.jobs.pop(job, None) is None:
            return _error(404, "not_found", f"Job {job} not found")
        return httpx.Response(204)


@pytest.fixture
def private_jwk() -> dict[str, Any]:
    """Provide a P-256 private JWK."""
    return generate_private_jwk()


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Provide a retry policy that never sleeps."""
    return RetryConfig(
        max_retries=2,
        initial_delay=0.0,
        max_delay=0.0,
        exponential_base=1.0,
        jitter=0.0,
    )


@pytest.fixture
def token_config(fast_retry: RetryConfig) -> TokenConfig:
    """Provide token settings with instant retries."""
    return TokenConfig(refresh_margin=60, assertion_lifetime=60, retry=fast_retry)


@pytest.fixture
def platform() -> FakePlatform:
    """Provide a fresh in-memory platform."""
    return FakePlatform()


@pytest.fixture
def make_config(token_config: TokenConfig) -> Callable[[httpx.AsyncBaseTransport], ParcelConfig]:
    """Provide a factory for configs routed through a mock transport."""

    def factory(transport: httpx.AsyncBaseTransport) -> ParcelConfig:
        return ParcelConfig(
            api_url=API_URL,
            token_endpoint=TOKEN_ENDPOINT,
            transport=transport,
            token=token_config,
        )

    return factory


@pytest.fixture
def make_parcel(
    platform: FakePlatform,
    make_config: Callable[[httpx.AsyncBaseTransport], ParcelConfig],
) -> Callable[[Any], Parcel]:
    """Provide a factory for clients connected to the in-memory platform."""

    def factory(source: Any) -> Parcel:
        return Parcel(source, make_config(platform.transport))

    return factory


@pytest.fixture
def self_issued(private_jwk: dict[str, Any]) -> Callable[[str], dict[str, Any]]:
    """Provide a factory for self-issued credential mappings."""

    def factory(principal: str) -> dict[str, Any]:
        return {"principal": principal, "private_key": private_jwk}

    return factory
