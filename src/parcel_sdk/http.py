"""Authenticated HTTP client for the Parcel platform API.

Attaches the current bearer token to every request, maps error responses to
``ApiError`` and performs a single refresh-and-retry on 401.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import httpx

from .core.errors import ErrorFactory
from .core.http_executor import AsyncHTTPExecutor
from .streams import Download
from .telemetry import get_logger

if TYPE_CHECKING:
    from .config import ParcelConfig, RetryConfig
    from .token import TokenProvider


def create_async_http_client(config: ParcelConfig) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        config: SDK configuration.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        base_url=config.api_url_str,
        timeout=httpx.Timeout(
            connect=config.connect_timeout,
            read=config.timeout,
            write=config.timeout,
            pool=config.timeout,
        ),
        headers={
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        },
        proxy=config.proxy,
        transport=config.transport,
        follow_redirects=False,
    )


def clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop ``None`` values and render booleans the way the API expects."""
    if not params:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned or None


def decode_body(response: httpx.Response) -> Any:
    """Decode a JSON success body; empty bodies decode to ``None``."""
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


class HttpClient:
    """Performs authenticated calls against the platform API."""

    def __init__(self, token_provider: TokenProvider, config: ParcelConfig) -> None:
        """Initialize HTTP client.

        Args:
            token_provider: Source of bearer tokens.
            config: SDK configuration.
        """
        self.config = config
        self._http = create_async_http_client(config)
        self._executor = AsyncHTTPExecutor(self._http)
        self._token_provider = token_provider
        self._logger = get_logger()
        token_provider.bind(self)

    @property
    def api_url(self) -> str:
        return self.config.api_url_str

    @property
    def token_provider(self) -> TokenProvider:
        return self._token_provider

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: bytes | AsyncIterator[bytes] | None = None,
        headers: dict[str, str] | None = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send an authenticated request.

        Args:
            method: HTTP method.
            path: Path relative to the API URL.
            params: Query parameters; ``None`` values are dropped.
            json: JSON body.
            content: Raw body, as bytes or an async byte iterator.
            headers: Extra headers.
            stream: Return without reading the response body.

        Returns:
            A 2xx response.

        Raises:
            ApiError: On a 4xx/5xx response.
            TransportError: If no response was received.
        """
        # A one-shot body cannot be sent a second time after a 401.
        replayable = content is None or isinstance(content, bytes)
        retried = False

        while True:
            token = await self._token_provider.get_token()
            request = self._executor.build_request(
                method,
                path,
                params=clean_params(params),
                json=json,
                content=content,
                headers={**(headers or {}), "Authorization": f"Bearer {token.value}"},
            )
            response = await self._executor.send(request, stream=stream)

            if response.is_success:
                return response

            if (
                response.status_code == 401
                and not retried
                and replayable
                and self._token_provider.can_refresh
            ):
                await response.aclose()
                self._logger.info("Received 401, refreshing token", method=method, path=path)
                await self._token_provider.invalidate(token)
                retried = True
                continue

            if stream:
                await response.aread()
                await response.aclose()
            error = ErrorFactory.from_http_response(response)
            self._logger.warning(
                "Request rejected",
                method=method,
                path=path,
                status=error.status_code,
                code=error.code,
                correlation_id=error.correlation_id,
            )
            raise error

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        response = await self.request("GET", path, params=params)
        return decode_body(response)

    async def post(
        self,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.request("POST", path, json=json, params=params)
        return decode_body(response)

    async def put(
        self,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.request("PUT", path, json=json, params=params)
        return decode_body(response)

    async def patch(
        self,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.request("PATCH", path, json=json, params=params)
        return decode_body(response)

    async def delete(self, path: str, *, params: dict[str, Any] | None = None) -> None:
        await self.request("DELETE", path, params=params)

    async def upload(
        self,
        path: str,
        body: bytes | AsyncIterator[bytes],
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a raw byte body and decode the JSON response."""
        response = await self.request(
            "POST",
            path,
            params=params,
            content=body,
            headers={"Content-Type": "application/octet-stream"},
        )
        return decode_body(response)

    def download(self, path: str, *, params: dict[str, Any] | None = None) -> Download:
        """Prepare a streamed download. Nothing is sent until the first read."""

        async def open_response() -> httpx.Response:
            return await self.request(
                "GET",
                path,
                params=params,
                headers={"Accept": "application/octet-stream"},
                stream=True,
            )

        return Download(open_response)

    async def exchange_token(
        self,
        url: str,
        data: dict[str, Any],
        retry_config: RetryConfig,
    ) -> httpx.Response:
        """POST a form to the token endpoint without a bearer token.

        Transient failures are retried per ``retry_config``; any other
        response is returned for the token provider to interpret.
        """
        return await self._executor.execute_with_retry(
            "POST",
            url,
            retry_config,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
