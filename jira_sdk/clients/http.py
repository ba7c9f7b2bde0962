"""
HTTP transport for the Jira REST API.

`HTTPClient` and `AsyncHTTPClient` wrap `httpx` behind the request pipeline.
They apply credentials, enforce the write policy, decode JSON and turn
non-2xx responses into typed `TransportError`s. Requests are never retried
here; inject an httpx transport that retries if needed.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..cancellation import CancellationToken
from ..exceptions import TransportError, WriteNotAllowedError, error_from_response
from ..models.types import DEFAULT_API_VERSION
from ..policies import Policies
from .pipeline import (
    REQUEST_ID_HEADER,
    AsyncMiddleware,
    AsyncPipeline,
    Middleware,
    Pipeline,
    ResponseContext,
    SDKRequest,
    SDKResponse,
    compose,
    compose_async,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_SERVER_PAGE_CAP = 100
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """
    Runtime configuration consumed by the HTTP layer and the paging coordinator.

    Attributes:
        base_url: Jira instance URL (e.g. https://jira.example.com)
        username: Username or account email for basic authentication
        api_token: API token (or password) for basic authentication
        bearer_token: Personal access token; takes precedence over basic auth
        api_version: REST API version segment
        page_size: Requested page size for searches
        server_page_cap: Largest page the server is known to honor
        timeout: Request timeout in seconds
        log_requests: Log every request/response at DEBUG level
        user_key: User attribute identifying people on the wire ("name" on
            Server/Data Center, "accountId" on Cloud)
        policies: Cross-cutting policies (e.g. read-only mode)
        transport: Custom httpx transport (sync client)
        async_transport: Custom httpx transport (async client)
    """

    base_url: str
    username: str | None = None
    api_token: str | None = None
    bearer_token: str | None = None
    api_version: str = DEFAULT_API_VERSION
    page_size: int = DEFAULT_PAGE_SIZE
    server_page_cap: int = DEFAULT_SERVER_PAGE_CAP
    timeout: float = 30.0
    log_requests: bool = False
    user_key: str = "name"
    policies: Policies = field(default_factory=Policies)
    transport: httpx.BaseTransport | None = None
    async_transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url is required")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.server_page_cap < 1:
            raise ValueError("server_page_cap must be >= 1")
        if self.user_key not in ("name", "accountId"):
            raise ValueError("user_key must be 'name' or 'accountId'")

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/rest/api/{self.api_version}"

    def url_for(self, path: str) -> str:
        return f"{self.api_url}/{path.lstrip('/')}"


# =============================================================================
# Middleware
# =============================================================================


def _authorization_header(config: ClientConfig) -> str | None:
    if config.bearer_token:
        return f"Bearer {config.bearer_token}"
    if config.username is not None and config.api_token is not None:
        raw = f"{config.username}:{config.api_token}".encode()
        return f"Basic {base64.b64encode(raw).decode('ascii')}"
    return None


def _apply_credentials(req: SDKRequest, authorization: str | None) -> None:
    if authorization is not None and req.header("Authorization") is None:
        req.headers.append(("Authorization", authorization))


def _check_write_policy(req: SDKRequest, policies: Policies) -> None:
    if req.write_intent and not policies.allows_writes:
        raise WriteNotAllowedError(req.method, req.url)


def _log_exchange(req: SDKRequest, response: SDKResponse, elapsed: float) -> None:
    logger.debug(
        "%s -> %s (%.3fs) request-id=%s",
        req.describe(),
        response.status_code,
        elapsed,
        response.request_id or "-",
    )


class CredentialsMiddleware:
    def __init__(self, config: ClientConfig):
        self._authorization = _authorization_header(config)

    def __call__(self, req: SDKRequest, next: Pipeline) -> SDKResponse:
        _apply_credentials(req, self._authorization)
        return next(req)


class WritePolicyMiddleware:
    def __init__(self, policies: Policies):
        self._policies = policies

    def __call__(self, req: SDKRequest, next: Pipeline) -> SDKResponse:
        _check_write_policy(req, self._policies)
        return next(req)


class RequestLoggingMiddleware:
    def __call__(self, req: SDKRequest, next: Pipeline) -> SDKResponse:
        started = time.monotonic()
        response = next(req)
        _log_exchange(req, response, time.monotonic() - started)
        return response


class AsyncCredentialsMiddleware:
    def __init__(self, config: ClientConfig):
        self._authorization = _authorization_header(config)

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> SDKResponse:
        _apply_credentials(req, self._authorization)
        return await next(req)


class AsyncWritePolicyMiddleware:
    def __init__(self, policies: Policies):
        self._policies = policies

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> SDKResponse:
        _check_write_policy(req, self._policies)
        return await next(req)


class AsyncRequestLoggingMiddleware:
    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> SDKResponse:
        started = time.monotonic()
        response = await next(req)
        _log_exchange(req, response, time.monotonic() - started)
        return response


# =============================================================================
# Shared helpers
# =============================================================================


def _build_request(
    config: ClientConfig,
    method: str,
    path: str,
    *,
    params: Mapping[str, Any] | None,
    json: Any | None,
    write_intent: bool | None,
) -> SDKRequest:
    method = method.upper()
    flat_params: list[tuple[str, str]] | None = None
    if params:
        flat_params = []
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                flat_params.append((key, ",".join(str(v) for v in value)))
            else:
                flat_params.append((key, str(value)))
    return SDKRequest(
        method=method,
        url=config.url_for(path),
        headers=[("Accept", "application/json")],
        params=flat_params,
        json=json,
        write_intent=(method in _WRITE_METHODS) if write_intent is None else write_intent,
        context={"operation": f"{method} {path}", "timeout_seconds": config.timeout},
    )


def _to_sdk_response(response: httpx.Response, elapsed: float) -> SDKResponse:
    context: ResponseContext = {"elapsed_seconds": elapsed}
    request_id = response.headers.get(REQUEST_ID_HEADER)
    if request_id:
        context["request_id"] = request_id
    payload: Any | None = None
    if response.content:
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
    return SDKResponse(
        status_code=response.status_code,
        headers=list(response.headers.items()),
        content=response.content,
        json=payload,
        context=context,
    )


def _unwrap(req: SDKRequest, response: SDKResponse) -> Any:
    if not response.ok:
        raise error_from_response(
            response.status_code, response.json, url=req.url, request_id=response.request_id
        )
    return response.json


def _check_cancelled(cancellation: CancellationToken | None, req: SDKRequest) -> None:
    if cancellation is not None:
        cancellation.raise_if_cancelled(req.context.get("operation", req.method))


# =============================================================================
# Sync client
# =============================================================================


class HTTPClient:
    """Blocking transport capability for the Jira REST API."""

    def __init__(self, config: ClientConfig):
        self._config = config
        self._client = httpx.Client(timeout=config.timeout, transport=config.transport)
        middlewares: list[Middleware] = [
            WritePolicyMiddleware(config.policies),
            CredentialsMiddleware(config),
        ]
        if config.log_requests:
            middlewares.append(RequestLoggingMiddleware())
        self._pipeline = compose(middlewares, self._send)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _send(self, req: SDKRequest) -> SDKResponse:
        started = time.monotonic()
        try:
            response = self._client.request(
                req.method,
                req.url,
                headers=req.headers,
                params=req.params,
                json=req.json,
            )
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {req.method} {req.url}: {e}") from e
        return _to_sdk_response(response, time.monotonic() - started)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any | None = None,
        write_intent: bool | None = None,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None for empty bodies).

        Raises:
            WriteNotAllowedError: write attempted under a read-only policy
            OperationCancelledError: `cancellation` was set before sending
            TransportError: network failure or non-2xx response
        """
        req = _build_request(
            self._config, method, path, params=params, json=json, write_intent=write_intent
        )
        _check_cancelled(cancellation, req)
        return _unwrap(req, self._pipeline(req))

    def get(self, path: str, *, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, *, json: Any | None = None, **kwargs: Any) -> Any:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, *, json: Any | None = None, **kwargs: Any) -> Any:
        return self.request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        self._client.close()


# =============================================================================
# Async client
# =============================================================================


class AsyncHTTPClient:
    """Awaitable transport capability for the Jira REST API."""

    def __init__(self, config: ClientConfig):
        self._config = config
        self._client = httpx.AsyncClient(timeout=config.timeout, transport=config.async_transport)
        middlewares: list[AsyncMiddleware] = [
            AsyncWritePolicyMiddleware(config.policies),
            AsyncCredentialsMiddleware(config),
        ]
        if config.log_requests:
            middlewares.append(AsyncRequestLoggingMiddleware())
        self._pipeline = compose_async(middlewares, self._send)

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def _send(self, req: SDKRequest) -> SDKResponse:
        started = time.monotonic()
        try:
            response = await self._client.request(
                req.method,
                req.url,
                headers=req.headers,
                params=req.params,
                json=req.json,
            )
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {req.method} {req.url}: {e}") from e
        return _to_sdk_response(response, time.monotonic() - started)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any | None = None,
        write_intent: bool | None = None,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        req = _build_request(
            self._config, method, path, params=params, json=json, write_intent=write_intent
        )
        _check_cancelled(cancellation, req)
        return _unwrap(req, await self._pipeline(req))

    async def get(
        self, path: str, *, params: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> Any:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, *, json: Any | None = None, **kwargs: Any) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, *, json: Any | None = None, **kwargs: Any) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()
