"""
Request pipeline used by the sync and async HTTP clients.

Every call to Jira is described by an `SDKRequest`, passed through a chain of
middleware and finally handed to a terminal function that talks to httpx.
Keeping the request as plain data lets the write guard reject a call before
any socket is opened and lets logging see the same request the server sees.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, TypedDict

# Jira stamps each response with an id that also appears in its access log.
REQUEST_ID_HEADER = "X-AREQUESTID"


class RequestContext(TypedDict, total=False):
    operation: str
    timeout_seconds: float


class ResponseContext(TypedDict, total=False):
    elapsed_seconds: float
    request_id: str


def _find_header(headers: Sequence[tuple[str, str]], name: str) -> str | None:
    wanted = name.lower()
    return next((value for key, value in headers if key.lower() == wanted), None)


@dataclass(slots=True)
class SDKRequest:
    method: str
    url: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    params: Sequence[tuple[str, str]] | None = None
    json: Any | None = None
    # POST /search is a read even though it uses a write verb.
    write_intent: bool = False
    context: RequestContext = field(default_factory=lambda: RequestContext())

    def header(self, name: str) -> str | None:
        return _find_header(self.headers, name)

    def describe(self) -> str:
        return f"{self.method} {self.url}"


@dataclass(slots=True)
class SDKResponse:
    status_code: int
    headers: list[tuple[str, str]]
    content: bytes
    json: Any | None = None
    context: ResponseContext = field(default_factory=lambda: ResponseContext())

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def request_id(self) -> str | None:
        return self.context.get("request_id")

    def header(self, name: str) -> str | None:
        return _find_header(self.headers, name)


Pipeline: TypeAlias = Callable[[SDKRequest], SDKResponse]
AsyncPipeline: TypeAlias = Callable[[SDKRequest], Awaitable[SDKResponse]]


class Middleware(Protocol):
    def __call__(self, req: SDKRequest, next: Pipeline) -> SDKResponse: ...


class AsyncMiddleware(Protocol):
    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> SDKResponse: ...


def _link(middleware: Middleware, downstream: Pipeline) -> Pipeline:
    def step(req: SDKRequest) -> SDKResponse:
        return middleware(req, downstream)

    return step


def _link_async(middleware: AsyncMiddleware, downstream: AsyncPipeline) -> AsyncPipeline:
    async def step(req: SDKRequest) -> SDKResponse:
        return await middleware(req, downstream)

    return step


def compose(middlewares: Sequence[Middleware], terminal: Pipeline) -> Pipeline:
    """Chain ``middlewares`` so the first one listed sees the request first."""
    pipeline = terminal
    for middleware in reversed(middlewares):
        pipeline = _link(middleware, pipeline)
    return pipeline


def compose_async(middlewares: Sequence[AsyncMiddleware], terminal: AsyncPipeline) -> AsyncPipeline:
    pipeline = terminal
    for middleware in reversed(middlewares):
        pipeline = _link_async(middleware, pipeline)
    return pipeline
