from __future__ import annotations

import base64
import json

import httpx
import pytest
from jira_fakes import BASE_URL, FIELD_DEFINITIONS, issue_record

from jira_sdk import AsyncJira, Issue, Jira, WriteNotAllowedError
from jira_sdk.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ServerError,
    StaleEntityError,
    TransportError,
)
from jira_sdk.policies import Policies, WritePolicy


def _search_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={"startAt": 0, "maxResults": 50, "total": 0, "issues": []},
        request=request,
    )


def test_transport_injection_is_used_by_jira_client() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET" and request.url.path == "/rest/api/2/field":
            return httpx.Response(200, json=FIELD_DEFINITIONS, request=request)
        if request.method == "POST" and request.url.path == "/rest/api/2/search":
            return _search_response(request)
        return httpx.Response(404, json={}, request=request)

    client = Jira(
        BASE_URL,
        username="admin",
        api_token="secret",
        transport=httpx.MockTransport(handler),
    )
    try:
        assert list(client.issues.query("project = TST", limit=1)) == []
    finally:
        client.close()

    expected = "Basic " + base64.b64encode(b"admin:secret").decode("ascii")
    assert [r.headers["Authorization"] for r in seen] == [expected, expected]
    assert seen[0].headers["Accept"] == "application/json"


def test_bearer_token_takes_precedence_over_basic_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[], request=request)

    with Jira(
        BASE_URL,
        username="admin",
        api_token="secret",
        bearer_token="pat-123",
        transport=httpx.MockTransport(handler),
    ) as client:
        client.metadata.priorities()
    assert seen[0].headers["Authorization"] == "Bearer pat-123"


def test_api_version_is_part_of_every_url() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json=[], request=request)

    with Jira(BASE_URL + "/", api_version="latest", transport=httpx.MockTransport(handler)) as c:
        c.metadata.statuses()
    assert paths == ["/rest/api/latest/status"]


def test_write_policy_denies_writes_and_blocks_before_network() -> None:
    calls: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.method == "GET" and request.url.path == "/rest/api/2/field":
            return httpx.Response(200, json=FIELD_DEFINITIONS, request=request)
        if request.method == "GET" and request.url.path == "/rest/api/2/issue/TST-1":
            return httpx.Response(200, json=issue_record(), request=request)
        if request.method == "POST" and request.url.path == "/rest/api/2/search":
            return _search_response(request)
        pytest.fail(f"Unexpected network call: {request.method} {request.url!s}")

    client = Jira(
        BASE_URL,
        transport=httpx.MockTransport(handler),
        policies=Policies(write=WritePolicy.DENY),
    )
    try:
        issue = client.issues.get("TST-1")
        # Search uses POST but is not a write.
        assert list(client.issues.query("project = TST")) == []
        reads = list(calls)

        issue.summary = "blocked"
        with pytest.raises(WriteNotAllowedError) as exc_info:
            client.issues.save(issue)
        assert exc_info.value.method == "PUT"

        with pytest.raises(WriteNotAllowedError):
            client.issues.save(Issue(project="TST", type="1", summary="new"))
        with pytest.raises(WriteNotAllowedError):
            client.issues.add_comment("TST-1", "x")
        with pytest.raises(WriteNotAllowedError):
            client.issues.delete("TST-1")
        with pytest.raises(WriteNotAllowedError):
            client.remote_links.create("TST-1", "https://example.com", "Example")

        # No additional network calls should be made for the blocked writes.
        assert calls == reads
    finally:
        client.close()


@pytest.mark.parametrize(
    ("status", "error_cls"),
    [
        (401, AuthenticationError),
        (403, AuthorizationError),
        (404, NotFoundError),
        (409, StaleEntityError),
        (500, ServerError),
        (503, ServerError),
        (400, TransportError),
    ],
)
def test_error_responses_map_to_typed_errors(status: int, error_cls: type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status,
            json={"errorMessages": ["Something went wrong"], "errors": {"summary": "required"}},
            request=request,
        )

    with Jira(BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(error_cls) as exc_info:
            client.metadata.priorities()
    error = exc_info.value
    assert type(error) is error_cls
    assert error.status_code == status
    assert "Something went wrong" in str(error)
    assert "summary: required" in str(error)
    assert error.response_body["errorMessages"] == ["Something went wrong"]


def test_non_json_error_body_is_kept_as_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>", request=request)

    with Jira(BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ServerError) as exc_info:
            client.metadata.statuses()
    assert exc_info.value.response_body == "<html>Bad Gateway</html>"


def test_connection_failure_is_a_transport_error_without_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with Jira(BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(TransportError) as exc_info:
            client.metadata.statuses()
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_request_logging_writes_debug_records(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[], request=request)

    with caplog.at_level("DEBUG", logger="jira_sdk.clients.http"):
        with Jira(BASE_URL, log_requests=True, transport=httpx.MockTransport(handler)) as c:
            c.metadata.resolutions()
    assert "GET https://jira.example.com/rest/api/2/resolution -> 200" in caplog.text


@pytest.mark.asyncio
async def test_transport_injection_is_used_by_async_jira_client() -> None:
    bodies: list[dict] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/rest/api/2/field":
            return httpx.Response(200, json=FIELD_DEFINITIONS, request=request)
        if request.method == "POST" and request.url.path == "/rest/api/2/search":
            bodies.append(json.loads(request.content))
            return _search_response(request)
        return httpx.Response(404, json={}, request=request)

    client = AsyncJira(BASE_URL, transport=httpx.MockTransport(handler))
    try:
        assert await client.issues.query("project = TST", limit=1).collect() == []
        assert bodies[0]["maxResults"] == 1
    finally:
        await client.close()


def test_jira_request_id_is_attached_to_errors_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/status"):
            return httpx.Response(200, json=[], headers={"X-AREQUESTID": "570x1x1"})
        return httpx.Response(
            404,
            json={"errorMessages": ["Issue Does Not Exist"]},
            headers={"X-AREQUESTID": "570x2x1"},
            request=request,
        )

    with caplog.at_level("DEBUG", logger="jira_sdk.clients.http"):
        with Jira(BASE_URL, log_requests=True, transport=httpx.MockTransport(handler)) as c:
            c.metadata.statuses()
            with pytest.raises(NotFoundError) as exc_info:
                c.metadata.priorities()
    assert "request-id=570x1x1" in caplog.text
    assert exc_info.value.request_id == "570x2x1"
    assert exc_info.value.details == {"requestId": "570x2x1"}
