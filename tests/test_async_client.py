from __future__ import annotations

import asyncio

import httpx
import pytest
from jira_fakes import FakeJira, issue_record

from jira_sdk import CancellationToken, Issue, Q
from jira_sdk.exceptions import ServerError, UnsupportedQueryError, WriteNotAllowedError
from jira_sdk.policies import Policies

# =============================================================================
# Async issues
# =============================================================================


async def test_async_query_streams_issues(fake_jira, make_async_client) -> None:
    async with make_async_client(fake_jira) as client:
        keys = [issue.key async for issue in client.issues.query(Q.field("project").equals("TST"))]
    assert keys == ["TST-1", "TST-2"]
    assert fake_jira.bodies("POST", "search")[0]["jql"] == 'project = "TST"'


async def test_async_query_is_lazy(fake_jira, make_async_client) -> None:
    async with make_async_client(fake_jira) as client:
        pager = client.issues.query(Q.field("project").equals("TST"), limit=1)
        assert fake_jira.requests == []
        issues = await pager.collect()
        assert [issue.key for issue in issues] == ["TST-1"]
        assert len(fake_jira.calls("POST", "search")) == 1
        assert fake_jira.bodies("POST", "search")[0]["maxResults"] == 1


async def test_async_unsupported_query_raises_on_first_iteration(
    fake_jira, make_async_client
) -> None:
    async with make_async_client(fake_jira) as client:
        pager = client.issues.query(Q.field("summary").greater_than("a"))
        with pytest.raises(UnsupportedQueryError):
            await pager.__anext__()
    assert fake_jira.requests == []


async def test_async_failed_refresh_after_create_does_not_create_again(
    make_async_client,
) -> None:
    server = FakeJira([])
    server.overrides[("GET", "issue/TST-1")] = httpx.Response(503, json={})
    async with make_async_client(server) as client:
        issue = Issue(project="TST", type="1", summary="S")
        with pytest.raises(ServerError):
            await client.issues.save(issue)
        assert issue.key == "TST-1"

        del server.overrides[("GET", "issue/TST-1")]
        await client.issues.save(issue)
    assert len(server.calls("POST", "issue")) == 1
    assert list(server.issues) == ["TST-1"]


async def test_async_create_then_update(make_async_client) -> None:
    server = FakeJira([])
    async with make_async_client(server) as client:
        issue = Issue(project="TST", type="1", summary="Async")
        await client.issues.save(issue)
        assert issue.key == "TST-1"

        issue.assignee = "jdoe"
        await client.issues.save(issue)
    assert server.bodies("PUT", "issue/TST-1") == [{"fields": {"assignee": {"name": "jdoe"}}}]
    assert issue.assignee == "jdoe"


async def test_async_add_labels_and_comment(fake_jira, make_async_client) -> None:
    async with make_async_client(fake_jira) as client:
        issue = await client.issues.get("TST-1")
        await client.issues.add_labels(issue, "async")
        comment = await client.issues.add_comment("TST-1", "hello")
        comments = await client.issues.get_comments("TST-1")
    assert fake_jira.bodies("PUT", "issue/TST-1") == [{"update": {"labels": [{"add": "async"}]}}]
    assert comment.body == "hello"
    assert [c.body for c in comments] == ["hello"]


async def test_async_read_only_client_blocks_writes(fake_jira, make_async_client) -> None:
    async with make_async_client(fake_jira, policies=Policies.read_only()) as client:
        issue = await client.issues.get("TST-1")
        issue.summary = "blocked"
        with pytest.raises(WriteNotAllowedError):
            await client.issues.save(issue)
        with pytest.raises(WriteNotAllowedError):
            await client.issues.delete("TST-1")
        # Search is a POST but does not modify data.
        assert len(await client.issues.query("project = TST").collect()) == 2
    assert fake_jira.calls("PUT") == []
    assert fake_jira.calls("DELETE") == []


async def test_async_concurrent_first_use_loads_schema_once(fake_jira, make_async_client) -> None:
    async with make_async_client(fake_jira) as client:
        results = await asyncio.gather(
            client.resolve_custom_field("Story Points"),
            client.resolve_custom_field("Custom Text Field"),
            client.issues.get("TST-2"),
        )
    assert results[:2] == ["customfield_10001", "customfield_10000"]
    assert len(fake_jira.calls("GET", "field")) == 1


async def test_async_query_cancellation_token(make_async_client) -> None:
    server = FakeJira([issue_record(f"TST-{n}", str(10000 + n)) for n in range(1, 6)])
    token = CancellationToken()
    async with make_async_client(server, page_size=2) as client:
        seen = []
        async for issue in client.issues.query("project = TST", cancellation=token):
            seen.append(issue.key)
            token.cancel()
    assert seen == ["TST-1", "TST-2"]
    assert len(server.calls("POST", "search")) == 1


# =============================================================================
# Async metadata and remote links
# =============================================================================


async def test_async_metadata_and_remote_links(fake_jira, make_async_client) -> None:
    async with make_async_client(fake_jira) as client:
        fields = await client.metadata.custom_fields()
        link = await client.remote_links.create("TST-1", "https://example.com", "Example")
        links = await client.remote_links.list("TST-1")
    assert [f.name for f in fields] == ["Custom Text Field", "Story Points", "Release Date"]
    assert link.id == 1
    assert [item.url for item in links] == ["https://example.com"]
