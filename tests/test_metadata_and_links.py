from __future__ import annotations

import httpx
from jira_fakes import FakeJira

from jira_sdk.models.secondary import RemoteLink


def test_issue_types_global_and_per_project(fake_jira: FakeJira, make_client) -> None:
    fake_jira.overrides[("GET", "issuetype")] = httpx.Response(
        200,
        json=[
            {"id": "1", "name": "Bug", "subtask": False},
            {"id": 5, "name": "Sub-task", "subtask": True},
        ],
    )
    fake_jira.overrides[("GET", "project/TST")] = httpx.Response(
        200, json={"id": "10000", "key": "TST", "issueTypes": [{"id": "1", "name": "Bug"}]}
    )
    client = make_client(fake_jira)

    types = client.metadata.issue_types()
    assert [(t.id, t.name, t.subtask) for t in types] == [
        ("1", "Bug", False),
        ("5", "Sub-task", True),
    ]
    assert [t.name for t in client.metadata.issue_types("TST")] == ["Bug"]


def test_priorities_resolutions_statuses(fake_jira: FakeJira, make_client) -> None:
    fake_jira.overrides[("GET", "priority")] = httpx.Response(
        200, json=[{"id": "3", "name": "Major", "statusColor": "#009900"}]
    )
    fake_jira.overrides[("GET", "resolution")] = httpx.Response(
        200, json=[{"id": "1", "name": "Fixed", "description": "A fix was made"}]
    )
    fake_jira.overrides[("GET", "status")] = httpx.Response(
        200, json=[{"id": "1", "name": "Open"}, {"id": "6", "name": "Closed"}]
    )
    client = make_client(fake_jira)

    assert client.metadata.priorities()[0].status_color == "#009900"
    assert client.metadata.resolutions()[0].description == "A fix was made"
    assert [s.name for s in client.metadata.statuses()] == ["Open", "Closed"]


def test_custom_fields_come_from_cached_schema(fake_jira: FakeJira, make_client) -> None:
    client = make_client(fake_jira)
    fields = client.metadata.custom_fields()
    assert [(f.id, f.name) for f in fields] == [
        ("customfield_10000", "Custom Text Field"),
        ("customfield_10001", "Story Points"),
        ("customfield_10002", "Release Date"),
    ]
    assert client.resolve_custom_field("story points") == "customfield_10001"
    assert len(fake_jira.calls("GET", "field")) == 1


def test_project_versions_and_components(fake_jira: FakeJira, make_client) -> None:
    fake_jira.overrides[("GET", "project/TST/versions")] = httpx.Response(
        200,
        json=[
            {"id": "100", "name": "1.0", "released": True, "releaseDate": "2024-01-31"},
            {"id": "101", "name": "2.0", "archived": False},
        ],
    )
    fake_jira.overrides[("GET", "project/TST/components")] = httpx.Response(
        200, json=[{"id": "200", "name": "Server", "lead": {"name": "admin"}}]
    )
    client = make_client(fake_jira)

    versions = client.metadata.project_versions("TST")
    assert [(v.name, v.released) for v in versions] == [("1.0", True), ("2.0", False)]
    assert versions[0].release_date == "2024-01-31"
    components = client.metadata.project_components("TST")
    assert components[0].name == "Server"
    assert components[0].lead == {"name": "admin"}


# =============================================================================
# Remote links
# =============================================================================


def test_create_remote_link(fake_jira: FakeJira, make_client) -> None:
    client = make_client(fake_jira)
    link = client.remote_links.create(
        "TST-1", "https://ci.example.com/build/7", "Build 7", summary="Green"
    )
    assert isinstance(link, RemoteLink)
    assert link.id == 1
    assert link.url == "https://ci.example.com/build/7"
    assert link.title == "Build 7"
    assert link.summary == "Green"
    assert fake_jira.bodies("POST", "issue/TST-1/remotelink") == [
        {
            "object": {
                "url": "https://ci.example.com/build/7",
                "title": "Build 7",
                "summary": "Green",
            }
        }
    ]


def test_list_remote_links(fake_jira: FakeJira, make_client) -> None:
    client = make_client(fake_jira)
    client.remote_links.create("TST-1", "https://a.example.com", "A")
    client.remote_links.create("TST-1", "https://b.example.com", "B")
    links = client.remote_links.list("TST-1")
    assert [(link.id, link.title, link.summary) for link in links] == [
        (1, "A", None),
        (2, "B", None),
    ]
    assert client.remote_links.list("TST-2") == []
