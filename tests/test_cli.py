from __future__ import annotations

import json
import logging

import pytest

pytest.importorskip("rich_click")
pytest.importorskip("rich")

try:
    import respx
except ModuleNotFoundError:  # pragma: no cover - optional dev dependency
    respx = None  # type: ignore[assignment]

from click.testing import CliRunner
from httpx import Response
from jira_fakes import BASE_URL, FIELD_DEFINITIONS, issue_record

import jira_sdk
from jira_sdk.cli.logging import RedactingFilter, configure_logging, restore_logging
from jira_sdk.cli.main import cli

if respx is None:  # pragma: no cover
    pytest.skip("respx is not installed", allow_module_level=True)

API = f"{BASE_URL}/rest/api/2"
ENV = {"JIRA_URL": BASE_URL, "JIRA_USERNAME": "admin", "JIRA_API_TOKEN": "secret"}


def _mock_fields(respx_mock: respx.MockRouter) -> None:
    respx_mock.get(f"{API}/field").mock(return_value=Response(200, json=FIELD_DEFINITIONS))


# =============================================================================
# No-network commands
# =============================================================================


def test_cli_no_args_shows_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage:" in result.output


def test_cli_version_option() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert jira_sdk.__version__ in result.output


def test_cli_version_json() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["version", "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.output.strip())
    assert payload["ok"] is True
    assert payload["command"] == "version"
    assert payload["data"]["version"] == jira_sdk.__version__
    assert payload["meta"]["baseUrl"] is None


def test_cli_missing_url_is_usage_error() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--json", "fields"], env={"JIRA_URL": None})
    assert result.exit_code == 2
    payload = json.loads(result.output.strip())
    assert payload["ok"] is False
    assert payload["error"]["type"] == "usage_error"
    assert "JIRA_URL" in payload["error"]["message"]
    assert "--base-url" in payload["error"]["hint"]


def test_cli_negative_limit_is_usage_error() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["search", "project = TST", "--limit", "-1"], env=ENV)
    assert result.exit_code == 2
    assert "Usage error: --limit must be >= 0." in result.output


# =============================================================================
# Commands against a mocked Jira
# =============================================================================


def test_cli_search_json(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    search = respx_mock.post(f"{API}/search").mock(
        return_value=Response(
            200,
            json={
                "startAt": 0,
                "maxResults": 1,
                "total": 2,
                "issues": [issue_record("TST-1", summary="First")],
            },
        )
    )

    runner = CliRunner()
    result = runner.invoke(cli, ["--json", "search", "project = TST", "--limit", "1"], env=ENV)
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output.strip())
    assert payload["command"] == "search"
    assert [i["key"] for i in payload["data"]["issues"]] == ["TST-1"]
    assert payload["data"]["issues"][0]["summary"] == "First"
    assert payload["meta"]["baseUrl"] == BASE_URL
    assert payload["meta"]["pagination"] == {"returned": 1, "total": 2, "pagesFetched": 1}

    body = json.loads(search.calls.last.request.content)
    assert body["jql"] == "project = TST"
    assert body["maxResults"] == 1


def test_cli_search_table_output(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    respx_mock.post(f"{API}/search").mock(
        return_value=Response(
            200,
            json={"startAt": 0, "maxResults": 50, "total": 1, "issues": [issue_record("TST-1")]},
        )
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["search", "project = TST"], env=ENV)
    assert result.exit_code == 0, result.output
    assert "TST-1" in result.output
    assert "issueType" in result.output


def test_cli_issue_get_includes_custom_fields(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    respx_mock.get(f"{API}/issue/TST-1").mock(
        return_value=Response(200, json=issue_record("TST-1", customfield_10000="v1"))
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["issue", "get", "TST-1", "--json"], env=ENV)
    assert result.exit_code == 0, result.output
    issue = json.loads(result.output.strip())["data"]["issue"]
    assert issue["key"] == "TST-1"
    assert issue["issueType"] == "1"
    assert issue["status"] == "Open"
    assert issue["customFields"] == {"Custom Text Field": "v1"}


def test_cli_issue_get_not_found(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    respx_mock.get(f"{API}/issue/TST-9").mock(
        return_value=Response(404, json={"errorMessages": ["Issue Does Not Exist"]})
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["--json", "issue", "get", "TST-9"], env=ENV)
    assert result.exit_code == 4
    payload = json.loads(result.output.strip())
    assert payload["error"]["type"] == "not_found"
    assert "Issue Does Not Exist" in payload["error"]["message"]


def test_cli_authentication_failure_exit_code(respx_mock: respx.MockRouter) -> None:
    respx_mock.get(f"{API}/field").mock(return_value=Response(401, json={}))
    runner = CliRunner()
    result = runner.invoke(cli, ["--json", "fields"], env=ENV)
    assert result.exit_code == 3
    assert json.loads(result.output.strip())["error"]["type"] == "auth_error"


def test_cli_issue_comments(respx_mock: respx.MockRouter) -> None:
    respx_mock.get(f"{API}/issue/TST-1/comment").mock(
        return_value=Response(
            200,
            json={
                "comments": [
                    {
                        "id": "1",
                        "body": "Looks good",
                        "author": {"name": "admin", "displayName": "Administrator"},
                        "created": "2011-10-11T09:30:00.000+0000",
                    }
                ]
            },
        )
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["--json", "issue", "comments", "TST-1"], env=ENV)
    assert result.exit_code == 0, result.output
    comments = json.loads(result.output.strip())["data"]["comments"]
    assert comments == [
        {
            "id": "1",
            "author": "Administrator",
            "created": "2011-10-11T09:30:00+00:00",
            "body": "Looks good",
        }
    ]


def test_cli_add_label(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    respx_mock.get(f"{API}/issue/TST-1").mock(
        return_value=Response(200, json=issue_record("TST-1", labels=["old"]))
    )
    put = respx_mock.put(f"{API}/issue/TST-1").mock(return_value=Response(204))

    runner = CliRunner()
    result = runner.invoke(cli, ["--json", "issue", "add-label", "TST-1", "new"], env=ENV)
    assert result.exit_code == 0, result.output
    assert json.loads(result.output.strip())["data"] == {"key": "TST-1", "labels": ["old", "new"]}
    assert json.loads(put.calls.last.request.content) == {"update": {"labels": [{"add": "new"}]}}


def test_cli_readonly_blocks_add_label(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    respx_mock.get(f"{API}/issue/TST-1").mock(return_value=Response(200, json=issue_record()))

    runner = CliRunner()
    result = runner.invoke(
        cli, ["--readonly", "--json", "issue", "add-label", "TST-1", "x"], env=ENV
    )
    assert result.exit_code == 2
    payload = json.loads(result.output.strip())
    assert payload["error"]["type"] == "write_not_allowed"
    assert payload["error"]["details"] == {
        "method": "PUT",
        "url": f"{API}/issue/TST-1",
    }


def test_cli_readonly_can_come_from_environment(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    respx_mock.get(f"{API}/issue/TST-1").mock(return_value=Response(200, json=issue_record()))

    runner = CliRunner()
    result = runner.invoke(
        cli, ["issue", "add-label", "TST-1", "x"], env={**ENV, "JIRA_READONLY": "1"}
    )
    assert result.exit_code == 2
    assert "Drop --readonly" in result.output


def test_cli_fields_sorted_by_name(respx_mock: respx.MockRouter) -> None:
    _mock_fields(respx_mock)
    runner = CliRunner()
    result = runner.invoke(cli, ["fields", "--json"], env=ENV)
    assert result.exit_code == 0, result.output
    fields = json.loads(result.output.strip())["data"]["fields"]
    assert [f["name"] for f in fields] == ["Custom Text Field", "Release Date", "Story Points"]
    assert fields[0] == {
        "id": "customfield_10000",
        "name": "Custom Text Field",
        "type": "string",
        "clauseNames": ["cf[10000]", "Custom Text Field"],
    }


def test_cli_base_url_option_overrides_environment(respx_mock: respx.MockRouter) -> None:
    respx_mock.get("https://other.example.com/rest/api/2/field").mock(
        return_value=Response(200, json=[])
    )
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--base-url", "https://other.example.com", "--json", "fields"], env=ENV
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output.strip())
    assert payload["data"] == {"fields": []}
    assert payload["meta"]["baseUrl"] == "https://other.example.com"


# =============================================================================
# Logging
# =============================================================================


def test_logging_levels_follow_verbosity_and_restore() -> None:
    logger = logging.getLogger("jira_sdk")
    before = (logger.level, list(logger.handlers), logger.propagate)

    previous = configure_logging(verbosity=2)
    try:
        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert len(logger.handlers) == 1
    finally:
        restore_logging(previous)
    assert (logger.level, list(logger.handlers), logger.propagate) == before


def test_redacting_filter_masks_authorization_headers() -> None:
    record = logging.LogRecord(
        "jira_sdk",
        logging.DEBUG,
        __file__,
        1,
        "headers: %s",
        ("Authorization: Basic YWJjOmRlZg==",),
        None,
    )
    assert RedactingFilter().filter(record)
    assert record.getMessage() == "headers: Authorization: Basic [REDACTED]"
