from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from jira_fakes import BASE_URL

from jira_sdk import AsyncJira, Jira
from jira_sdk.clients.http import DEFAULT_PAGE_SIZE, ClientConfig
from jira_sdk.policies import Policies

_ENV_VARS = (
    "JIRA_URL",
    "JIRA_USERNAME",
    "JIRA_EMAIL",
    "JIRA_API_TOKEN",
    "JIRA_BEARER_TOKEN",
    "JIRA_PAGE_SIZE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so teardown also undoes values written by load_dotenv.
    for name in _ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_from_env_reads_connection_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_URL", BASE_URL)
    monkeypatch.setenv("JIRA_EMAIL", "me@example.com")
    monkeypatch.setenv("JIRA_API_TOKEN", "token")
    monkeypatch.setenv("JIRA_PAGE_SIZE", "25")

    with Jira.from_env() as client:
        config = client.config
    assert config.base_url == BASE_URL
    assert config.username == "me@example.com"
    assert config.api_token == "token"
    assert config.page_size == 25
    assert config.policies.allows_writes


def test_from_env_keyword_arguments_override_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("JIRA_URL", BASE_URL)
    monkeypatch.setenv("JIRA_USERNAME", "env-user")
    with Jira.from_env(username="override", policies=Policies.read_only()) as client:
        assert client.config.username == "override"
        assert not client.config.policies.allows_writes


def test_from_env_requires_url() -> None:
    with pytest.raises(ValueError, match="JIRA_URL"):
        Jira.from_env()


def test_from_env_rejects_non_integer_page_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_URL", BASE_URL)
    monkeypatch.setenv("JIRA_PAGE_SIZE", "lots")
    with pytest.raises(ValueError, match="JIRA_PAGE_SIZE"):
        Jira.from_env()


def test_from_env_loads_dotenv_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "jira.env"
    env_file.write_text(f"JIRA_URL={BASE_URL}\nJIRA_BEARER_TOKEN=pat\n")
    with Jira.from_env(load_dotenv=True, dotenv_path=env_file) as client:
        assert client.config.base_url == BASE_URL
        assert client.config.bearer_token == "pat"


async def test_async_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_URL", BASE_URL)
    transport = httpx.MockTransport(lambda r: httpx.Response(200))
    async with AsyncJira.from_env(transport=transport) as c:
        assert c.config.base_url == BASE_URL
        assert c.config.async_transport is not None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_url": ""},
        {"base_url": BASE_URL, "page_size": 0},
        {"base_url": BASE_URL, "server_page_cap": 0},
        {"base_url": BASE_URL, "user_key": "email"},
    ],
)
def test_client_config_validation(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        ClientConfig(**kwargs)


def test_client_config_defaults_and_urls() -> None:
    config = ClientConfig(base_url="https://jira.example.com/")
    assert config.page_size == DEFAULT_PAGE_SIZE
    assert config.user_key == "name"
    assert config.api_url == "https://jira.example.com/rest/api/2"
    assert config.url_for("/issue/TST-1") == "https://jira.example.com/rest/api/2/issue/TST-1"


def test_services_are_created_lazily_and_reused() -> None:
    with Jira(BASE_URL) as client:
        assert client.issues is client.issues
        assert client.metadata is client.metadata
        assert client.remote_links is client.remote_links
