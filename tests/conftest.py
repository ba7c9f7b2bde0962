from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from jira_fakes import BASE_URL, FakeJira, issue_record

from jira_sdk import AsyncJira, Jira


@pytest.fixture
def fake_jira() -> FakeJira:
    return FakeJira([issue_record("TST-1", "10001"), issue_record("TST-2", "10002")])


@pytest.fixture
def make_client() -> Iterator[Callable[..., Jira]]:
    clients: list[Jira] = []

    def factory(server: FakeJira, **kwargs: Any) -> Jira:
        client = Jira(
            BASE_URL,
            username="admin",
            api_token="secret",
            transport=server.transport(),
            **kwargs,
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def make_async_client() -> Callable[..., AsyncJira]:
    def factory(server: FakeJira, **kwargs: Any) -> AsyncJira:
        return AsyncJira(
            BASE_URL,
            username="admin",
            api_token="secret",
            transport=server.transport(),
            **kwargs,
        )

    return factory
