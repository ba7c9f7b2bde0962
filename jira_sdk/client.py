"""
Main Jira API client.

Provides a unified interface to issue querying, change-tracked saves and
metadata lookups.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import httpx

from .clients.http import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SERVER_PAGE_CAP,
    AsyncHTTPClient,
    ClientConfig,
    HTTPClient,
)
from .models.types import DEFAULT_API_VERSION, FieldId
from .policies import Policies
from .schema import AsyncSchemaResolver, SchemaResolver
from .services.issues import AsyncIssueService, IssueService
from .services.metadata import AsyncMetadataService, MetadataService
from .services.remote_links import AsyncRemoteLinkService, RemoteLinkService


def _maybe_load_dotenv(
    *, load_dotenv: bool, dotenv_path: str | os.PathLike[str] | None, override: bool = False
) -> None:
    if not load_dotenv:
        return
    try:
        import dotenv
    except ImportError as e:
        raise ImportError(
            "Optional .env support requires python-dotenv; install `jira-sdk[cli]`."
        ) from e
    path = Path(dotenv_path) if dotenv_path is not None else Path(".env")
    dotenv.load_dotenv(dotenv_path=path, override=override)


def _env_settings(
    *, load_dotenv: bool, dotenv_path: str | os.PathLike[str] | None
) -> dict[str, Any]:
    _maybe_load_dotenv(load_dotenv=load_dotenv, dotenv_path=dotenv_path)
    base_url = os.getenv("JIRA_URL", "").strip()
    if not base_url:
        raise ValueError("JIRA_URL is not set")
    settings: dict[str, Any] = {
        "base_url": base_url,
        "username": os.getenv("JIRA_USERNAME") or os.getenv("JIRA_EMAIL"),
        "api_token": os.getenv("JIRA_API_TOKEN"),
        "bearer_token": os.getenv("JIRA_BEARER_TOKEN"),
    }
    page_size = os.getenv("JIRA_PAGE_SIZE")
    if page_size:
        try:
            settings["page_size"] = int(page_size)
        except ValueError as e:
            raise ValueError(f"JIRA_PAGE_SIZE must be an integer, got {page_size!r}") from e
    return settings


class Jira:
    """
    Synchronous Jira API client.

    Example:
        ```python
        from jira_sdk import Issue, Jira, Q

        with Jira("https://jira.example.com", username="me", api_token="...") as jira:
            issue = Issue(project="TST", type="1", summary="Created from Python")
            jira.issues.save(issue)

            found = jira.issues.query(Q.field("summary").equals("Created from Python"))
            for match in found:
                print(match.key)
        ```

    Attributes:
        issues: Issue queries, saves, comments and attachments
        metadata: Issue types, priorities, statuses and project metadata
        remote_links: Remote issue links
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        api_token: str | None = None,
        bearer_token: str | None = None,
        api_version: str = DEFAULT_API_VERSION,
        page_size: int = DEFAULT_PAGE_SIZE,
        server_page_cap: int = DEFAULT_SERVER_PAGE_CAP,
        timeout: float = 30.0,
        log_requests: bool = False,
        user_key: str = "name",
        policies: Policies | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the Jira client.

        Args:
            base_url: Jira instance URL
            username: Username or email for basic authentication
            api_token: API token (or password) for basic authentication
            bearer_token: Personal access token, used instead of basic auth
            api_version: REST API version segment
            page_size: Requested page size for searches
            server_page_cap: Largest page size the server honors
            timeout: Request timeout in seconds
            log_requests: Log all HTTP requests (for debugging)
            user_key: "name" (Server/Data Center) or "accountId" (Cloud)
            policies: Client policies (e.g. `Policies.read_only()`)
            transport: Custom httpx transport (tests, proxies, retries)
        """
        config = ClientConfig(
            base_url=base_url,
            username=username,
            api_token=api_token,
            bearer_token=bearer_token,
            api_version=api_version,
            page_size=page_size,
            server_page_cap=server_page_cap,
            timeout=timeout,
            log_requests=log_requests,
            user_key=user_key,
            policies=policies or Policies(),
            transport=transport,
        )
        self._http = HTTPClient(config)
        self._schema = SchemaResolver(self._http)

        self._issues: IssueService | None = None
        self._metadata: MetadataService | None = None
        self._remote_links: RemoteLinkService | None = None

    @classmethod
    def from_env(
        cls,
        *,
        load_dotenv: bool = False,
        dotenv_path: str | os.PathLike[str] | None = None,
        **kwargs: Any,
    ) -> Jira:
        """
        Build a client from `JIRA_URL`, `JIRA_USERNAME` (or `JIRA_EMAIL`),
        `JIRA_API_TOKEN`, `JIRA_BEARER_TOKEN` and `JIRA_PAGE_SIZE`.

        Set `load_dotenv=True` to read a `.env` file first (requires
        python-dotenv). Keyword arguments override the environment.
        """
        settings = _env_settings(load_dotenv=load_dotenv, dotenv_path=dotenv_path)
        settings.update(kwargs)
        return cls(**settings)

    def __enter__(self) -> Jira:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._http.close()

    @property
    def config(self) -> ClientConfig:
        return self._http.config

    # =========================================================================
    # Service Properties (lazy initialization)
    # =========================================================================

    @property
    def issues(self) -> IssueService:
        """Issue operations."""
        if self._issues is None:
            self._issues = IssueService(self._http, self._schema)
        return self._issues

    @property
    def metadata(self) -> MetadataService:
        """Issue type, priority, status and project metadata."""
        if self._metadata is None:
            self._metadata = MetadataService(self._http, self._schema)
        return self._metadata

    @property
    def remote_links(self) -> RemoteLinkService:
        """Remote issue link operations."""
        if self._remote_links is None:
            self._remote_links = RemoteLinkService(self._http)
        return self._remote_links

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def resolve_custom_field(self, name: str) -> FieldId:
        """
        Resolve a custom field display name to its id (`customfield_NNNNN`).

        The field schema is fetched on first use and cached for the client's
        lifetime.
        """
        return self._schema.resolve(name)


# =============================================================================
# Async Client (same interface, async methods)
# =============================================================================


class AsyncJira:
    """
    Asynchronous Jira API client.

    Same interface as Jira but with async/await support.

    Example:
        ```python
        async with AsyncJira(base_url, username="me", api_token="...") as jira:
            async for issue in jira.issues.query(Q.field("project").equals("TST")):
                print(issue.key)
        ```
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        api_token: str | None = None,
        bearer_token: str | None = None,
        api_version: str = DEFAULT_API_VERSION,
        page_size: int = DEFAULT_PAGE_SIZE,
        server_page_cap: int = DEFAULT_SERVER_PAGE_CAP,
        timeout: float = 30.0,
        log_requests: bool = False,
        user_key: str = "name",
        policies: Policies | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = ClientConfig(
            base_url=base_url,
            username=username,
            api_token=api_token,
            bearer_token=bearer_token,
            api_version=api_version,
            page_size=page_size,
            server_page_cap=server_page_cap,
            timeout=timeout,
            log_requests=log_requests,
            user_key=user_key,
            policies=policies or Policies(),
            async_transport=transport,
        )
        self._http = AsyncHTTPClient(config)
        self._schema = AsyncSchemaResolver(self._http)
        self._issues: AsyncIssueService | None = None
        self._metadata: AsyncMetadataService | None = None
        self._remote_links: AsyncRemoteLinkService | None = None

    @classmethod
    def from_env(
        cls,
        *,
        load_dotenv: bool = False,
        dotenv_path: str | os.PathLike[str] | None = None,
        **kwargs: Any,
    ) -> AsyncJira:
        settings = _env_settings(load_dotenv=load_dotenv, dotenv_path=dotenv_path)
        settings.update(kwargs)
        return cls(**settings)

    @property
    def config(self) -> ClientConfig:
        return self._http.config

    @property
    def issues(self) -> AsyncIssueService:
        if self._issues is None:
            self._issues = AsyncIssueService(self._http, self._schema)
        return self._issues

    @property
    def metadata(self) -> AsyncMetadataService:
        if self._metadata is None:
            self._metadata = AsyncMetadataService(self._http, self._schema)
        return self._metadata

    @property
    def remote_links(self) -> AsyncRemoteLinkService:
        if self._remote_links is None:
            self._remote_links = AsyncRemoteLinkService(self._http)
        return self._remote_links

    async def resolve_custom_field(self, name: str) -> FieldId:
        return await self._schema.resolve(name)

    async def __aenter__(self) -> AsyncJira:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http.close()
