"""
Issue service.

Queries are written as predicates (see `jira_sdk.jql`) and streamed through
the paging coordinator; saves send only the fields that changed since the
issue was loaded.
"""

from __future__ import annotations

import builtins
import logging
from typing import TYPE_CHECKING, Any

from ..cancellation import CancellationToken
from ..diff import ChangeSet, compute_changes
from ..exceptions import NotFoundError
from ..jql import Predicate, requires_schema, translate
from ..mapper import IssueMapper
from ..models.entities import Issue
from ..models.pagination import SearchPage
from ..models.secondary import Attachment, Comment, CreatedIssue
from ..models.types import SEARCH_FIELDS, IssueKey
from ..paging import AsyncSearchPager, SearchPager
from ..schema import FieldSchema

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient, HTTPClient
    from ..schema import AsyncSchemaResolver, SchemaResolver

logger = logging.getLogger(__name__)


def _search_body(
    jql: str, start_at: int, max_results: int, schema: FieldSchema
) -> dict[str, Any]:
    return {
        "jql": jql,
        "startAt": start_at,
        "maxResults": max_results,
        "fields": [*SEARCH_FIELDS, *schema.field_ids],
    }


def _to_jql(predicate: Predicate | str, schema: FieldSchema) -> str:
    if isinstance(predicate, str):
        return predicate.strip()
    return translate(predicate, schema)


def _schema_free_jql(predicate: Predicate | str) -> str | None:
    """JQL for predicates over system fields only; None when custom names must be resolved."""
    if isinstance(predicate, str):
        return predicate.strip()
    if requires_schema(predicate):
        return None
    return translate(predicate)


def _require_key(issue: Issue) -> IssueKey:
    if issue.key is None:
        raise ValueError("Issue has a snapshot but no key; it cannot be updated")
    return issue.key


def _comments_from(data: Any) -> list[Comment]:
    items = data.get("comments", []) if isinstance(data, dict) else []
    return [Comment.model_validate(item) for item in items]


def _attachments_from(data: Any) -> list[Attachment]:
    fields = (data or {}).get("fields") or {}
    return [Attachment.model_validate(item) for item in fields.get("attachment") or []]


def _unsaved_labels(issue: Issue, labels: tuple[str, ...]) -> list[str]:
    saved = (issue.snapshot.fields.get("labels") if issue.snapshot else None) or ()
    return [label for label in dict.fromkeys(labels) if label not in saved]


def _label_update(labels: list[str]) -> dict[str, Any]:
    return {"update": {"labels": [{"add": label} for label in labels]}}


class IssueService:
    """
    Service for querying and saving issues.

    Example:
        ```python
        from jira_sdk import Jira, Q

        with Jira(base_url, username="me", api_token="...") as jira:
            for issue in jira.issues.query(Q.field("project").equals("TST"), limit=10):
                issue.summary = issue.summary.upper()
                jira.issues.save(issue)
        ```
    """

    def __init__(self, client: HTTPClient, schema: SchemaResolver):
        self._client = client
        self._schema = schema

    def _mapper(self, schema: FieldSchema) -> IssueMapper:
        return IssueMapper(schema, user_key=self._client.config.user_key)

    # =========================================================================
    # Read Operations
    # =========================================================================

    def _search_page(
        self,
        jql: str,
        start_at: int,
        max_results: int,
        schema: FieldSchema,
        cancellation: CancellationToken | None = None,
    ) -> SearchPage:
        try:
            data = self._client.post(
                "search",
                json=_search_body(jql, start_at, max_results, schema),
                write_intent=False,
                cancellation=cancellation,
            )
        except NotFoundError:
            # Jira answers 404 when the query names a project the caller cannot see.
            logger.debug("Search returned 404; treating as empty result: %s", jql)
            return SearchPage.empty(start_at)
        return SearchPage.model_validate(data)

    def search(
        self,
        jql: str,
        *,
        start_at: int = 0,
        max_results: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> SearchPage:
        """
        Fetch a single raw page of search results.

        Most callers want `query()`, which pages automatically and maps
        records to `Issue`.
        """
        schema = self._schema.schema(cancellation=cancellation)
        size = max_results if max_results is not None else self._client.config.page_size
        return self._search_page(jql, start_at, size, schema, cancellation)

    def query(
        self,
        predicate: Predicate | str,
        *,
        limit: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> SearchPager[Issue]:
        """
        Stream all issues matching `predicate`.

        Args:
            predicate: Predicate built with `Q`/`F`, or a raw JQL string
            limit: Stop after this many issues (no further pages are requested)
            cancellation: Token checked before each page request

        Returns:
            A finite, non-restartable iterator. Pages are fetched on demand.

        Raises:
            UnsupportedQueryError: the predicate cannot be expressed in JQL
        """
        # Translation errors must surface before the field list is fetched.
        jql = _schema_free_jql(predicate)
        schema = self._schema.schema(cancellation=cancellation)
        if jql is None:
            jql = _to_jql(predicate, schema)
        logger.debug("Query: %s", jql)
        config = self._client.config

        def fetch_page(start_at: int, max_results: int) -> SearchPage:
            return self._search_page(jql, start_at, max_results, schema)

        return SearchPager(
            fetch_page,
            self._mapper(schema).from_wire,
            page_size=config.page_size,
            server_page_cap=config.server_page_cap,
            limit=limit,
            cancellation=cancellation,
        )

    def get(self, key: str, *, cancellation: CancellationToken | None = None) -> Issue:
        """Get a single issue by key or id."""
        schema = self._schema.schema(cancellation=cancellation)
        data = self._client.get(f"issue/{key}", cancellation=cancellation)
        return self._mapper(schema).from_wire(data)

    def get_comments(
        self, key: str, *, cancellation: CancellationToken | None = None
    ) -> builtins.list[Comment]:
        data = self._client.get(f"issue/{key}/comment", cancellation=cancellation)
        return _comments_from(data)

    def get_attachments(
        self, key: str, *, cancellation: CancellationToken | None = None
    ) -> builtins.list[Attachment]:
        """Attachment metadata for an issue. Content is not downloaded."""
        data = self._client.get(
            f"issue/{key}", params={"fields": "attachment"}, cancellation=cancellation
        )
        return _attachments_from(data)

    # =========================================================================
    # Write Operations
    # =========================================================================

    def save(self, issue: Issue, *, cancellation: CancellationToken | None = None) -> Issue:
        """
        Persist `issue`: create it if it was never saved, else send its changes.

        On success `issue` is refreshed in place from the server (new key,
        server-computed fields, fresh snapshot) and returned. An issue without
        changes is returned without any request.

        Raises:
            UnknownFieldError: a changed custom field cannot be resolved
            OperationCancelledError: `cancellation` was set before sending
            StaleEntityError: the server rejected the write as conflicting
        """
        schema = self._schema.schema(cancellation=cancellation)
        changes = compute_changes(issue.snapshot, issue, schema)
        if changes.is_create:
            return self._create(issue, changes, schema, cancellation)
        return self._update(issue, changes, schema, cancellation)

    def create(self, issue: Issue, *, cancellation: CancellationToken | None = None) -> Issue:
        if not issue.is_new:
            raise ValueError(f"Issue {issue.key} already exists; use update()")
        return self.save(issue, cancellation=cancellation)

    def update(self, issue: Issue, *, cancellation: CancellationToken | None = None) -> Issue:
        if issue.is_new:
            raise ValueError("Issue has not been created yet; use create()")
        return self.save(issue, cancellation=cancellation)

    def _create(
        self,
        issue: Issue,
        changes: ChangeSet,
        schema: FieldSchema,
        cancellation: CancellationToken | None,
    ) -> Issue:
        mapper = self._mapper(schema)
        data = self._client.post("issue", json=mapper.to_wire(changes), cancellation=cancellation)
        created = CreatedIssue.model_validate(data)
        logger.debug("Created issue %s", created.key)
        issue.mark_created(created.id, created.key)
        issue.adopt(mapper.from_wire(self._client.get(f"issue/{created.key}")))
        return issue

    def _update(
        self,
        issue: Issue,
        changes: ChangeSet,
        schema: FieldSchema,
        cancellation: CancellationToken | None,
    ) -> Issue:
        if not changes:
            logger.debug("No changes to save for %s", issue.key)
            return issue
        key = _require_key(issue)
        mapper = self._mapper(schema)
        self._client.put(f"issue/{key}", json=mapper.to_wire(changes), cancellation=cancellation)
        logger.debug("Updated %s: %s", key, sorted(changes.field_ids))
        issue.adopt(mapper.from_wire(self._client.get(f"issue/{key}")))
        return issue

    def add_labels(
        self, issue: Issue, *labels: str, cancellation: CancellationToken | None = None
    ) -> Issue:
        """
        Append labels to a saved issue immediately.

        Only the labels are sent; other pending changes on `issue` stay pending.
        On an unsaved issue the labels are added locally and sent on create.
        """
        if issue.is_new:
            issue.add_labels(*labels)
            return issue
        key = _require_key(issue)
        new_labels = _unsaved_labels(issue, labels)
        if new_labels:
            self._client.put(
                f"issue/{key}",
                json=_label_update(new_labels),
                cancellation=cancellation,
            )
        issue.confirm_labels(*labels)
        return issue

    def add_comment(
        self, key: str, body: str, *, cancellation: CancellationToken | None = None
    ) -> Comment:
        data = self._client.post(
            f"issue/{key}/comment", json={"body": body}, cancellation=cancellation
        )
        return Comment.model_validate(data)

    def delete(
        self,
        key: str,
        *,
        delete_subtasks: bool = False,
        cancellation: CancellationToken | None = None,
    ) -> None:
        params = {"deleteSubtasks": "true"} if delete_subtasks else None
        self._client.delete(f"issue/{key}", params=params, cancellation=cancellation)


class _AsyncQuery:
    """Defers schema loading and translation of an async query to its first page."""

    def __init__(
        self,
        service: AsyncIssueService,
        predicate: Predicate | str,
        cancellation: CancellationToken | None,
    ):
        self._service = service
        self._predicate = predicate
        self._cancellation = cancellation
        self._prepared: tuple[str, FieldSchema, IssueMapper] | None = None

    async def _prepare(self) -> tuple[str, FieldSchema, IssueMapper]:
        if self._prepared is None:
            jql = _schema_free_jql(self._predicate)
            schema = await self._service._schema.schema(cancellation=self._cancellation)
            if jql is None:
                jql = _to_jql(self._predicate, schema)
            logger.debug("Query: %s", jql)
            self._prepared = (jql, schema, self._service._mapper(schema))
        return self._prepared

    async def fetch_page(self, start_at: int, max_results: int) -> SearchPage:
        jql, schema, _ = await self._prepare()
        return await self._service._search_page(jql, start_at, max_results, schema)

    def map_record(self, record: dict[str, Any]) -> Issue:
        assert self._prepared is not None
        return self._prepared[2].from_wire(record)


class AsyncIssueService:
    """Async version of `IssueService`."""

    def __init__(self, client: AsyncHTTPClient, schema: AsyncSchemaResolver):
        self._client = client
        self._schema = schema

    def _mapper(self, schema: FieldSchema) -> IssueMapper:
        return IssueMapper(schema, user_key=self._client.config.user_key)

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def _search_page(
        self,
        jql: str,
        start_at: int,
        max_results: int,
        schema: FieldSchema,
        cancellation: CancellationToken | None = None,
    ) -> SearchPage:
        try:
            data = await self._client.post(
                "search",
                json=_search_body(jql, start_at, max_results, schema),
                write_intent=False,
                cancellation=cancellation,
            )
        except NotFoundError:
            logger.debug("Search returned 404; treating as empty result: %s", jql)
            return SearchPage.empty(start_at)
        return SearchPage.model_validate(data)

    async def search(
        self,
        jql: str,
        *,
        start_at: int = 0,
        max_results: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> SearchPage:
        schema = await self._schema.schema(cancellation=cancellation)
        size = max_results if max_results is not None else self._client.config.page_size
        return await self._search_page(jql, start_at, size, schema, cancellation)

    def query(
        self,
        predicate: Predicate | str,
        *,
        limit: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncSearchPager[Issue]:
        """
        Stream all issues matching `predicate`.

            async for issue in client.issues.query(predicate):
                ...

        The schema is loaded and the predicate translated when iteration
        starts, so `UnsupportedQueryError` surfaces on the first `__anext__`.
        """
        query = _AsyncQuery(self, predicate, cancellation)
        config = self._client.config
        return AsyncSearchPager(
            query.fetch_page,
            query.map_record,
            page_size=config.page_size,
            server_page_cap=config.server_page_cap,
            limit=limit,
            cancellation=cancellation,
        )

    async def get(self, key: str, *, cancellation: CancellationToken | None = None) -> Issue:
        schema = await self._schema.schema(cancellation=cancellation)
        data = await self._client.get(f"issue/{key}", cancellation=cancellation)
        return self._mapper(schema).from_wire(data)

    async def get_comments(
        self, key: str, *, cancellation: CancellationToken | None = None
    ) -> builtins.list[Comment]:
        data = await self._client.get(f"issue/{key}/comment", cancellation=cancellation)
        return _comments_from(data)

    async def get_attachments(
        self, key: str, *, cancellation: CancellationToken | None = None
    ) -> builtins.list[Attachment]:
        data = await self._client.get(
            f"issue/{key}", params={"fields": "attachment"}, cancellation=cancellation
        )
        return _attachments_from(data)

    # =========================================================================
    # Write Operations
    # =========================================================================

    async def save(
        self, issue: Issue, *, cancellation: CancellationToken | None = None
    ) -> Issue:
        schema = await self._schema.schema(cancellation=cancellation)
        changes = compute_changes(issue.snapshot, issue, schema)
        mapper = self._mapper(schema)
        if changes.is_create:
            data = await self._client.post(
                "issue", json=mapper.to_wire(changes), cancellation=cancellation
            )
            created = CreatedIssue.model_validate(data)
            key = created.key
            logger.debug("Created issue %s", key)
            issue.mark_created(created.id, key)
        else:
            if not changes:
                logger.debug("No changes to save for %s", issue.key)
                return issue
            key = _require_key(issue)
            await self._client.put(
                f"issue/{key}", json=mapper.to_wire(changes), cancellation=cancellation
            )
            logger.debug("Updated %s: %s", key, sorted(changes.field_ids))
        issue.adopt(mapper.from_wire(await self._client.get(f"issue/{key}")))
        return issue

    async def create(
        self, issue: Issue, *, cancellation: CancellationToken | None = None
    ) -> Issue:
        if not issue.is_new:
            raise ValueError(f"Issue {issue.key} already exists; use update()")
        return await self.save(issue, cancellation=cancellation)

    async def update(
        self, issue: Issue, *, cancellation: CancellationToken | None = None
    ) -> Issue:
        if issue.is_new:
            raise ValueError("Issue has not been created yet; use create()")
        return await self.save(issue, cancellation=cancellation)

    async def add_labels(
        self, issue: Issue, *labels: str, cancellation: CancellationToken | None = None
    ) -> Issue:
        if issue.is_new:
            issue.add_labels(*labels)
            return issue
        key = _require_key(issue)
        new_labels = _unsaved_labels(issue, labels)
        if new_labels:
            await self._client.put(
                f"issue/{key}",
                json=_label_update(new_labels),
                cancellation=cancellation,
            )
        issue.confirm_labels(*labels)
        return issue

    async def add_comment(
        self, key: str, body: str, *, cancellation: CancellationToken | None = None
    ) -> Comment:
        data = await self._client.post(
            f"issue/{key}/comment", json={"body": body}, cancellation=cancellation
        )
        return Comment.model_validate(data)

    async def delete(
        self,
        key: str,
        *,
        delete_subtasks: bool = False,
        cancellation: CancellationToken | None = None,
    ) -> None:
        params = {"deleteSubtasks": "true"} if delete_subtasks else None
        await self._client.delete(f"issue/{key}", params=params, cancellation=cancellation)
