"""
Metadata service: issue types, priorities, resolutions, statuses, custom
fields, and project versions/components.
"""

from __future__ import annotations

import builtins
from typing import TYPE_CHECKING, Any, TypeVar

from ..models.entities import FieldMetadata, JiraModel
from ..models.secondary import (
    IssueType,
    Priority,
    ProjectComponent,
    ProjectVersion,
    Resolution,
    Status,
)

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient, HTTPClient
    from ..schema import AsyncSchemaResolver, SchemaResolver

M = TypeVar("M", bound=JiraModel)


def _validate_all(model: type[M], data: Any) -> builtins.list[M]:
    items = data if isinstance(data, list) else []
    return [model.model_validate(item) for item in items]


def _project_issue_types(data: Any) -> builtins.list[IssueType]:
    items = data.get("issueTypes", []) if isinstance(data, dict) else []
    return [IssueType.model_validate(item) for item in items]


class MetadataService:
    """Read-only lookups used to fill in issue fields."""

    def __init__(self, client: HTTPClient, schema: SchemaResolver):
        self._client = client
        self._schema = schema

    def issue_types(self, project: str | None = None) -> builtins.list[IssueType]:
        """All issue types, or those available in `project`."""
        if project is not None:
            return _project_issue_types(self._client.get(f"project/{project}"))
        return _validate_all(IssueType, self._client.get("issuetype"))

    def priorities(self) -> builtins.list[Priority]:
        return _validate_all(Priority, self._client.get("priority"))

    def resolutions(self) -> builtins.list[Resolution]:
        return _validate_all(Resolution, self._client.get("resolution"))

    def statuses(self) -> builtins.list[Status]:
        return _validate_all(Status, self._client.get("status"))

    def custom_fields(self) -> builtins.list[FieldMetadata]:
        """Custom field definitions, from the client's cached schema."""
        return list(self._schema.schema())

    def project_versions(self, project: str) -> builtins.list[ProjectVersion]:
        return _validate_all(ProjectVersion, self._client.get(f"project/{project}/versions"))

    def project_components(self, project: str) -> builtins.list[ProjectComponent]:
        return _validate_all(
            ProjectComponent, self._client.get(f"project/{project}/components")
        )


class AsyncMetadataService:
    """Async version of `MetadataService`."""

    def __init__(self, client: AsyncHTTPClient, schema: AsyncSchemaResolver):
        self._client = client
        self._schema = schema

    async def issue_types(self, project: str | None = None) -> builtins.list[IssueType]:
        if project is not None:
            return _project_issue_types(await self._client.get(f"project/{project}"))
        return _validate_all(IssueType, await self._client.get("issuetype"))

    async def priorities(self) -> builtins.list[Priority]:
        return _validate_all(Priority, await self._client.get("priority"))

    async def resolutions(self) -> builtins.list[Resolution]:
        return _validate_all(Resolution, await self._client.get("resolution"))

    async def statuses(self) -> builtins.list[Status]:
        return _validate_all(Status, await self._client.get("status"))

    async def custom_fields(self) -> builtins.list[FieldMetadata]:
        return list(await self._schema.schema())

    async def project_versions(self, project: str) -> builtins.list[ProjectVersion]:
        return _validate_all(
            ProjectVersion, await self._client.get(f"project/{project}/versions")
        )

    async def project_components(self, project: str) -> builtins.list[ProjectComponent]:
        return _validate_all(
            ProjectComponent, await self._client.get(f"project/{project}/components")
        )
