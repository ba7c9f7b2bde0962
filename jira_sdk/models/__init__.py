"""
Jira data models.

All Pydantic models and type definitions are available from this module.
"""

from __future__ import annotations

from .entities import (
    FieldMetadata,
    FieldTypeInfo,
    Issue,
    IssueSnapshot,
    JiraModel,
    NamedValue,
    NamedValueSet,
)
from .pagination import SearchPage
from .secondary import (
    Attachment,
    Comment,
    CreatedIssue,
    IssueType,
    Priority,
    ProjectComponent,
    ProjectVersion,
    RemoteLink,
    RemoteLinkObject,
    Resolution,
    Status,
    User,
)
from .types import (
    DEFAULT_API_VERSION,
    SYSTEM_FIELDS,
    FieldId,
    FieldKind,
    IssueId,
    IssueKey,
    Operator,
    ProjectKey,
    SystemField,
)

__all__ = [
    "DEFAULT_API_VERSION",
    "SYSTEM_FIELDS",
    # ID types
    "FieldId",
    "IssueId",
    "IssueKey",
    "ProjectKey",
    # Enums / catalog
    "FieldKind",
    "Operator",
    "SystemField",
    # Base
    "JiraModel",
    # Issue
    "Issue",
    "IssueSnapshot",
    "NamedValue",
    "NamedValueSet",
    # Field
    "FieldMetadata",
    "FieldTypeInfo",
    # Lookups
    "IssueType",
    "Priority",
    "Resolution",
    "Status",
    "ProjectVersion",
    "ProjectComponent",
    # Satellites
    "User",
    "Comment",
    "Attachment",
    "RemoteLink",
    "RemoteLinkObject",
    "CreatedIssue",
    # Pagination
    "SearchPage",
]
