"""
Jira SDK: a typed client for the Jira REST API.

Queries are built as predicates and translated to JQL, results stream through
an offset pager, and saves send only the fields that changed.

    from jira_sdk import Jira, Q

    with Jira.from_env() as jira:
        query = Q.field("project").equals("TST") & Q.custom("Custom Text Field").equals("v1")
        for issue in jira.issues.query(query, limit=20):
            print(issue.key, issue.summary)
"""

from __future__ import annotations

from .cancellation import CancellationToken
from .client import AsyncJira, Jira
from .clients.http import ClientConfig
from .diff import ChangeSet, compute_changes
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    JiraError,
    NotFoundError,
    OperationCancelledError,
    ServerError,
    StaleEntityError,
    TransportError,
    UnknownFieldError,
    UnsupportedQueryError,
    WriteNotAllowedError,
)
from .jql import F, Predicate, Q, translate
from .mapper import IssueMapper
from .models import (
    Attachment,
    Comment,
    FieldMetadata,
    Issue,
    IssueSnapshot,
    IssueType,
    NamedValue,
    NamedValueSet,
    Priority,
    ProjectComponent,
    ProjectVersion,
    RemoteLink,
    Resolution,
    SearchPage,
    Status,
)
from .paging import AsyncSearchPager, SearchPager
from .policies import Policies, WritePolicy
from .schema import FieldSchema

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Clients
    "Jira",
    "AsyncJira",
    "ClientConfig",
    "Policies",
    "WritePolicy",
    "CancellationToken",
    # Queries
    "Q",
    "F",
    "Predicate",
    "translate",
    "SearchPager",
    "AsyncSearchPager",
    # Change tracking
    "ChangeSet",
    "compute_changes",
    "IssueMapper",
    "FieldSchema",
    # Models
    "Issue",
    "IssueSnapshot",
    "NamedValue",
    "NamedValueSet",
    "FieldMetadata",
    "IssueType",
    "Priority",
    "Resolution",
    "Status",
    "ProjectVersion",
    "ProjectComponent",
    "Comment",
    "Attachment",
    "RemoteLink",
    "SearchPage",
    # Errors
    "JiraError",
    "UnsupportedQueryError",
    "UnknownFieldError",
    "WriteNotAllowedError",
    "OperationCancelledError",
    "TransportError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "StaleEntityError",
    "ServerError",
]
