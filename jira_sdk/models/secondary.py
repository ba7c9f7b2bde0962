"""
Secondary models: lookups (types, priorities, statuses, ...), project versions
and components, comments, attachment metadata and remote links.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from .entities import JiraModel, parse_datetime
from .types import IssueId, IssueKey


class _NamedLookup(JiraModel):
    id: str
    name: str
    description: str | None = None
    icon_url: str | None = Field(None, alias="iconUrl")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class IssueType(_NamedLookup):
    subtask: bool = False


class Priority(_NamedLookup):
    status_color: str | None = Field(None, alias="statusColor")


class Resolution(_NamedLookup):
    pass


class Status(_NamedLookup):
    pass


class ProjectVersion(_NamedLookup):
    archived: bool = False
    released: bool = False
    release_date: str | None = Field(None, alias="releaseDate")
    project_id: int | None = Field(None, alias="projectId")


class ProjectComponent(_NamedLookup):
    lead: dict[str, Any] | None = None


# =============================================================================
# Issue satellites
# =============================================================================


class User(JiraModel):
    name: str | None = None
    account_id: str | None = Field(None, alias="accountId")
    display_name: str | None = Field(None, alias="displayName")
    email_address: str | None = Field(None, alias="emailAddress")


def _parse_optional_datetime(value: Any) -> Any:
    if isinstance(value, str):
        return parse_datetime(value)
    return value


class Comment(JiraModel):
    id: str
    body: str
    author: User | None = None
    created: datetime | None = None
    updated: datetime | None = None

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _validate_timestamp(cls, value: Any) -> Any:
        return _parse_optional_datetime(value)


class Attachment(JiraModel):
    """Attachment metadata. Content download is left to the caller's transport."""

    id: str
    filename: str
    size: int | None = None
    mime_type: str | None = Field(None, alias="mimeType")
    content: str | None = None
    author: User | None = None
    created: datetime | None = None

    @field_validator("created", mode="before")
    @classmethod
    def _validate_timestamp(cls, value: Any) -> Any:
        return _parse_optional_datetime(value)


class RemoteLinkObject(JiraModel):
    url: str
    title: str
    summary: str | None = None


class RemoteLink(JiraModel):
    id: int
    self_url: str | None = Field(None, alias="self")
    global_id: str | None = Field(None, alias="globalId")
    object: RemoteLinkObject

    @property
    def url(self) -> str:
        return self.object.url

    @property
    def title(self) -> str:
        return self.object.title

    @property
    def summary(self) -> str | None:
        return self.object.summary


class CreatedIssue(JiraModel):
    """Response of `POST /issue`."""

    id: IssueId
    key: IssueKey
    self_url: str | None = Field(None, alias="self")
