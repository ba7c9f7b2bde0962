"""
Pagination models for offset-paged Jira endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .entities import JiraModel


class SearchPage(JiraModel):
    """
    One response of the search endpoint.

    `issues` holds raw wire records; mapping to `Issue` happens in the pager so
    records are materialized as they are consumed.
    """

    start_at: int = Field(0, alias="startAt")
    max_results: int | None = Field(None, alias="maxResults")
    total: int | None = None
    issues: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def received(self) -> int:
        return len(self.issues)

    @classmethod
    def empty(cls, start_at: int = 0) -> SearchPage:
        return cls(startAt=start_at, maxResults=0, total=start_at, issues=[])
