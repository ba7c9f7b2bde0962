from __future__ import annotations

from typing import Any

from pydantic import Field

from jira_sdk.models.entities import JiraModel


class ErrorInfo(JiraModel):
    type: str
    message: str
    hint: str | None = None
    details: dict[str, Any] | None = None


class CommandMeta(JiraModel):
    duration_ms: int = Field(..., alias="durationMs")
    base_url: str | None = Field(None, alias="baseUrl")
    pagination: dict[str, Any] | None = None


class CommandResult(JiraModel):
    ok: bool
    command: str
    data: Any | None = None
    warnings: list[str] = Field(default_factory=list)
    meta: CommandMeta
    error: ErrorInfo | None = None
