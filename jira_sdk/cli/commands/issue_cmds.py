from __future__ import annotations

from typing import Any

from jira_sdk.models.entities import Issue

from ..click_compat import RichCommand, RichGroup, click
from ..context import CLIContext
from ..options import output_options
from ..runner import CommandOutput, run_command

ISSUE_COLUMNS = ["key", "issueType", "status", "priority", "assignee", "summary"]


def issue_payload(issue: Issue) -> dict[str, Any]:
    payload = issue.model_dump(mode="json", exclude={"custom_fields"}, exclude_none=True)
    payload["issueType"] = payload.pop("issue_type", None)
    if issue.custom_fields:
        payload["customFields"] = issue.custom_fields
    return payload


@click.group(name="issue", cls=RichGroup)
def issue_group() -> None:
    """Issue commands."""


@issue_group.command(name="get", cls=RichCommand)
@click.argument("key")
@output_options
@click.pass_obj
def issue_get(ctx: CLIContext, key: str) -> None:
    """Show a single issue by key."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        client = ctx.get_client()
        issue = client.issues.get(key)
        return CommandOutput(data={"issue": issue_payload(issue)})

    run_command(ctx, command="issue get", fn=fn)


@issue_group.command(name="comments", cls=RichCommand)
@click.argument("key")
@output_options
@click.pass_obj
def issue_comments(ctx: CLIContext, key: str) -> None:
    """List comments on an issue."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        client = ctx.get_client()
        comments = client.issues.get_comments(key)
        rows = [
            {
                "id": c.id,
                "author": c.author.display_name if c.author else None,
                "created": c.created.isoformat() if c.created else None,
                "body": c.body,
            }
            for c in comments
        ]
        return CommandOutput(data={"comments": rows})

    run_command(ctx, command="issue comments", fn=fn)


@issue_group.command(name="add-label", cls=RichCommand)
@click.argument("key")
@click.argument("labels", nargs=-1, required=True)
@output_options
@click.pass_obj
def issue_add_label(ctx: CLIContext, key: str, labels: tuple[str, ...]) -> None:
    """Append labels to an issue."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        client = ctx.get_client()
        issue = client.issues.get(key)
        client.issues.add_labels(issue, *labels)
        return CommandOutput(data={"key": issue.key, "labels": list(issue.labels or [])})

    run_command(ctx, command="issue add-label", fn=fn)
