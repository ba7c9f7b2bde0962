from __future__ import annotations

from ..click_compat import RichCommand, click
from ..context import CLIContext
from ..errors import CLIError
from ..options import output_options
from ..runner import CommandOutput, run_command
from .issue_cmds import ISSUE_COLUMNS, issue_payload


@click.command(name="search", cls=RichCommand)
@click.argument("jql")
@click.option("--limit", type=int, default=None, help="Maximum number of issues to return.")
@output_options
@click.pass_obj
def search_cmd(ctx: CLIContext, jql: str, *, limit: int | None) -> None:
    """Search issues with a JQL query."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        if limit is not None and limit < 0:
            raise CLIError.usage("--limit must be >= 0.")
        client = ctx.get_client()
        results = client.issues.query(jql, limit=limit)
        issues = [issue_payload(issue) for issue in results]
        return CommandOutput(
            data={"issues": issues},
            pagination={
                "returned": len(issues),
                "total": results.total,
                "pagesFetched": results.pages_fetched,
            },
            columns={"issues": ISSUE_COLUMNS},
        )

    run_command(ctx, command="search", fn=fn)
