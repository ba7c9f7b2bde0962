from __future__ import annotations

from pathlib import Path

import jira_sdk

from .click_compat import RichGroup, click
from .context import CLIContext
from .logging import configure_logging, restore_logging


def _start_session(click_ctx: click.Context, ctx: CLIContext) -> None:
    """Attach ``ctx`` to the click context and undo its side effects on exit."""
    click_ctx.obj = ctx
    click_ctx.call_on_close(ctx.close)
    previous = configure_logging(verbosity=ctx.verbosity)
    click_ctx.call_on_close(lambda: restore_logging(previous))


@click.group(
    name="jira-sdk",
    cls=RichGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--base-url",
    metavar="URL",
    default=None,
    help="Jira server URL. Defaults to $JIRA_URL.",
)
@click.option(
    "--readonly",
    is_flag=True,
    envvar="JIRA_READONLY",
    help="Refuse every write (edits, comments, deletes, remote links).",
)
@click.option("--timeout", type=float, default=None, help="HTTP timeout in seconds.")
@click.option("--output", type=click.Choice(["table", "json"]), default="table")
@click.option("--json", "as_json", is_flag=True, help="Same as --output json.")
@click.option("-q", "--quiet", is_flag=True, help="Only print results and errors.")
@click.option("-v", "verbose", count=True, help="-v logs SDK activity, -vv every request.")
@click.option("--dotenv/--no-dotenv", default=False, help="Read credentials from an env file.")
@click.option("--env-file", type=click.Path(dir_okay=False), default=".env", show_default=True)
@click.version_option(version=jira_sdk.__version__, prog_name="jira-sdk")
@click.pass_context
def cli(
    click_ctx: click.Context,
    *,
    base_url: str | None,
    readonly: bool,
    timeout: float | None,
    output: str,
    as_json: bool,
    quiet: bool,
    verbose: int,
    dotenv: bool,
    env_file: str,
) -> None:
    """Query and edit Jira issues from the command line."""
    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        raise click.exceptions.Exit(0)

    _start_session(
        click_ctx,
        CLIContext(
            output="json" if as_json else output,  # type: ignore[arg-type]
            quiet=quiet,
            verbosity=verbose,
            dotenv=dotenv,
            env_file=Path(env_file),
            base_url=base_url,
            timeout=timeout,
            readonly=readonly,
        ),
    )


from .commands.field_cmds import fields_cmd  # noqa: E402
from .commands.issue_cmds import issue_group  # noqa: E402
from .commands.search_cmd import search_cmd  # noqa: E402
from .commands.version_cmd import version_cmd  # noqa: E402

for _command in (version_cmd, search_cmd, issue_group, fields_cmd):
    cli.add_command(_command)
