from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from .click_compat import click
from .context import CLIContext, OutputFormat

F = TypeVar("F", bound=Callable[..., object])


def _output_override(to_format: Callable[[Any], OutputFormat | None]) -> Callable[..., Any]:
    # Commands accept the format after their own name too, so `issue get X --json`
    # works the same as `--json issue get X`.
    def callback(ctx: click.Context, _param: click.Parameter, value: Any) -> Any:
        chosen = to_format(value)
        if chosen is not None and isinstance(ctx.obj, CLIContext):
            ctx.obj.output = chosen
        return value

    return callback


def output_options(fn: F) -> F:
    fn = click.option(
        "--output",
        type=click.Choice(["table", "json"]),
        default=None,
        expose_value=False,
        callback=_output_override(lambda value: value),
        help="Output format for this command only.",
    )(fn)
    return click.option(
        "--json",
        is_flag=True,
        expose_value=False,
        callback=_output_override(lambda value: "json" if value else None),
        help="Same as --output json.",
    )(fn)
