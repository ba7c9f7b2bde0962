"""
Command execution and output for the `jira-sdk` CLI.

Each command body returns a `CommandOutput`. `run_command` wraps it in the
`CommandResult` envelope, writes it as JSON or rich tables, and turns the
outcome into the process exit code. Failures take the same route, so
``--json`` callers always get exactly one JSON document on stdout.
"""

from __future__ import annotations

import json
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console

from .click_compat import click
from .context import (
    CLIContext,
    build_result,
    error_info_for_exception,
    exit_code_for_exception,
)
from .render import RenderSettings, render_result
from .results import CommandResult


@dataclass(frozen=True, slots=True)
class CommandOutput:
    data: Any | None = None
    warnings: list[str] | None = None
    pagination: dict[str, Any] | None = None
    # Column order for list values in `data`, keyed like `data`.
    columns: dict[str, list[str]] | None = None
    exit_code: int = 0


@dataclass(slots=True)
class _Invocation:
    ctx: CLIContext
    command: str
    started_at: float = field(default_factory=time.time)
    warnings: list[str] = field(default_factory=list)

    def result(self, *, ok: bool, **kwargs: Any) -> CommandResult:
        return build_result(
            ok=ok,
            command=self.command,
            started_at=self.started_at,
            base_url=self.ctx.connected_base_url,
            **kwargs,
        )


def emit_result(
    ctx: CLIContext, result: CommandResult, *, columns: dict[str, list[str]] | None = None
) -> None:
    if ctx.output == "json":
        document = result.model_dump(by_alias=True, mode="json")
        sys.stdout.write(json.dumps(document, ensure_ascii=False) + "\n")
        return

    render_result(
        result,
        settings=RenderSettings(output="table", quiet=ctx.quiet, verbosity=ctx.verbosity),
        columns=columns,
    )
    if result.warnings and not ctx.quiet:
        console = Console(file=sys.stderr, force_terminal=False)
        for warning in result.warnings:
            console.print(f"Warning: {warning}")


CommandFn = Callable[[CLIContext, list[str]], CommandOutput]


def run_command(ctx: CLIContext, *, command: str, fn: CommandFn) -> None:
    """Run ``fn`` and exit with the code its outcome maps to."""
    invocation = _Invocation(ctx, command)
    try:
        out = fn(ctx, invocation.warnings)
    except Exception as exc:
        failed = invocation.result(
            ok=False,
            data=None,
            warnings=invocation.warnings,
            error=error_info_for_exception(exc),
        )
        emit_result(ctx, failed)
        raise click.exceptions.Exit(exit_code_for_exception(exc)) from exc

    succeeded = invocation.result(
        ok=True,
        data=out.data,
        warnings=out.warnings or invocation.warnings,
        pagination=out.pagination,
    )
    emit_result(ctx, succeeded, columns=out.columns)
    raise click.exceptions.Exit(out.exit_code)
