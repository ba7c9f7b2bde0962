from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .results import CommandResult


@dataclass(frozen=True, slots=True)
class RenderSettings:
    output: str  # "table" | "json"
    quiet: bool
    verbosity: int


_ERROR_TITLES = {
    "usage_error": "Usage error",
    "write_not_allowed": "Read-only mode",
    "auth_error": "Jira rejected the credentials",
    "forbidden": "Jira denied access",
    "not_found": "Not found in Jira",
    "server_error": "Jira server error",
    "network_error": "Could not reach Jira",
    "api_error": "Jira API error",
}


def _error_title(error_type: str) -> str:
    return _ERROR_TITLES.get(error_type, "Error")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(_cell(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _records_table(title: str, rows: list[dict[str, Any]], columns: list[str] | None) -> Table:
    if columns is None:
        columns = []
        for row in rows:
            for key in row:
                if key not in columns:
                    columns.append(key)
    table = Table(title=title, show_header=True, header_style="bold")
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*[_cell(row.get(column)) for column in columns])
    return table


def _mapping_table(title: str | None, data: dict[str, Any]) -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, dict) and value:
            value = json.dumps(value, ensure_ascii=False, default=str)
        table.add_row(key, _cell(value))
    return table


def render_result(
    result: CommandResult,
    *,
    settings: RenderSettings,
    columns: dict[str, list[str]] | None = None,
) -> None:
    stdout = Console(file=sys.stdout, force_terminal=False)
    stderr = Console(file=sys.stderr, force_terminal=False)

    if not result.ok:
        if result.error is None:  # pragma: no cover
            stderr.print("Error")
            return
        stderr.print(f"{_error_title(result.error.type)}: {result.error.message}")
        if result.error.hint and not settings.quiet:
            stderr.print(f"Hint: {result.error.hint}")
        if result.error.details and settings.verbosity >= 2:
            stderr.print(
                Panel.fit(Text(json.dumps(result.error.details, ensure_ascii=False, indent=2)))
            )
        return

    data = result.data
    if data is None:
        return
    if not isinstance(data, dict):
        stdout.print(_cell(data))
        return

    scalars = {k: v for k, v in data.items() if not isinstance(v, (list, dict))}
    if scalars:
        stdout.print(_mapping_table(None, scalars))
    for key, value in data.items():
        if isinstance(value, list):
            rows = [row for row in value if isinstance(row, dict)]
            if not rows:
                if not settings.quiet:
                    stdout.print(f"No {key}.")
                continue
            stdout.print(_records_table(key, rows, (columns or {}).get(key)))
        elif isinstance(value, dict):
            stdout.print(_mapping_table(key, value))

    pagination = result.meta.pagination
    if pagination and not settings.quiet:
        parts = [f"{k}={v}" for k, v in pagination.items() if v is not None]
        if parts:
            stderr.print("Pagination: " + " ".join(parts))
