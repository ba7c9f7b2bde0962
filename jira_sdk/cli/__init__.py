"""
`jira-sdk` command-line interface.

Requires the `cli` extra (click, rich, rich-click, python-dotenv).
"""

from __future__ import annotations

from .main import cli


def main() -> None:
    cli()


__all__ = ["cli", "main"]
