"""
CLI logging setup.

SDK modules log through `logging.getLogger(__name__)` under the `jira_sdk`
namespace; the CLI routes those records to stderr through rich, at a level
chosen by `-v` flags. Credentials never reach log records, but Authorization
headers are masked anyway in case a transport logs them.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler

_SDK_LOGGER = "jira_sdk"
_AUTH_HEADER = re.compile(r"(Authorization['\"]?\s*[:=]\s*['\"]?)(Basic|Bearer)\s+[^\s'\"]+", re.I)


class RedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _AUTH_HEADER.sub(r"\1\2 [REDACTED]", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


@dataclass(frozen=True, slots=True)
class PreviousLogging:
    level: int
    handlers: list[logging.Handler]
    propagate: bool


def _level_for(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(*, verbosity: int) -> PreviousLogging:
    logger = logging.getLogger(_SDK_LOGGER)
    previous = PreviousLogging(
        level=logger.level, handlers=list(logger.handlers), propagate=logger.propagate
    )
    handler = RichHandler(
        console=Console(file=sys.stderr, force_terminal=False),
        show_time=verbosity >= 2,
        show_path=False,
    )
    handler.addFilter(RedactingFilter())
    logger.handlers = [handler]
    logger.setLevel(_level_for(verbosity))
    logger.propagate = False
    return previous


def restore_logging(previous: PreviousLogging) -> None:
    logger = logging.getLogger(_SDK_LOGGER)
    logger.handlers = previous.handlers
    logger.setLevel(previous.level)
    logger.propagate = previous.propagate
