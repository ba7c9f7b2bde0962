from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import httpx

from jira_sdk import Jira
from jira_sdk.client import _maybe_load_dotenv as _sdk_maybe_load_dotenv
from jira_sdk.exceptions import (
    AuthenticationError,
    AuthorizationError,
    JiraError,
    NotFoundError,
    ServerError,
    TransportError,
    UnknownFieldError,
    UnsupportedQueryError,
    WriteNotAllowedError,
)
from jira_sdk.policies import Policies

from .errors import CLIError
from .results import CommandMeta, CommandResult, ErrorInfo

OutputFormat = Literal["table", "json"]


@dataclass
class CLIContext:
    output: OutputFormat
    quiet: bool
    verbosity: int
    dotenv: bool
    env_file: Path
    base_url: str | None
    timeout: float | None
    readonly: bool
    transport: httpx.BaseTransport | None = None

    _client: Jira | None = None

    def load_dotenv_if_requested(self) -> None:
        try:
            _sdk_maybe_load_dotenv(
                load_dotenv=self.dotenv,
                dotenv_path=self.env_file,
                override=False,
            )
        except ImportError as exc:
            raise CLIError.usage(
                "Optional .env support requires python-dotenv.",
                hint="Install the `jira-sdk[cli]` extra.",
            ) from exc

    def resolve_base_url(self) -> str:
        base_url = self.base_url or os.getenv("JIRA_URL", "").strip()
        if not base_url:
            raise CLIError.usage(
                "Missing Jira URL (JIRA_URL is not set).",
                hint="Export JIRA_URL or pass --base-url.",
            )
        return base_url

    def get_client(self) -> Jira:
        if self._client is not None:
            return self._client

        self.load_dotenv_if_requested()
        page_size = os.getenv("JIRA_PAGE_SIZE")
        if page_size is not None and not page_size.isdigit():
            raise CLIError.usage(f"JIRA_PAGE_SIZE must be a positive integer, got {page_size!r}.")
        self._client = Jira(
            self.resolve_base_url(),
            username=os.getenv("JIRA_USERNAME") or os.getenv("JIRA_EMAIL"),
            api_token=os.getenv("JIRA_API_TOKEN"),
            bearer_token=os.getenv("JIRA_BEARER_TOKEN"),
            page_size=int(page_size) if page_size else 50,
            timeout=self.timeout if self.timeout is not None else 30.0,
            log_requests=self.verbosity >= 2,
            policies=Policies.read_only() if self.readonly else Policies(),
            transport=self.transport,
        )
        return self._client

    @property
    def connected_base_url(self) -> str | None:
        return self._client.config.base_url if self._client is not None else None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


@dataclass(frozen=True, slots=True)
class _Failure:
    error_type: str
    exit_code: int
    hint: str | None = None


# First match wins, so subclasses must precede TransportError.
_FAILURES: tuple[tuple[type[Exception] | tuple[type[Exception], ...], _Failure], ...] = (
    (
        WriteNotAllowedError,
        _Failure("write_not_allowed", 2, "Drop --readonly to allow changes."),
    ),
    (
        (UnsupportedQueryError, UnknownFieldError),
        _Failure("usage_error", 2, "Run `jira-sdk fields` to list custom field names."),
    ),
    (
        AuthenticationError,
        _Failure("auth_error", 3, "Check JIRA_USERNAME/JIRA_API_TOKEN or JIRA_BEARER_TOKEN."),
    ),
    (AuthorizationError, _Failure("forbidden", 3)),
    (NotFoundError, _Failure("not_found", 4)),
    (ServerError, _Failure("server_error", 5)),
)


def _classify(exc: Exception) -> _Failure:
    if isinstance(exc, CLIError):
        return _Failure(exc.error_type, exc.exit_code, exc.hint)
    for types, failure in _FAILURES:
        if isinstance(exc, types):
            return failure
    if isinstance(exc, TransportError):
        if exc.status_code is None:
            return _Failure("network_error", 1, "Check that JIRA_URL is reachable.")
        return _Failure("api_error", 1)
    return _Failure(exc.__class__.__name__, 1)


def exit_code_for_exception(exc: Exception) -> int:
    return _classify(exc).exit_code


def error_info_for_exception(exc: Exception) -> ErrorInfo:
    failure = _classify(exc)
    details = exc.details if isinstance(exc, (CLIError, JiraError)) else None
    message = exc.message if isinstance(exc, (CLIError, JiraError)) else str(exc)
    return ErrorInfo(type=failure.error_type, message=message, hint=failure.hint, details=details)


def build_result(
    *,
    ok: bool,
    command: str,
    started_at: float,
    data: Any | None,
    warnings: list[str],
    base_url: str | None,
    pagination: dict[str, Any] | None = None,
    error: ErrorInfo | None = None,
) -> CommandResult:
    duration_ms = int(max(0.0, (time.time() - started_at) * 1000))
    meta = CommandMeta(duration_ms=duration_ms, base_url=base_url, pagination=pagination)
    return CommandResult(
        ok=ok,
        command=command,
        data=data,
        warnings=warnings,
        meta=meta,
        error=error,
    )
