"""
Exception hierarchy for the Jira SDK.

Query and change-set errors are raised before any request is sent. Transport
errors carry the HTTP status and body of the failing response and are never
retried by the SDK.
"""

from __future__ import annotations

from typing import Any


class JiraError(Exception):
    """Base class for all SDK errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Local (pre-network) errors
# =============================================================================


class UnsupportedQueryError(JiraError, ValueError):
    """A predicate uses an operator/field/value combination JQL cannot express."""


class UnknownFieldError(JiraError, LookupError):
    """A custom-field display name has no resolvable field id."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown custom field: {name!r}", details={"field": name})
        self.name = name


class WriteNotAllowedError(JiraError):
    """A write was attempted while the client runs with `WritePolicy.DENY`."""

    def __init__(self, method: str, url: str) -> None:
        super().__init__(
            f"Write operation blocked by policy: {method} {url}",
            details={"method": method, "url": url},
        )
        self.method = method
        self.url = url


class OperationCancelledError(JiraError):
    """An operation was cancelled through its `CancellationToken` before completing."""


# =============================================================================
# Transport errors
# =============================================================================


class TransportError(JiraError):
    """
    Network or service failure surfaced from the transport.

    `status_code` is None when no response was received (connection failure,
    timeout). `request_id` carries Jira's X-AREQUESTID when the server sent one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: Any | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, details={"requestId": request_id} if request_id else None)
        self.status_code = status_code
        self.response_body = response_body
        self.request_id = request_id


class AuthenticationError(TransportError):
    """401: credentials missing or rejected."""


class AuthorizationError(TransportError):
    """403: credentials valid but not allowed to perform the operation."""


class NotFoundError(TransportError):
    """404: the requested resource does not exist."""


class StaleEntityError(TransportError):
    """
    409: the service reported a conflicting concurrent modification.

    Saves are last-write-wins otherwise; this is only raised when the service
    itself signals the conflict.
    """


class ServerError(TransportError):
    """5xx response."""


def _summarize_error_body(body: Any) -> str:
    if isinstance(body, dict):
        parts: list[str] = []
        messages = body.get("errorMessages")
        if isinstance(messages, list):
            parts.extend(str(m) for m in messages if m)
        errors = body.get("errors")
        if isinstance(errors, dict):
            parts.extend(f"{k}: {v}" for k, v in errors.items())
        if parts:
            return "; ".join(parts)
        message = body.get("message")
        if message:
            return str(message)
    if isinstance(body, str):
        return body[:500]
    return ""


def error_from_response(
    status_code: int, body: Any, *, url: str, request_id: str | None = None
) -> TransportError:
    """Build the typed error for a non-2xx response."""
    summary = _summarize_error_body(body)
    message = f"HTTP {status_code} for {url}"
    if summary:
        message = f"{message}: {summary}"

    error_cls: type[TransportError]
    if status_code == 401:
        error_cls = AuthenticationError
    elif status_code == 403:
        error_cls = AuthorizationError
    elif status_code == 404:
        error_cls = NotFoundError
    elif status_code == 409:
        error_cls = StaleEntityError
    elif status_code >= 500:
        error_cls = ServerError
    else:
        error_cls = TransportError
    return error_cls(
        message, status_code=status_code, response_body=body, request_id=request_id
    )
