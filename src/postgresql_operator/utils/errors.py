"""Error taxonomy and sanitization utilities."""

from __future__ import annotations

import re
from typing import Any

from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError


class ReconcileError(Exception):
    """Base class for classified reconciliation errors."""

    retryable = True
    reason = "ReconcileFailed"


class NotFoundError(ReconcileError):
    """The requested object does not exist."""

    retryable = False
    reason = "NotFound"


class ConflictError(ReconcileError):
    """The object changed since it was read (stale resourceVersion)."""

    reason = "Conflict"


class ValidationError(ReconcileError):
    """The desired state is malformed or was rejected by the API server."""

    reason = "ValidationFailed"


class TransientError(ReconcileError):
    """The object store was unavailable, slow, or throttling."""

    reason = "TransientError"


class AuthorizationError(ReconcileError):
    """The operator is not allowed to perform the call."""

    reason = "Unauthorized"


def classify_api_exception(error: Exception, operation: str = "") -> ReconcileError:
    """Map a Kubernetes client exception to the reconcile error taxonomy.

    Args:
        error: Exception raised by the kubernetes client or urllib3
        operation: Short description of the failed call, used in the message

    Returns:
        A ReconcileError subclass instance chained to the original error
    """
    prefix = f"{operation}: " if operation else ""
    if isinstance(error, ReconcileError):
        return error
    if isinstance(error, ApiException):
        status = error.status or 0
        message = f"{prefix}{status} {error.reason or ''}".strip()
        if status == 404:
            classified: ReconcileError = NotFoundError(message)
        elif status == 409:
            classified = ConflictError(message)
        elif status in (401, 403):
            classified = AuthorizationError(message)
        elif status in (400, 422):
            classified = ValidationError(message)
        else:
            # 429, 5xx and anything unexpected from the server
            classified = TransientError(message)
    elif isinstance(error, (Urllib3HTTPError, TimeoutError, ConnectionError)):
        classified = TransientError(f"{prefix}{type(error).__name__}: {error}")
    else:
        return TransientError(f"{prefix}{type(error).__name__}: {error}")
    classified.__cause__ = error
    return classified


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"password[=:\s]+([^\s,;\)]+)",
    r"postgres(?:ql)?://[^:/\s]+:([^@\s]+)@",
    r"bearer\s+([A-Za-z0-9\-_\.=]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "secret",
    "credentials",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message
    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )
    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
