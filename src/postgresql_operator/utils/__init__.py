"""Utility functions for the PostgreSQL Operator."""

from .conditions import (
    get_condition,
    set_ready_condition,
    set_reconciled_condition,
    set_spec_valid_condition,
    set_storage_immutable_condition,
    update_condition,
)
from .context import get_context_dict, get_correlation_id, with_correlation_id
from .errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ReconcileError,
    TransientError,
    ValidationError,
    classify_api_exception,
    sanitize_exception,
)
from .events import emit_event

__all__ = [
    "update_condition",
    "get_condition",
    "set_ready_condition",
    "set_reconciled_condition",
    "set_spec_valid_condition",
    "set_storage_immutable_condition",
    "emit_event",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "ReconcileError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "TransientError",
    "AuthorizationError",
    "classify_api_exception",
    "sanitize_exception",
]
